"""Tests for the FastAPI application."""

import pytest
from httpx import ASGITransport, AsyncClient

import services
from chat.state import AppState
from main import app
from models.profile import DEFAULT_PROFILE_ID

from conftest import parse_sse


@pytest.fixture
def app_state():
    return AppState()


@pytest.fixture
async def client(app_state, provider_router):
    """API client over the in-process app, with providers on a mock transport."""
    services.init_services(app_state, provider_router)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    services.reset_services()


async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


class TestProfilesApi:
    async def test_list_default(self, client):
        resp = await client.get("/api/profiles")
        assert resp.status_code == 200
        data = resp.json()
        assert data[0]["id"] == DEFAULT_PROFILE_ID
        assert data[0]["systemPrompt"].startswith("You are Vivica")
        assert data[0]["isDefault"] is True

    async def test_create_update_delete(self, client):
        resp = await client.post("/api/profiles", json={"name": "Critic", "model": "openai/gpt-4o"})
        assert resp.status_code == 200
        profile = resp.json()
        assert profile["route"] == "secondary"
        assert profile["systemPrompt"] == "You are an advanced AI."

        resp = await client.put(f"/api/profiles/{profile['id']}", json={"temperature": 0.2})
        assert resp.json()["temperature"] == 0.2

        resp = await client.delete(f"/api/profiles/{profile['id']}")
        assert resp.status_code == 200
        assert resp.json()["deletedConversations"] == 0

        resp = await client.get(f"/api/profiles/{profile['id']}")
        assert resp.status_code == 404

    async def test_temperature_out_of_range(self, client):
        resp = await client.post("/api/profiles", json={"temperature": 1.5})
        assert resp.status_code == 422

    async def test_default_profile_cannot_be_deleted(self, client):
        resp = await client.delete(f"/api/profiles/{DEFAULT_PROFILE_ID}")
        assert resp.status_code == 400

    async def test_memory_endpoints(self, client):
        resp = await client.put(
            f"/api/profiles/{DEFAULT_PROFILE_ID}/memory",
            json={"identity": "Sam", "behavior": "no emoji"},
        )
        assert resp.json()["identity"] == "Sam"

        resp = await client.post(f"/api/profiles/{DEFAULT_PROFILE_ID}/memory/purge")
        assert resp.json() == {"identity": "", "personality": "", "behavior": "", "notes": "", "summary": ""}


class TestConversationsApi:
    async def test_create_list_toggle_delete(self, client, app_state):
        resp = await client.post("/api/conversations", json={})
        conversation = resp.json()
        assert conversation["title"] == "New Conversation"
        assert app_state.settings.active_conversation_id == conversation["id"]

        resp = await client.get("/api/conversations")
        assert [c["id"] for c in resp.json()] == [conversation["id"]]
        assert resp.json()[0]["messageCount"] == 0

        resp = await client.put(f"/api/conversations/{conversation['id']}", json={"isMemoryEnabled": False})
        assert resp.json()["isMemoryEnabled"] is False

        resp = await client.delete(f"/api/conversations/{conversation['id']}")
        assert resp.status_code == 200
        resp = await client.get(f"/api/conversations/{conversation['id']}")
        assert resp.status_code == 404


class TestMessagesApi:
    async def test_send_streams_accumulated_reply(self, client, app_state):
        resp = await client.post("/api/messages", json={"content": "Hello"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")

        events = parse_sse(resp.text)
        assert [e["content"] for e in events[:3]] == ["", "Hi", "Hi there"]
        assert events[-2]["done"] is True
        assert events[-2]["message"]["content"] == "Hi there"
        assert events[-1] == "[DONE]"

        conversation = app_state.active_conversation
        assert conversation.title == "Hello"
        assert [m.content for m in conversation.messages] == ["Hello", "Hi there"]

    async def test_blank_send_is_skipped(self, client, app_state):
        resp = await client.post("/api/messages", json={"content": "  "})

        assert parse_sse(resp.text) == [{"skipped": True}, "[DONE]"]
        assert app_state.conversations == []

    async def test_error_then_retry(self, client, app_state):
        resp = await client.post("/api/profiles", json={"model": "openai/gpt-4o"})
        await client.post(f"/api/profiles/{resp.json()['id']}/activate")

        events = parse_sse((await client.post("/api/messages", json={"content": "Hello"})).text)
        failed = events[-2]
        assert failed["error"] == "Error: API Key missing for external model."
        assert failed["message"]["isError"] is True

        await client.put("/api/settings", json={"openRouterApiKey": "sk-or-abcdef"})
        resp = await client.post(f"/api/messages/{failed['message']['id']}/retry")

        events = parse_sse(resp.text)
        assert events[-2]["message"]["content"] == "External"
        assert [m.content for m in app_state.active_conversation.messages] == [
            "Hello", "Error: API Key missing for external model.", "Hello", "External",
        ]

    async def test_retry_unknown_message(self, client):
        resp = await client.post("/api/messages/nope/retry")
        assert resp.status_code == 404

    async def test_send_to_unknown_conversation(self, client):
        resp = await client.post("/api/messages", json={"content": "hi", "conversationId": "nope"})
        assert resp.status_code == 404

    async def test_cancel_when_idle(self, client):
        resp = await client.post("/api/messages/cancel")
        assert resp.json() == {"cancelled": False}


class TestMemorySyncApi:
    async def test_sync_after_turn(self, client, app_state):
        await client.post("/api/messages", json={"content": "I like tea"})

        resp = await client.post("/api/memory/sync", json={})

        assert resp.status_code == 200
        data = resp.json()
        assert data["skipped"] is False
        assert data["memory"]["summary"] == "- prefers short answers"
        assert app_state.default_profile.memory.summary == "- prefers short answers"

    async def test_sync_without_conversation_is_skipped(self, client):
        resp = await client.post("/api/memory/sync")
        assert resp.json() == {"skipped": True}


class TestSettingsApi:
    async def test_key_is_masked(self, client):
        resp = await client.put("/api/settings", json={"openRouterApiKey": "sk-or-v1-123456", "themeFamily": "blue"})

        data = resp.json()
        assert data["hasOpenRouterApiKey"] is True
        assert data["openRouterApiKeyMasked"] == "sk-...3456"
        assert data["themeFamily"] == "blue"
        assert "openRouterApiKey" not in data

    async def test_invalid_theme(self, client):
        resp = await client.put("/api/settings", json={"themeFamily": "green"})
        assert resp.status_code == 422

    async def test_models_follow_credential(self, client):
        resp = await client.get("/api/settings/models")
        assert [m["id"] for m in resp.json()] == [
            "gemini-3-flash-preview", "gemini-3-pro-preview", "gemini-2.5-flash-lite-latest",
        ]

        await client.put("/api/settings", json={"openRouterApiKey": "sk-or-1"})
        resp = await client.get("/api/settings/models")
        assert "openai/gpt-4o" in [m["id"] for m in resp.json()]

        await client.put("/api/settings", json={"openRouterApiKey": ""})
        resp = await client.get("/api/settings/models")
        assert len(resp.json()) == 3
