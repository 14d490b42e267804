"""Shared test fixtures for the Vivica backend."""

import json
from typing import List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from chat.orchestrator import ChatOrchestrator
from chat.state import AppState
from kv_store import KeyValueStore
from llm.base import LLMResponse
from llm.factory import ProviderRouter
from pipeline.summarizer import Summarizer
from storage import StorageService

GEMINI_BASE = "https://gemini.test/v1beta"
OPENROUTER_BASE = "https://openrouter.test/api/v1"


def sse_body(*payloads) -> str:
    """Render payloads as ``data:`` lines; strings are written verbatim."""
    lines = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        lines.append(f"data: {data}\n\n")
    return "".join(lines)


def gemini_chunk(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def openrouter_chunk(content: Optional[str]) -> dict:
    delta = {} if content is None else {"content": content}
    return {"choices": [{"index": 0, "delta": delta}]}


def parse_sse(text: str) -> List:
    """Decode an SSE response body into its data payloads."""
    events = []
    for line in text.splitlines():
        if not line.startswith("data: "):
            continue
        data = line[len("data: "):]
        events.append(data if data == "[DONE]" else json.loads(data))
    return events


class ScriptedRouter:
    """
    Stand-in for ProviderRouter that replays scripted turns.

    Each call to ``stream_chat`` consumes the next ``(fragments, error)``
    script; the last script is reused once the list runs out.
    """

    def __init__(self, *scripts, gate=None):
        self.scripts = list(scripts) or [([], None)]
        self.gate = gate
        self.calls = []

    async def stream_chat(self, history, profile, use_memory, secondary_api_key=None, cancel_event=None):
        self.calls.append({
            "history": [(m.role.value, m.content) for m in history],
            "profile_id": profile.id,
            "use_memory": use_memory,
            "secondary_api_key": secondary_api_key,
        })
        fragments, error = self.scripts.pop(0) if len(self.scripts) > 1 else self.scripts[0]
        if self.gate is not None:
            await self.gate.wait()
        for fragment in fragments:
            if cancel_event is not None and cancel_event.is_set():
                break
            yield fragment
        if error is not None:
            raise error

    def primary(self):
        return AsyncMock()


@pytest.fixture
def state():
    """In-memory application state with the built-in default profile."""
    return AppState()


@pytest.fixture
def summary_provider():
    provider = AsyncMock()
    provider.generate = AsyncMock(
        return_value=LLMResponse(content="- likes tea", model="gemini-3-flash-preview", provider="gemini")
    )
    return provider


@pytest.fixture
def make_orchestrator(state, summary_provider):
    def _make(router) -> ChatOrchestrator:
        return ChatOrchestrator(state, router, Summarizer(summary_provider))
    return _make


@pytest.fixture
async def kv_store(tmp_path):
    store = KeyValueStore(str(tmp_path / "vivica.db"))
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
def storage(kv_store):
    return StorageService(kv_store)


@pytest.fixture
def mock_api():
    """
    httpx.MockTransport imitating both providers.

    Records every request in ``mock_api.requests``.
    """
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path
        if path.endswith(":streamGenerateContent"):
            return httpx.Response(
                200,
                text=sse_body(gemini_chunk("Hi"), gemini_chunk(" there")),
                headers={"content-type": "text/event-stream"},
            )
        if path.endswith(":generateContent"):
            return httpx.Response(200, json=gemini_chunk("- prefers short answers"))
        if path.endswith("/chat/completions"):
            return httpx.Response(
                200,
                text=sse_body(openrouter_chunk("Ext"), openrouter_chunk("ernal"), "[DONE]"),
                headers={"content-type": "text/event-stream"},
            )
        if path.endswith("/models"):
            return httpx.Response(200, json={"data": [
                {"id": "openai/gpt-4o", "name": "OpenAI: GPT-4o"},
                {"id": "meta-llama/llama-3-70b"},
            ]})
        return httpx.Response(404, json={"error": {"message": f"no route for {path}"}})

    transport = httpx.MockTransport(handler)
    transport.requests = requests
    return transport


@pytest.fixture
def provider_router(mock_api):
    return ProviderRouter(
        primary_api_key="test-gemini-key",
        gemini_base_url=GEMINI_BASE,
        openrouter_base_url=OPENROUTER_BASE,
        transport=mock_api,
    )
