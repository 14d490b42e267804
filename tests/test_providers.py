"""Tests for the Gemini and OpenRouter transports over httpx.MockTransport."""

import json

import httpx
import pytest

from llm.base import MissingCredentialError, ProviderHTTPError, TransportError
from llm.gemini_provider import GeminiProvider
from llm.openrouter_provider import OpenRouterProvider

from conftest import GEMINI_BASE, OPENROUTER_BASE, gemini_chunk, openrouter_chunk, sse_body

HISTORY = [
    {"role": "user", "content": "Hello"},
    {"role": "assistant", "content": "Hi!"},
    {"role": "user", "content": "How are you?"},
]


async def collect(stream):
    return [chunk async for chunk in stream]


def _transport(response_factory):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return response_factory(request)

    transport = httpx.MockTransport(handler)
    return transport, requests


def _sse_response(*payloads):
    return lambda request: httpx.Response(
        200, text=sse_body(*payloads), headers={"content-type": "text/event-stream"}
    )


# ─── Gemini ──────────────────────────────────────────────────────────


class TestGeminiProvider:
    def _provider(self, transport, api_key="g-key"):
        return GeminiProvider(api_key=api_key, base_url=GEMINI_BASE, transport=transport)

    async def test_stream_request_shape(self):
        transport, requests = _transport(_sse_response(gemini_chunk("ok")))
        provider = self._provider(transport)

        await collect(provider.stream(HISTORY, "gemini-3-flash-preview", 0.3, "Be brief."))

        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1beta/models/gemini-3-flash-preview:streamGenerateContent"
        assert request.url.params["alt"] == "sse"
        assert request.headers["x-goog-api-key"] == "g-key"

        body = json.loads(request.content)
        assert [c["role"] for c in body["contents"]] == ["user", "model", "user"]
        assert body["contents"][1]["parts"] == [{"text": "Hi!"}]
        assert body["systemInstruction"] == {"parts": [{"text": "Be brief."}]}
        assert body["generationConfig"] == {"temperature": 0.3}

    async def test_stream_yields_non_empty_text(self):
        transport, _ = _transport(_sse_response(
            gemini_chunk("Hi"),
            {"candidates": [{"content": {"parts": []}}]},
            "{not json",
            gemini_chunk(" there"),
        ))
        chunks = await collect(self._provider(transport).stream(HISTORY, "gemini-3-flash-preview"))

        assert [c.content for c in chunks if not c.is_done] == ["Hi", " there"]
        assert chunks[-1].is_done

    async def test_missing_key_fails_before_request(self):
        transport, requests = _transport(_sse_response(gemini_chunk("never")))
        provider = self._provider(transport, api_key=None)

        with pytest.raises(MissingCredentialError):
            await collect(provider.stream(HISTORY, "gemini-3-flash-preview"))
        assert requests == []

    async def test_http_error_status(self):
        transport, _ = _transport(
            lambda request: httpx.Response(403, json={"error": {"message": "API key not valid"}})
        )

        with pytest.raises(ProviderHTTPError) as excinfo:
            await collect(self._provider(transport).stream(HISTORY, "gemini-3-flash-preview"))

        assert excinfo.value.status_code == 403
        assert "API key not valid" in str(excinfo.value)

    async def test_network_error_is_transport_error(self):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport, _ = _transport(fail)
        with pytest.raises(TransportError):
            await collect(self._provider(transport).stream(HISTORY, "gemini-3-flash-preview"))

    async def test_generate_returns_text(self):
        transport, requests = _transport(
            lambda request: httpx.Response(200, json=gemini_chunk("- likes tea"))
        )
        response = await self._provider(transport).generate(
            [{"role": "user", "content": "summarize"}],
            "gemini-3-flash-preview",
            system_instruction="memory processor",
        )

        assert response.content == "- likes tea"
        assert requests[0].url.path.endswith(":generateContent")

    async def test_generate_without_candidates_is_empty(self):
        transport, _ = _transport(lambda request: httpx.Response(200, json={"candidates": []}))
        response = await self._provider(transport).generate(
            [{"role": "user", "content": "summarize"}], "gemini-3-flash-preview"
        )
        assert response.content == ""


# ─── OpenRouter ──────────────────────────────────────────────────────


class TestOpenRouterProvider:
    def _provider(self, transport, api_key="sk-or-key"):
        return OpenRouterProvider(api_key=api_key, base_url=OPENROUTER_BASE, transport=transport)

    async def test_stream_request_shape(self):
        transport, requests = _transport(_sse_response(openrouter_chunk("ok"), "[DONE]"))

        await collect(self._provider(transport).stream(HISTORY, "openai/gpt-4o", 0.9, "Be brief."))

        request = requests[0]
        assert str(request.url) == f"{OPENROUTER_BASE}/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-or-key"
        assert request.headers["content-type"] == "application/json"

        body = json.loads(request.content)
        assert body == {
            "model": "openai/gpt-4o",
            "messages": [
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": "Hello"},
                {"role": "assistant", "content": "Hi!"},
                {"role": "user", "content": "How are you?"},
            ],
            "stream": True,
        }

    async def test_done_marker_ends_stream(self):
        transport, _ = _transport(_sse_response(
            openrouter_chunk("one"), "[DONE]", openrouter_chunk("ignored")
        ))
        chunks = await collect(self._provider(transport).stream(HISTORY, "openai/gpt-4o"))

        assert [c.content for c in chunks if not c.is_done] == ["one"]

    async def test_malformed_lines_are_skipped(self):
        transport, _ = _transport(_sse_response(
            openrouter_chunk("a"),
            "{broken",
            {"choices": []},
            openrouter_chunk(None),
            openrouter_chunk("b"),
            "[DONE]",
        ))
        chunks = await collect(self._provider(transport).stream(HISTORY, "openai/gpt-4o"))

        assert [c.content for c in chunks if not c.is_done] == ["a", "", "b"]
        assert "".join(c.content for c in chunks) == "ab"

    async def test_missing_key_fails_before_request(self):
        transport, requests = _transport(_sse_response("[DONE]"))

        with pytest.raises(MissingCredentialError, match="API Key missing for external model."):
            await collect(self._provider(transport, api_key="").stream(HISTORY, "openai/gpt-4o"))
        assert requests == []

    async def test_http_error_status(self):
        transport, _ = _transport(
            lambda request: httpx.Response(401, json={"error": {"message": "No auth credentials found"}})
        )

        with pytest.raises(ProviderHTTPError) as excinfo:
            await collect(self._provider(transport).stream(HISTORY, "openai/gpt-4o"))
        assert excinfo.value.status_code == 401

    async def test_generate_keeps_token_counts(self):
        transport, requests = _transport(lambda request: httpx.Response(200, json={
            "choices": [{"message": {"content": "Sure."}, "finish_reason": "stop"}],
            "usage": {
                "prompt_tokens": 5,
                "completion_tokens": 2,
                "total_tokens": 7,
                "cost": 0.00012,
                "prompt_tokens_details": {"cached_tokens": 0},
            },
        }))

        response = await self._provider(transport).generate(HISTORY, "openai/gpt-4o", 0.4, "Be brief.")

        assert response.content == "Sure."
        assert response.provider == "openrouter"
        assert response.finish_reason == "stop"
        assert response.usage == {"input_tokens": 5, "output_tokens": 2}
        body = json.loads(requests[0].content)
        assert body["temperature"] == 0.4
        assert body["messages"][0] == {"role": "system", "content": "Be brief."}

    async def test_generate_without_choices_is_empty(self):
        transport, _ = _transport(lambda request: httpx.Response(200, json={}))

        response = await self._provider(transport).generate(HISTORY, "openai/gpt-4o")

        assert response.content == ""
        assert response.usage == {"input_tokens": 0, "output_tokens": 0}

    async def test_list_models(self):
        transport, requests = _transport(lambda request: httpx.Response(200, json={"data": [
            {"id": "openai/gpt-4o", "name": "OpenAI: GPT-4o"},
            {"id": "mistral/small"},
            {"name": "no id"},
        ]}))
        models = await self._provider(transport).list_models()

        assert [(m.id, m.name) for m in models] == [
            ("openai/gpt-4o", "OpenAI: GPT-4o"),
            ("mistral/small", "mistral/small"),
        ]
        assert requests[0].url.path == "/api/v1/models"
