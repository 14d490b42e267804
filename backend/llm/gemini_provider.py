"""
Gemini LLM provider implementation (primary transport).
Talks to the Generative Language REST API directly over httpx.
"""

import json
import logging
from typing import List, Dict, Any, Optional, AsyncGenerator
import httpx

from llm.base import LLMProvider, LLMResponse, StreamChunk, ModelInfo, TransportError

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """
    Gemini API provider.

    Requests use the alternating-turn schema: user turns keep the "user"
    role, everything else is sent as "model". The system instruction and
    temperature go in as generation parameters.
    """

    provider_name = "gemini"

    # Built-in model registry (always offered, even without OpenRouter)
    KNOWN_MODELS = [
        ModelInfo(id="gemini-3-flash-preview", name="Gemini 3 Flash (Fast)"),
        ModelInfo(id="gemini-3-pro-preview", name="Gemini 3 Pro (Smart)"),
        ModelInfo(id="gemini-2.5-flash-lite-latest", name="Flash Lite"),
    ]

    MISSING_KEY_MESSAGE = "Gemini API key is required but not set"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, base_url, timeout, transport)
        self.base_url = (base_url or "https://generativelanguage.googleapis.com/v1beta").rstrip("/")

    def _get_headers(self) -> Dict[str, str]:
        """Build request headers with authentication."""
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    @staticmethod
    def _to_contents(messages: List[Dict[str, str]]) -> List[Dict[str, Any]]:
        return [
            {
                "role": "user" if msg["role"] == "user" else "model",
                "parts": [{"text": msg["content"]}],
            }
            for msg in messages
        ]

    def _build_payload(
        self,
        messages: List[Dict[str, str]],
        temperature: float,
        system_instruction: Optional[str],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": self._to_contents(messages),
            "generationConfig": {"temperature": temperature},
        }
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return payload

    @staticmethod
    def _chunk_text(data: Dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    async def list_models(self) -> List[ModelInfo]:
        """Gemini models offered by the app (static registry)."""
        return self.KNOWN_MODELS.copy()

    async def generate(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        system_instruction: Optional[str] = None,
    ) -> LLMResponse:
        """Generate a complete response from Gemini."""
        self._require_api_key(self.MISSING_KEY_MESSAGE)
        payload = self._build_payload(messages, temperature, system_instruction)
        url = f"{self.base_url}/models/{model}:generateContent"
        logger.debug(f"Gemini request to {url}")

        try:
            async with self._client() as client:
                response = await client.post(url, headers=self._get_headers(), json=payload)
                await self._check_response(response)
                data = response.json()
        except httpx.HTTPError as e:
            raise TransportError(f"Gemini request failed: {e}") from e

        candidates = data.get("candidates") or [{}]
        return LLMResponse(
            content=self._chunk_text(data),
            model=model,
            provider=self.provider_name,
            usage={
                "input_tokens": data.get("usageMetadata", {}).get("promptTokenCount", 0),
                "output_tokens": data.get("usageMetadata", {}).get("candidatesTokenCount", 0),
            },
            finish_reason=candidates[0].get("finishReason"),
        )

    async def stream(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        system_instruction: Optional[str] = None,
    ) -> AsyncGenerator[StreamChunk, None]:
        """Stream response chunks from Gemini (SSE framing via alt=sse)."""
        self._require_api_key(self.MISSING_KEY_MESSAGE)
        payload = self._build_payload(messages, temperature, system_instruction)
        url = f"{self.base_url}/models/{model}:streamGenerateContent"
        logger.debug(f"Gemini stream request to {url}")

        try:
            async with self._client() as client:
                async with client.stream(
                    "POST",
                    url,
                    params={"alt": "sse"},
                    headers=self._get_headers(),
                    json=payload,
                ) as response:
                    await self._check_response(response)

                    async for line in response.aiter_lines():
                        data_str = self._sse_data(line)
                        if not data_str:
                            continue
                        try:
                            data = json.loads(data_str)
                        except json.JSONDecodeError as e:
                            logger.debug(f"Skipping unparseable Gemini chunk: {e}")
                            continue
                        text = self._chunk_text(data)
                        if text:
                            yield StreamChunk(content=text)
        except httpx.HTTPError as e:
            raise TransportError(f"Gemini stream failed: {e}") from e

        yield StreamChunk(content="", is_done=True)
