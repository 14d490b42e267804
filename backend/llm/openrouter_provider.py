"""
OpenRouter LLM provider implementation (secondary transport).
OpenAI-compatible chat completions with an SSE response body.
"""

import json
import logging
from typing import List, Dict, Any, Optional, AsyncGenerator
import httpx

from llm.base import LLMProvider, LLMResponse, StreamChunk, ModelInfo, TransportError

logger = logging.getLogger(__name__)


class OpenRouterProvider(LLMProvider):
    """
    OpenRouter API provider.
    Lists the public catalog via the /models endpoint.
    """

    provider_name = "openrouter"

    MISSING_KEY_MESSAGE = "API Key missing for external model."

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, base_url, timeout, transport)
        self.base_url = (base_url or "https://openrouter.ai/api/v1").rstrip("/")

    def _get_headers(self) -> Dict[str, str]:
        """Build request headers with authentication."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _to_messages(
        messages: List[Dict[str, str]],
        system_instruction: Optional[str],
    ) -> List[Dict[str, str]]:
        formatted = [{"role": "system", "content": system_instruction or ""}]
        for msg in messages:
            formatted.append({
                "role": "user" if msg["role"] == "user" else "assistant",
                "content": msg["content"],
            })
        return formatted

    async def list_models(self) -> List[ModelInfo]:
        """
        Fetch the OpenRouter model catalog.
        The endpoint is public, so no key is needed to browse it.
        """
        async with self._client() as client:
            response = await client.get(f"{self.base_url}/models")
            await self._check_response(response)
            data = response.json()

        models = []
        for model in data.get("data", []):
            model_id = model.get("id")
            if not model_id:
                continue
            models.append(ModelInfo(id=model_id, name=model.get("name") or model_id))
        return models

    async def generate(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        system_instruction: Optional[str] = None,
    ) -> LLMResponse:
        """Generate a complete response from OpenRouter."""
        self._require_api_key(self.MISSING_KEY_MESSAGE)
        payload = {
            "model": model,
            "messages": self._to_messages(messages, system_instruction),
            "temperature": temperature,
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=self._get_headers(),
                    json=payload,
                )
                await self._check_response(response)
                data = response.json()
        except httpx.HTTPError as e:
            raise TransportError(f"OpenRouter request failed: {e}") from e

        choice = (data.get("choices") or [{}])[0]
        # OpenRouter adds cost and token detail objects; keep the counts only
        usage = data.get("usage") or {}
        return LLMResponse(
            content=(choice.get("message") or {}).get("content") or "",
            model=model,
            provider=self.provider_name,
            usage={
                "input_tokens": usage.get("prompt_tokens", 0),
                "output_tokens": usage.get("completion_tokens", 0),
            },
            finish_reason=choice.get("finish_reason"),
        )

    async def stream(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        system_instruction: Optional[str] = None,
    ) -> AsyncGenerator[StreamChunk, None]:
        """Stream response chunks from OpenRouter.

        Sampling parameters are left to OpenRouter's defaults; the body
        carries only the model, the messages and the stream flag.
        """
        self._require_api_key(self.MISSING_KEY_MESSAGE)
        payload: Dict[str, Any] = {
            "model": model,
            "messages": self._to_messages(messages, system_instruction),
            "stream": True,
        }

        try:
            async with self._client() as client:
                async with client.stream(
                    "POST",
                    f"{self.base_url}/chat/completions",
                    headers=self._get_headers(),
                    json=payload,
                ) as response:
                    await self._check_response(response)

                    async for line in response.aiter_lines():
                        data_str = self._sse_data(line)
                        if data_str is None:
                            continue
                        if data_str == "[DONE]":
                            break

                        # A malformed line drops that fragment only
                        try:
                            data = json.loads(data_str)
                            delta = data["choices"][0].get("delta") or {}
                            content = delta.get("content") or ""
                        except (json.JSONDecodeError, KeyError, IndexError, TypeError, AttributeError) as e:
                            logger.debug(f"Skipping unparseable OpenRouter chunk: {e}")
                            continue
                        yield StreamChunk(content=content)
        except httpx.HTTPError as e:
            raise TransportError(f"OpenRouter stream failed: {e}") from e

        yield StreamChunk(content="", is_done=True)
