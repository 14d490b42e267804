"""
LLM Provider factory module.
Creates provider instances and dispatches chat streams to the transport
selected by a profile's model route.
"""

import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence

import httpx

from config import Settings, get_settings
from llm.base import LLMProvider, MissingCredentialError, ModelInfo
from llm.gemini_provider import GeminiProvider
from llm.openrouter_provider import OpenRouterProvider
from models.message import Message
from models.profile import AIProfile, ModelRoute
from pipeline.instructions import build_system_instruction

logger = logging.getLogger(__name__)

# ============================================================
# Provider Registry
# ============================================================
PROVIDERS: Dict[str, type] = {
    "gemini": GeminiProvider,
    "openrouter": OpenRouterProvider,
}

ROUTE_PROVIDERS: Dict[ModelRoute, str] = {
    ModelRoute.PRIMARY: "gemini",
    ModelRoute.SECONDARY: "openrouter",
}


def create_provider(
    provider_name: str,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    **kwargs
) -> Optional[LLMProvider]:
    """
    Create an LLM provider instance.

    Args:
        provider_name: Name of the provider (gemini, openrouter)
        api_key: API key for authentication
        base_url: Custom base URL for the API
        **kwargs: Provider-specific options (timeout, transport)

    Returns:
        LLMProvider instance or None if provider not found
    """
    provider_class = PROVIDERS.get(provider_name.lower())

    if not provider_class:
        logger.error(f"Unknown provider: {provider_name}")
        return None

    return provider_class(api_key=api_key, base_url=base_url, **kwargs)


def get_available_providers() -> List[str]:
    """Get list of all supported provider names."""
    return list(PROVIDERS.keys())


def history_to_messages(history: Sequence[Message]) -> List[Dict[str, str]]:
    """Flatten conversation messages into provider-neutral role/content dicts."""
    return [{"role": msg.role.value, "content": msg.content} for msg in history]


class ProviderRouter:
    """
    Single streaming entry point over the primary and secondary transports.

    The router never touches application state: it returns streams and
    values that the chat orchestrator applies.
    """

    def __init__(
        self,
        primary_api_key: Optional[str] = None,
        gemini_base_url: Optional[str] = None,
        openrouter_base_url: Optional[str] = None,
        timeout: float = 120.0,
        models_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.primary_api_key = primary_api_key
        self.gemini_base_url = gemini_base_url
        self.openrouter_base_url = openrouter_base_url
        self.timeout = timeout
        self.models_timeout = models_timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ProviderRouter":
        settings = settings or get_settings()
        return cls(
            primary_api_key=settings.primary_api_key,
            gemini_base_url=settings.gemini_base_url,
            openrouter_base_url=settings.openrouter_base_url,
            timeout=settings.request_timeout,
            models_timeout=settings.models_timeout,
        )

    def primary(self) -> LLMProvider:
        return create_provider(
            "gemini",
            api_key=self.primary_api_key,
            base_url=self.gemini_base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    def secondary(self, api_key: Optional[str], timeout: Optional[float] = None) -> LLMProvider:
        return create_provider(
            "openrouter",
            api_key=api_key,
            base_url=self.openrouter_base_url,
            timeout=timeout or self.timeout,
            transport=self._transport,
        )

    def provider_for(self, profile: AIProfile, secondary_api_key: Optional[str] = None) -> LLMProvider:
        """
        Pick the transport for ``profile``.

        Raises:
            MissingCredentialError: The profile routes to the secondary
                provider and no credential was supplied.
        """
        if profile.route == ModelRoute.PRIMARY:
            return self.primary()
        if not secondary_api_key:
            raise MissingCredentialError(OpenRouterProvider.MISSING_KEY_MESSAGE)
        return self.secondary(secondary_api_key)

    async def stream_chat(
        self,
        history: Sequence[Message],
        profile: AIProfile,
        use_memory: bool,
        secondary_api_key: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[str]:
        """
        Stream the assistant reply for ``history`` as text fragments.

        The credential check happens on the first iteration, before any
        request is sent. Setting ``cancel_event`` stops the stream at the
        next fragment and closes the upstream response.
        """
        provider = self.provider_for(profile, secondary_api_key)
        system_instruction = build_system_instruction(profile, use_memory)
        logger.info(
            f"Streaming {profile.model} via {provider.provider_name} "
            f"({len(history)} messages, memory={'on' if use_memory else 'off'})"
        )

        stream = provider.stream(
            messages=history_to_messages(history),
            model=profile.model,
            temperature=profile.temperature,
            system_instruction=system_instruction,
        )
        try:
            async for chunk in stream:
                if cancel_event is not None and cancel_event.is_set():
                    logger.info("Stream cancelled by caller")
                    break
                if chunk.is_done:
                    break
                yield chunk.content
        finally:
            await stream.aclose()

    async def list_models(self, secondary_api_key: Optional[str] = None) -> List[ModelInfo]:
        """Built-in Gemini models, plus the OpenRouter catalog when a key is set."""
        models = list(GeminiProvider.KNOWN_MODELS)
        if not secondary_api_key:
            return models

        try:
            external = await self.secondary(secondary_api_key, timeout=self.models_timeout).list_models()
        except Exception as e:
            logger.error(f"OpenRouter model fetch failed: {e}")
            return models

        logger.info(f"Found {len(external)} models on OpenRouter")
        return models + external


class ModelCatalog:
    """
    Merged model list, refetched only when the secondary credential changes.
    """

    def __init__(self, router: ProviderRouter):
        self._router = router
        self._api_key: Optional[str] = None
        self._models: Optional[List[ModelInfo]] = None
        self._lock = asyncio.Lock()

    async def get(self, secondary_api_key: Optional[str]) -> List[ModelInfo]:
        key = secondary_api_key or None
        async with self._lock:
            if self._models is None or key != self._api_key:
                self._models = await self._router.list_models(key)
                self._api_key = key
            return list(self._models)

    def invalidate(self) -> None:
        self._models = None
