"""
LLM providers package.
Unified streaming interface over the Gemini and OpenRouter backends.
"""

from llm.base import (
    LLMProvider,
    LLMResponse,
    MissingCredentialError,
    ModelInfo,
    ProviderError,
    ProviderHTTPError,
    StreamChunk,
    TransportError,
)
from llm.factory import ModelCatalog, ProviderRouter, create_provider, get_available_providers

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "MissingCredentialError",
    "ModelInfo",
    "ProviderError",
    "ProviderHTTPError",
    "StreamChunk",
    "TransportError",
    "ModelCatalog",
    "ProviderRouter",
    "create_provider",
    "get_available_providers",
]
