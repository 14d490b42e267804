"""
Abstract base class for LLM providers.
All providers must implement this interface.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, AsyncGenerator
from pydantic import BaseModel
from dataclasses import dataclass
import httpx

logger = logging.getLogger(__name__)


# ============================================================
# Errors
# ============================================================
class ProviderError(Exception):
    """Base class for failures surfaced by the provider layer."""


class MissingCredentialError(ProviderError, ValueError):
    """A provider was selected but no API key is configured.

    Raised before any network call is attempted.
    """


class TransportError(ProviderError):
    """Network failure or aborted stream while talking to a provider."""


class ProviderHTTPError(TransportError):
    """Provider answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


# ============================================================
# Data types
# ============================================================
@dataclass
class StreamChunk:
    """A single chunk from streaming response."""
    content: str
    is_done: bool = False
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


class LLMResponse(BaseModel):
    """Complete response from LLM."""
    content: str
    model: str
    provider: str
    usage: Dict[str, int] = {}
    finish_reason: Optional[str] = None


class ModelInfo(BaseModel):
    """Information about an available model."""
    id: str
    name: str


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Each provider implementation must:
    1. Implement list_models() to report available models
    2. Implement generate() for non-streaming responses
    3. Implement stream() for SSE streaming responses

    Messages are plain dicts with 'role' ("user" | "assistant") and
    'content'. The system instruction travels separately because each
    provider places it differently on the wire.
    """

    provider_name: str = "base"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize provider with credentials.

        Args:
            api_key: API key for authentication (if required)
            base_url: Base URL for API requests
            timeout: Request timeout in seconds
            transport: Optional httpx transport (mock transports in tests)
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        """New HTTP client bound to this provider's transport."""
        return httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self._transport,
        )

    def _require_api_key(self, message: str) -> str:
        if not self.api_key:
            raise MissingCredentialError(message)
        return self.api_key

    @abstractmethod
    async def list_models(self) -> List[ModelInfo]:
        """
        List available models.

        Returns:
            List of ModelInfo objects for available models
        """
        pass

    @abstractmethod
    async def generate(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        system_instruction: Optional[str] = None,
    ) -> LLMResponse:
        """
        Generate a complete response (non-streaming).

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model identifier to use
            temperature: Sampling temperature
            system_instruction: Composed persona + memory instruction

        Returns:
            LLMResponse with complete generated text
        """
        pass

    @abstractmethod
    async def stream(
        self,
        messages: List[Dict[str, str]],
        model: str,
        temperature: float = 0.7,
        system_instruction: Optional[str] = None,
    ) -> AsyncGenerator[StreamChunk, None]:
        """
        Stream response chunks via SSE.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model identifier to use
            temperature: Sampling temperature
            system_instruction: Composed persona + memory instruction

        Yields:
            StreamChunk objects with partial content
        """
        pass

    # ── Shared response handling ──────────────────────────────────
    @staticmethod
    def _error_message(body: str) -> str:
        """Pull the provider's error text out of a JSON error body."""
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            return body.strip()
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        return body.strip()

    async def _check_response(self, response: httpx.Response) -> None:
        """Raise ProviderHTTPError for any non-2xx response.

        Works for both streamed and buffered responses: the body is read
        explicitly so the error text is available either way.
        """
        if response.is_success:
            return
        body = (await response.aread()).decode(errors="replace")
        detail = self._error_message(body) or response.reason_phrase
        logger.error(f"{self.provider_name} API error {response.status_code}: {body[:500]}")
        raise ProviderHTTPError(
            f"{self.provider_name} API error {response.status_code}: {detail}",
            status_code=response.status_code,
        )

    @staticmethod
    def _sse_data(line: str) -> Optional[str]:
        """Payload of an SSE ``data:`` line, or None for any other line."""
        if not line or not line.startswith("data:"):
            return None
        return line[5:].strip()
