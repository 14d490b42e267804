"""
Process-wide service registry.

Holds the application state, the chat orchestrator and the model catalog
built at startup. Routers reach them through the getters below, which
FastAPI resolves as dependencies.
"""

import logging
from typing import Optional

from chat.orchestrator import ChatOrchestrator
from chat.state import AppState
from llm.factory import ModelCatalog, ProviderRouter
from pipeline.summarizer import Summarizer

logger = logging.getLogger(__name__)

_state: Optional[AppState] = None
_orchestrator: Optional[ChatOrchestrator] = None
_catalog: Optional[ModelCatalog] = None


def init_services(
    state: AppState,
    router: ProviderRouter,
    summarizer: Optional[Summarizer] = None,
) -> ChatOrchestrator:
    """Wire the state, orchestrator and catalog together."""
    global _state, _orchestrator, _catalog

    _state = state
    _orchestrator = ChatOrchestrator(state, router, summarizer)
    _catalog = ModelCatalog(router)
    logger.info("Chat services initialized")
    return _orchestrator


def reset_services() -> None:
    global _state, _orchestrator, _catalog
    _state = None
    _orchestrator = None
    _catalog = None


def get_state() -> AppState:
    if _state is None:
        raise RuntimeError("Services not initialized. Call init_services() first.")
    return _state


def get_orchestrator() -> ChatOrchestrator:
    if _orchestrator is None:
        raise RuntimeError("Services not initialized. Call init_services() first.")
    return _orchestrator


def get_catalog() -> ModelCatalog:
    if _catalog is None:
        raise RuntimeError("Services not initialized. Call init_services() first.")
    return _catalog
