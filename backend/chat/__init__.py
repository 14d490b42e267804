"""
Chat package.
Application state and the turn orchestrator that drives it.
"""

from chat.orchestrator import ChatOrchestrator
from chat.state import AppState, ProtectedProfileError

__all__ = [
    "AppState",
    "ChatOrchestrator",
    "ProtectedProfileError",
]
