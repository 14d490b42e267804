"""
API routers package.
Each router handles a specific domain of endpoints.
"""

from routers import conversations, memory, messages, profiles, settings

__all__ = [
    "conversations",
    "memory",
    "messages",
    "profiles",
    "settings",
]
