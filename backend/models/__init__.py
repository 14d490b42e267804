"""
Pydantic models package.
Each module contains models for a specific domain.
"""

from models.memory import UserMemory, MemoryUpdate
from models.message import Message, MessageCreate, Role
from models.conversation import Conversation, ConversationCreate, ConversationSummary, ConversationUpdate
from models.profile import AIProfile, ModelRoute, ProfileCreate, ProfileUpdate
from models.settings import AppSettings, SettingsUpdate

__all__ = [
    "UserMemory", "MemoryUpdate",
    "Message", "MessageCreate", "Role",
    "Conversation", "ConversationCreate", "ConversationSummary", "ConversationUpdate",
    "AIProfile", "ModelRoute", "ProfileCreate", "ProfileUpdate",
    "AppSettings", "SettingsUpdate",
]
