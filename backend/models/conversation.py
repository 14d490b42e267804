"""
Conversation model definitions.
Represents a chat session held under one AI profile.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.message import Message, generate_id, now_ms

NEW_CONVERSATION_TITLE = "New Conversation"
TITLE_LENGTH = 32


class Conversation(BaseModel):
    """
    Full conversation record as stored.
    The title is fixed at creation and never rewritten automatically.
    """
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str = Field(default_factory=generate_id)
    title: str = NEW_CONVERSATION_TITLE
    last_updated: int = Field(default_factory=now_ms)
    messages: List[Message] = Field(default_factory=list)
    profile_id: str
    is_memory_enabled: bool = True


class ConversationSummary(BaseModel):
    """Conversation listing entry without the message bodies."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str
    title: str
    last_updated: int
    profile_id: str
    is_memory_enabled: bool
    message_count: int = 0


class ConversationCreate(BaseModel):
    """Schema for opening a new, empty workspace."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    title: Optional[str] = None


class ConversationUpdate(BaseModel):
    """Schema for updating conversation flags."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    is_memory_enabled: Optional[bool] = None


def title_from_content(content: str) -> str:
    """Title for a conversation started by its first message."""
    return content[:TITLE_LENGTH]
