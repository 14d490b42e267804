"""
Message model definitions.
Represents individual messages in a conversation.
"""

import time
import uuid
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def generate_id() -> str:
    """Opaque unique identifier for messages, conversations and profiles."""
    return uuid.uuid4().hex


def now_ms() -> int:
    """Current instant as milliseconds since the epoch."""
    return int(time.time() * 1000)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """
    A single chat message.

    Assistant messages are created empty when a stream opens and their
    content is replaced with the full accumulated text on every fragment.
    """
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str = Field(default_factory=generate_id)
    role: Role
    content: str = ""
    timestamp: int = Field(default_factory=now_ms)
    profile_id: Optional[str] = None
    is_error: bool = False


class MessageCreate(BaseModel):
    """Schema for sending a message.

    Args:
        content: Message text. Blank content is accepted and ignored.
        conversation_id: Conversation to send into. When omitted the active
            conversation is used, or a new one is started.
    """
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    content: str = Field("", max_length=100000)
    conversation_id: Optional[str] = None
