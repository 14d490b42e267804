"""
Profile memory model definitions.
Structured long-term recall attached to each AI profile.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


MEMORY_FIELDS = ("identity", "personality", "behavior", "notes", "summary")


class UserMemory(BaseModel):
    """
    Accumulated context for a profile.

    identity/personality/behavior/notes are edited by the user; summary is
    written by the memory sync and is always replaced, never appended to.
    """
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    identity: str = ""
    personality: str = ""
    behavior: str = ""
    notes: str = ""
    summary: Optional[str] = ""

    def is_empty(self) -> bool:
        """True when every field is blank."""
        return not any(getattr(self, name) for name in MEMORY_FIELDS)


class MemoryUpdate(BaseModel):
    """Schema for editing memory fields. Omitted fields are left unchanged."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    identity: Optional[str] = None
    personality: Optional[str] = None
    behavior: Optional[str] = None
    notes: Optional[str] = None
    summary: Optional[str] = None
