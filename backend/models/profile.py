"""
AI profile model definitions.
A profile is a named persona: system prompt, model, temperature and memory.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from models.memory import UserMemory
from models.message import generate_id

DEFAULT_PROFILE_ID = "default-assistant"
DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_TEMPERATURE = 0.7
NEW_PROFILE_NAME = "New Entity"
NEW_PROFILE_PROMPT = "You are an advanced AI."


class ModelRoute(str, Enum):
    """Which transport serves a profile's model."""
    PRIMARY = "primary"
    SECONDARY = "secondary"


def resolve_model_route(model_id: str) -> ModelRoute:
    """
    Map a model identifier onto a transport.

    Bare Gemini ids (``gemini-3-pro-preview``) go to the primary provider.
    Vendor-qualified ids (``google/gemini-2.0-flash``, ``openai/gpt-4o``) are
    OpenRouter catalog entries and go to the secondary provider.
    """
    model = (model_id or "").strip().lower()
    if "gemini" in model and "/" not in model:
        return ModelRoute.PRIMARY
    return ModelRoute.SECONDARY


class AIProfile(BaseModel):
    """Full profile record as stored."""
    model_config = ConfigDict(
        populate_by_name=True, alias_generator=to_camel, protected_namespaces=()
    )

    id: str = Field(default_factory=generate_id)
    name: str
    system_prompt: str
    model: str = DEFAULT_MODEL
    temperature: float = Field(DEFAULT_TEMPERATURE, ge=0.0, le=1.0)
    memory: UserMemory = Field(default_factory=UserMemory)
    is_default: bool = False
    # Resolved once on create/edit; records saved without it resolve on load
    route: Optional[ModelRoute] = None

    @model_validator(mode="after")
    def _resolve_route(self) -> "AIProfile":
        if self.route is None:
            self.route = resolve_model_route(self.model)
        return self


class ProfileCreate(BaseModel):
    """Schema for creating a profile. Everything has a sensible default."""
    model_config = ConfigDict(
        populate_by_name=True, alias_generator=to_camel, protected_namespaces=()
    )

    name: str = Field(NEW_PROFILE_NAME, min_length=1, max_length=100)
    system_prompt: str = NEW_PROFILE_PROMPT
    model: str = DEFAULT_MODEL
    temperature: float = Field(DEFAULT_TEMPERATURE, ge=0.0, le=1.0)


class ProfileUpdate(BaseModel):
    """Schema for updating a profile."""
    model_config = ConfigDict(
        populate_by_name=True, alias_generator=to_camel, protected_namespaces=()
    )

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=1.0)


def default_profiles() -> List[AIProfile]:
    """Built-in profiles used when nothing has been saved yet."""
    return [
        AIProfile(
            id=DEFAULT_PROFILE_ID,
            name="Vivica Primary",
            system_prompt="You are Vivica, a clever and articulate AI assistant.",
            model=DEFAULT_MODEL,
            temperature=DEFAULT_TEMPERATURE,
            is_default=True,
        )
    ]
