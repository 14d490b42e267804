"""
Application settings model definitions.
Active selections, theme and the secondary-provider credential.
"""

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models.profile import DEFAULT_PROFILE_ID

ThemeFamily = Literal["amoled", "blue", "red"]


class AppSettings(BaseModel):
    """Settings record as stored."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    open_router_api_key: str = ""
    active_conversation_id: Optional[str] = None
    active_profile_id: str = DEFAULT_PROFILE_ID
    theme_family: ThemeFamily = "amoled"
    is_dark_mode: bool = True


class SettingsUpdate(BaseModel):
    """Schema for updating settings. Active selections have their own endpoints."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    open_router_api_key: Optional[str] = None
    theme_family: Optional[ThemeFamily] = None
    is_dark_mode: Optional[bool] = None
