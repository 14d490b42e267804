"""
Settings router.
Handles theme preferences, the OpenRouter credential and the model catalog.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from chat.state import AppState
from llm.base import ModelInfo
from llm.factory import ModelCatalog
from models.settings import AppSettings, SettingsUpdate, ThemeFamily
from services import get_catalog, get_state

logger = logging.getLogger(__name__)
router = APIRouter()


class SettingsResponse(BaseModel):
    """Settings as shown to clients. The credential is never echoed back."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    active_conversation_id: Optional[str] = None
    active_profile_id: str
    theme_family: ThemeFamily
    is_dark_mode: bool
    has_open_router_api_key: bool = False
    open_router_api_key_masked: Optional[str] = None


def mask_api_key(api_key: str, visible_chars: int = 4) -> str:
    """
    Mask an API key for display, showing only last few characters.

    Returns:
        Masked API key like "sk-...abc123"
    """
    if not api_key:
        return ""

    if len(api_key) <= visible_chars:
        return "*" * len(api_key)

    prefix = api_key[:3] if api_key.startswith("sk-") else ""
    return f"{prefix}...{api_key[-visible_chars:]}"


def _response(settings: AppSettings) -> SettingsResponse:
    return SettingsResponse(
        active_conversation_id=settings.active_conversation_id,
        active_profile_id=settings.active_profile_id,
        theme_family=settings.theme_family,
        is_dark_mode=settings.is_dark_mode,
        has_open_router_api_key=bool(settings.open_router_api_key),
        open_router_api_key_masked=mask_api_key(settings.open_router_api_key) or None,
    )


@router.get("", response_model=SettingsResponse)
async def get_app_settings(state: AppState = Depends(get_state)) -> SettingsResponse:
    return _response(state.settings)


@router.put("", response_model=SettingsResponse)
async def update_app_settings(
    data: SettingsUpdate,
    state: AppState = Depends(get_state),
    catalog: ModelCatalog = Depends(get_catalog)
) -> SettingsResponse:
    """
    Update settings.
    An empty ``openRouterApiKey`` clears the stored credential.
    """
    result = await state.update_settings(data)
    if result["credential_changed"]:
        logger.info("OpenRouter credential changed, model catalog will refresh")
        catalog.invalidate()
    return _response(state.settings)


@router.get("/models", response_model=List[ModelInfo])
async def list_models(
    state: AppState = Depends(get_state),
    catalog: ModelCatalog = Depends(get_catalog)
) -> List[ModelInfo]:
    """Built-in Gemini models, followed by the OpenRouter catalog when a key is set."""
    return await catalog.get(state.settings.open_router_api_key)
