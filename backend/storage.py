"""
Storage service for the three persisted application records.

    vivica_conversations_v2  list of conversations (messages inline)
    vivica_profiles_v2       list of AI profiles (memory inline)
    vivica_settings_v2       active selections, theme, OpenRouter key

A missing record loads built-in defaults. Entries that fail validation are
dropped with a warning instead of failing the whole load.
"""

import logging
from typing import Any, List

from pydantic import ValidationError

from kv_store import KeyValueStore
from models.conversation import Conversation
from models.profile import AIProfile, default_profiles
from models.settings import AppSettings

logger = logging.getLogger(__name__)

STORAGE_KEYS = {
    "CONVERSATIONS": "vivica_conversations_v2",
    "PROFILES": "vivica_profiles_v2",
    "SETTINGS": "vivica_settings_v2",
}


def _dump(model) -> Any:
    return model.model_dump(mode="json", by_alias=True)


class StorageService:
    """Load and save application records through a key-value store."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def load_conversations(self) -> List[Conversation]:
        data = await self.store.get(STORAGE_KEYS["CONVERSATIONS"])
        if not isinstance(data, list):
            return []

        conversations = []
        for item in data:
            try:
                conversations.append(Conversation.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping unreadable conversation record: {e}")
        return conversations

    async def save_conversations(self, conversations: List[Conversation]) -> None:
        await self.store.set(STORAGE_KEYS["CONVERSATIONS"], [_dump(c) for c in conversations])

    async def load_profiles(self) -> List[AIProfile]:
        """Stored profiles, always including the protected default profile."""
        data = await self.store.get(STORAGE_KEYS["PROFILES"])
        if not isinstance(data, list) or not data:
            return default_profiles()

        profiles = []
        for item in data:
            try:
                profiles.append(AIProfile.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping unreadable profile record: {e}")

        if not any(p.is_default for p in profiles):
            logger.warning("No default profile in storage, restoring the built-in one")
            profiles = default_profiles() + profiles
        return profiles

    async def save_profiles(self, profiles: List[AIProfile]) -> None:
        await self.store.set(STORAGE_KEYS["PROFILES"], [_dump(p) for p in profiles])

    async def load_settings(self) -> AppSettings:
        """Stored settings layered over the defaults."""
        data = await self.store.get(STORAGE_KEYS["SETTINGS"])
        if not isinstance(data, dict):
            return AppSettings()

        merged = _dump(AppSettings())
        merged.update(data)
        try:
            return AppSettings.model_validate(merged)
        except ValidationError as e:
            logger.warning(f"Settings record unreadable, using defaults: {e}")
            return AppSettings()

    async def save_settings(self, settings: AppSettings) -> None:
        await self.store.set(STORAGE_KEYS["SETTINGS"], _dump(settings))
