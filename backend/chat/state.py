"""
Application state container.

Holds the conversation list, profile list and settings for the process.
Every change goes through one of the methods below, which keep the
cross-record invariants (active selections, default profile, profile
ownership of conversations) and persist the records they touch.

Providers and the summarizer never write here; they hand values back to
the orchestrator, which applies them through these methods.
"""

import logging
from typing import Dict, List, Optional, Tuple

from models.conversation import Conversation, NEW_CONVERSATION_TITLE
from models.memory import MemoryUpdate, UserMemory
from models.message import Message, now_ms
from models.profile import AIProfile, ProfileCreate, ProfileUpdate, default_profiles, resolve_model_route
from models.settings import AppSettings, SettingsUpdate
from storage import StorageService

logger = logging.getLogger(__name__)


class ProtectedProfileError(ValueError):
    """The default profile cannot be deleted."""


class AppState:
    """
    Process-wide chat state.

    Args:
        conversations: Conversations, newest first.
        profiles: Profiles; exactly one has ``is_default`` set.
        settings: Active selections and preferences.
        storage: Where mutations are persisted. ``None`` keeps state in memory.
    """

    def __init__(
        self,
        conversations: Optional[List[Conversation]] = None,
        profiles: Optional[List[AIProfile]] = None,
        settings: Optional[AppSettings] = None,
        storage: Optional[StorageService] = None,
    ):
        self.conversations: List[Conversation] = conversations or []
        self.profiles: List[AIProfile] = profiles or default_profiles()
        self.settings: AppSettings = settings or AppSettings()
        self.storage = storage
        self._repair_selections()

    @classmethod
    async def load(cls, storage: StorageService) -> "AppState":
        """Build state from storage, falling back to defaults for missing records."""
        state = cls(
            conversations=await storage.load_conversations(),
            profiles=await storage.load_profiles(),
            settings=await storage.load_settings(),
            storage=storage,
        )
        logger.info(
            f"Loaded {len(state.conversations)} conversation(s) and "
            f"{len(state.profiles)} profile(s)"
        )
        return state

    def _repair_selections(self) -> None:
        """Point active selections at records that exist."""
        if self.get_profile(self.settings.active_profile_id) is None:
            self.settings.active_profile_id = self.default_profile.id
        active_id = self.settings.active_conversation_id
        if active_id is not None and self.get_conversation(active_id) is None:
            self.settings.active_conversation_id = None

    # ============================================================
    # Persistence
    # ============================================================
    async def save_conversations(self) -> None:
        if self.storage:
            await self.storage.save_conversations(self.conversations)

    async def save_profiles(self) -> None:
        if self.storage:
            await self.storage.save_profiles(self.profiles)

    async def save_settings(self) -> None:
        if self.storage:
            await self.storage.save_settings(self.settings)

    # ============================================================
    # Lookups
    # ============================================================
    @property
    def default_profile(self) -> AIProfile:
        for profile in self.profiles:
            if profile.is_default:
                return profile
        return self.profiles[0]

    @property
    def active_profile(self) -> AIProfile:
        return self.get_profile(self.settings.active_profile_id) or self.default_profile

    @property
    def active_conversation(self) -> Optional[Conversation]:
        if self.settings.active_conversation_id is None:
            return None
        return self.get_conversation(self.settings.active_conversation_id)

    def get_profile(self, profile_id: Optional[str]) -> Optional[AIProfile]:
        return next((p for p in self.profiles if p.id == profile_id), None)

    def get_conversation(self, conversation_id: Optional[str]) -> Optional[Conversation]:
        return next((c for c in self.conversations if c.id == conversation_id), None)

    def find_message(self, message_id: str) -> Optional[Tuple[Conversation, Message]]:
        for conversation in self.conversations:
            for message in conversation.messages:
                if message.id == message_id:
                    return conversation, message
        return None

    def profile_conversations(self, profile_id: str) -> List[Conversation]:
        return [c for c in self.conversations if c.profile_id == profile_id]

    def _require_profile(self, profile_id: str) -> AIProfile:
        profile = self.get_profile(profile_id)
        if profile is None:
            raise KeyError(f"Profile {profile_id} not found")
        return profile

    def _require_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            raise KeyError(f"Conversation {conversation_id} not found")
        return conversation

    @staticmethod
    def _require_message(conversation: Conversation, message_id: str) -> Message:
        for message in conversation.messages:
            if message.id == message_id:
                return message
        raise KeyError(f"Message {message_id} not found in conversation {conversation.id}")

    # ============================================================
    # Conversations
    # ============================================================
    async def create_conversation(
        self,
        profile_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Conversation:
        """Start a conversation at the top of the list and make it active."""
        profile = self._require_profile(profile_id or self.settings.active_profile_id)
        conversation = Conversation(
            title=title or NEW_CONVERSATION_TITLE,
            profile_id=profile.id,
        )
        self.conversations.insert(0, conversation)
        self.settings.active_profile_id = profile.id
        self.settings.active_conversation_id = conversation.id
        await self.save_conversations()
        await self.save_settings()
        logger.info(f"Created conversation {conversation.id} for profile {profile.id}")
        return conversation

    async def activate_conversation(self, conversation_id: Optional[str]) -> Optional[Conversation]:
        """Make a conversation active; its profile becomes the active profile."""
        if conversation_id is None:
            self.settings.active_conversation_id = None
            await self.save_settings()
            return None
        conversation = self._require_conversation(conversation_id)
        self.settings.active_conversation_id = conversation.id
        self.settings.active_profile_id = conversation.profile_id
        await self.save_settings()
        return conversation

    async def delete_conversation(self, conversation_id: str) -> None:
        """Remove a conversation and its messages, clearing it if active."""
        conversation = self._require_conversation(conversation_id)
        self.conversations.remove(conversation)
        if self.settings.active_conversation_id == conversation_id:
            self.settings.active_conversation_id = None
            await self.save_settings()
        await self.save_conversations()
        logger.info(f"Deleted conversation {conversation_id}")

    async def set_memory_enabled(self, conversation_id: str, enabled: bool) -> Conversation:
        conversation = self._require_conversation(conversation_id)
        conversation.is_memory_enabled = enabled
        await self.save_conversations()
        return conversation

    async def append_message(self, conversation_id: str, message: Message) -> Message:
        """Append ``message`` and refresh the conversation's last update."""
        conversation = self._require_conversation(conversation_id)
        conversation.messages.append(message)
        conversation.last_updated = now_ms()
        await self.save_conversations()
        return message

    def set_message_content(self, conversation_id: str, message_id: str, content: str) -> Message:
        """
        Replace a message's content with the full accumulated text.

        Not persisted on its own: streaming fragments arrive far faster
        than they need to hit disk, so the orchestrator saves once the
        turn settles.
        """
        message = self._require_message(self._require_conversation(conversation_id), message_id)
        message.content = content
        return message

    async def mark_message_error(self, conversation_id: str, message_id: str, error_text: str) -> Message:
        message = self._require_message(self._require_conversation(conversation_id), message_id)
        message.content = error_text
        message.is_error = True
        await self.save_conversations()
        return message

    # ============================================================
    # Profiles
    # ============================================================
    async def create_profile(self, data: Optional[ProfileCreate] = None) -> AIProfile:
        data = data or ProfileCreate()
        profile = AIProfile(
            name=data.name,
            system_prompt=data.system_prompt,
            model=data.model,
            temperature=data.temperature,
        )
        self.profiles.append(profile)
        await self.save_profiles()
        logger.info(f"Created profile {profile.id} ({profile.model}, route={profile.route.value})")
        return profile

    async def update_profile(self, profile_id: str, data: ProfileUpdate) -> AIProfile:
        profile = self._require_profile(profile_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(profile, field, value)
        if "model" in changes:
            profile.route = resolve_model_route(profile.model)
        await self.save_profiles()
        return profile

    async def delete_profile(self, profile_id: str) -> int:
        """
        Delete a non-default profile together with its conversations.

        Returns:
            Number of conversations removed.

        Raises:
            ProtectedProfileError: ``profile_id`` is the default profile.
        """
        profile = self._require_profile(profile_id)
        if profile.is_default:
            raise ProtectedProfileError("The default profile cannot be deleted")

        owned = self.profile_conversations(profile_id)
        owned_ids = {c.id for c in owned}
        self.conversations = [c for c in self.conversations if c.id not in owned_ids]
        self.profiles.remove(profile)

        if self.settings.active_profile_id == profile_id:
            self.settings.active_profile_id = self.default_profile.id
            self.settings.active_conversation_id = None
        elif self.settings.active_conversation_id in owned_ids:
            self.settings.active_conversation_id = None

        await self.save_profiles()
        await self.save_conversations()
        await self.save_settings()
        logger.info(f"Deleted profile {profile_id} and {len(owned)} conversation(s)")
        return len(owned)

    async def select_profile(self, profile_id: str) -> AIProfile:
        """Switch the active profile; the active conversation is cleared."""
        profile = self._require_profile(profile_id)
        self.settings.active_profile_id = profile.id
        self.settings.active_conversation_id = None
        await self.save_settings()
        return profile

    # ============================================================
    # Memory
    # ============================================================
    async def update_memory(self, profile_id: str, data: MemoryUpdate) -> UserMemory:
        profile = self._require_profile(profile_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(profile.memory, field, value)
        await self.save_profiles()
        return profile.memory

    async def purge_memory(self, profile_id: str) -> UserMemory:
        profile = self._require_profile(profile_id)
        profile.memory = UserMemory()
        await self.save_profiles()
        logger.info(f"Purged memory for profile {profile_id}")
        return profile.memory

    async def set_memory_summary(self, profile_id: str, summary: str) -> UserMemory:
        """Replace (never append to) the profile's memory summary."""
        profile = self._require_profile(profile_id)
        profile.memory.summary = summary
        await self.save_profiles()
        return profile.memory

    # ============================================================
    # Settings
    # ============================================================
    async def update_settings(self, data: SettingsUpdate) -> Dict[str, bool]:
        """
        Apply a settings update.

        Returns:
            {"credential_changed": bool} so callers can refresh the model catalog.
        """
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        old_key = self.settings.open_router_api_key
        for field, value in changes.items():
            setattr(self.settings, field, value)
        await self.save_settings()
        return {"credential_changed": self.settings.open_router_api_key != old_key}
