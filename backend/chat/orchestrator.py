"""
Chat orchestrator.

Runs one turn at a time for the session:

    Idle -> Sending -> Streaming -> Committed | Errored -> Idle

The user message is appended and persisted, an empty assistant placeholder
follows it, and every fragment from the provider router replaces the
placeholder's content with the full accumulated text. Provider failures are
caught here, once, and become an errored assistant message.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple

from chat.state import AppState
from llm.factory import ProviderRouter
from models.conversation import Conversation, title_from_content
from models.memory import UserMemory
from models.message import Message, Role
from pipeline.summarizer import MIN_MESSAGES, Summarizer

logger = logging.getLogger(__name__)

UpdateListener = Callable[[Conversation, Message], Awaitable[None]]


def format_error(error: Exception) -> str:
    """User-visible text for a failed turn."""
    return f"Error: {str(error) or type(error).__name__}"


class ChatOrchestrator:
    """
    Drives chat turns and memory syncs against an :class:`AppState`.

    ``is_generating`` and ``is_summarizing`` are independent session flags.
    Both are set before the first suspension point and released in a
    ``finally`` block, so overlapping calls are dropped, never queued.
    """

    def __init__(
        self,
        state: AppState,
        router: ProviderRouter,
        summarizer: Optional[Summarizer] = None,
    ):
        self.state = state
        self.router = router
        self.summarizer = summarizer or Summarizer(router.primary())
        self.is_generating = False
        self.is_summarizing = False
        self._cancel_event: Optional[asyncio.Event] = None

    # ============================================================
    # Turns
    # ============================================================
    async def send(
        self,
        content: str,
        conversation_id: Optional[str] = None,
        on_update: Optional[UpdateListener] = None,
    ) -> Optional[Message]:
        """
        Send ``content`` as a new user turn.

        Args:
            content: Raw user input.
            conversation_id: Conversation to continue. Defaults to the active
                one; a new conversation is started when none is active.
            on_update: Awaited after every change to the assistant message.

        Returns:
            The settled assistant message, or None when the input is blank,
            another turn is still running, or the conversation was deleted
            while the reply streamed.
        """
        if not content.strip():
            return None
        if self.is_generating:
            logger.debug("Send ignored, a turn is already in progress")
            return None

        self.is_generating = True
        self._cancel_event = asyncio.Event()
        try:
            conversation = await self._target_conversation(content, conversation_id)
            return await self._run_turn(conversation, content, on_update)
        finally:
            self.is_generating = False
            self._cancel_event = None

    async def _target_conversation(self, content: str, conversation_id: Optional[str]) -> Conversation:
        if conversation_id is not None:
            return await self.state.activate_conversation(conversation_id)

        conversation = self.state.active_conversation
        if conversation is None:
            conversation = await self.state.create_conversation(
                profile_id=self.state.settings.active_profile_id,
                title=title_from_content(content),
            )
        return conversation

    async def _run_turn(
        self,
        conversation: Conversation,
        content: str,
        on_update: Optional[UpdateListener],
    ) -> Optional[Message]:
        profile = self.state.get_profile(conversation.profile_id) or self.state.default_profile

        user_message = await self.state.append_message(
            conversation.id, Message(role=Role.USER, content=content, profile_id=profile.id)
        )
        history = list(conversation.messages)
        placeholder = await self.state.append_message(
            conversation.id, Message(role=Role.ASSISTANT, content="", profile_id=profile.id)
        )
        await self._notify(on_update, conversation, placeholder)
        logger.info(
            f"Turn started in conversation {conversation.id} "
            f"(user message {user_message.id}, assistant message {placeholder.id})"
        )

        accumulated = ""
        try:
            async for fragment in self.router.stream_chat(
                history,
                profile,
                use_memory=conversation.is_memory_enabled,
                secondary_api_key=self.state.settings.open_router_api_key or None,
                cancel_event=self._cancel_event,
            ):
                accumulated += fragment
                self.state.set_message_content(conversation.id, placeholder.id, accumulated)
                await self._notify(on_update, conversation, placeholder)
        except Exception as e:
            if self.state.get_conversation(conversation.id) is None:
                logger.warning(f"Conversation {conversation.id} was deleted mid-turn, reply dropped")
                return None
            logger.error(f"Turn failed in conversation {conversation.id}: {e}", exc_info=True)
            await self.state.mark_message_error(conversation.id, placeholder.id, format_error(e))
            await self._notify(on_update, conversation, placeholder)
            return placeholder

        await self.state.save_conversations()
        logger.info(f"Turn committed in conversation {conversation.id} ({len(accumulated)} chars)")
        return placeholder

    async def _notify(
        self,
        listener: Optional[UpdateListener],
        conversation: Conversation,
        message: Message,
    ) -> None:
        if listener is None:
            return
        try:
            await listener(conversation, message)
        except Exception as e:
            logger.warning(f"Update listener failed: {e}")

    def retry_target(self, message_id: str) -> Tuple[Conversation, Message]:
        """
        Find the user message behind an errored assistant reply.

        Raises:
            KeyError: No message with ``message_id`` exists.
            ValueError: The message is not an errored assistant reply, or
                no user message precedes it.
        """
        found = self.state.find_message(message_id)
        if found is None:
            raise KeyError(f"Message {message_id} not found")
        conversation, message = found
        if message.role != Role.ASSISTANT or not message.is_error:
            raise ValueError("Only errored assistant messages can be retried")

        index = conversation.messages.index(message)
        prompt = next(
            (m for m in reversed(conversation.messages[:index]) if m.role == Role.USER),
            None,
        )
        if prompt is None:
            raise ValueError("No user message precedes this reply")
        return conversation, prompt

    async def retry(
        self,
        message_id: str,
        on_update: Optional[UpdateListener] = None,
    ) -> Optional[Message]:
        """
        Resend the user message that produced an errored reply.

        The errored message is left as it is; the resend is a fresh turn
        with new message ids in the same conversation.
        """
        conversation, prompt = self.retry_target(message_id)
        logger.info(f"Retrying message {message_id} in conversation {conversation.id}")
        return await self.send(prompt.content, conversation_id=conversation.id, on_update=on_update)

    def cancel(self) -> bool:
        """
        Ask the running turn to stop after the current fragment.

        The flag is checked as fragments arrive, so an upstream that has
        stalled without sending anything keeps the turn open until the
        request timeout.
        """
        if self._cancel_event is None:
            return False
        self._cancel_event.set()
        return True

    # ============================================================
    # Memory
    # ============================================================
    async def sync_memory(self, conversation_id: Optional[str] = None) -> Optional[UserMemory]:
        """
        Summarize a conversation into its profile's memory summary.

        The new summary replaces the old one. Returns None without calling
        the provider when a sync is already running, no conversation is
        selected, or the conversation has fewer than two messages. Also
        returns None when the profile is deleted while the summary is
        being written.
        Summarizer errors are logged and propagate; memory is left unchanged.

        Raises:
            KeyError: ``conversation_id`` names no conversation.
        """
        if self.is_summarizing:
            logger.debug("Memory sync ignored, one is already in progress")
            return None

        if conversation_id is None:
            conversation = self.state.active_conversation
        else:
            conversation = self.state.get_conversation(conversation_id)
            if conversation is None:
                raise KeyError(f"Conversation {conversation_id} not found")
        if conversation is None or len(conversation.messages) < MIN_MESSAGES:
            return None

        profile = self.state.get_profile(conversation.profile_id) or self.state.default_profile
        self.is_summarizing = True
        try:
            summary = await self.summarizer.summarize(list(conversation.messages), profile)
            if self.state.get_profile(profile.id) is None:
                logger.warning(f"Profile {profile.id} was deleted during memory sync, summary dropped")
                return None
            return await self.state.set_memory_summary(profile.id, summary)
        except Exception as e:
            logger.error(f"Memory sync failed for profile {profile.id}: {e}", exc_info=True)
            raise
        finally:
            self.is_summarizing = False
