"""
Conversation summarizer for profile memory.

Condenses a finished conversation into a short bulleted summary using one
non-streaming call to the primary provider. The caller stores the result as
the profile's memory summary, replacing whatever was there.
"""

import logging
from typing import Optional, Sequence

from llm.base import LLMProvider
from models.message import Message
from models.profile import AIProfile

logger = logging.getLogger(__name__)

SUMMARY_MODEL = "gemini-3-flash-preview"

SUMMARY_SYSTEM_INSTRUCTION = "You are a memory processor. Extract only valuable context."

SUMMARY_PROMPT = (
    "Summarize the following conversation into a concise bulleted list of key "
    "user preferences, facts mentioned, and current context that should be "
    "remembered. Keep it under 200 words.\n\n"
    "CONVERSATION:\n{transcript}"
)

MIN_MESSAGES = 2


def render_transcript(messages: Sequence[Message]) -> str:
    """One ``role: content`` line per message, in order."""
    return "\n".join(f"{msg.role.value}: {msg.content}" for msg in messages)


class Summarizer:
    """
    Produces memory summaries from conversations.

    Attributes:
        provider: Primary (Gemini) provider used for the completion
        model: Model name to use for summarization
    """

    def __init__(self, provider: LLMProvider, model: str = SUMMARY_MODEL):
        self.provider = provider
        self.model = model

    async def summarize(self, messages: Sequence[Message], profile: AIProfile) -> str:
        """
        Summarize ``messages`` for ``profile``.

        Conversations with fewer than two messages are not worth a round
        trip and return an empty string. Provider errors propagate.
        """
        if len(messages) < MIN_MESSAGES:
            logger.debug(f"Skipping summary for profile {profile.id}: {len(messages)} message(s)")
            return ""

        prompt = SUMMARY_PROMPT.format(transcript=render_transcript(messages))
        response = await self.provider.generate(
            messages=[{"role": "user", "content": prompt}],
            model=self.model,
            system_instruction=SUMMARY_SYSTEM_INSTRUCTION,
        )
        summary = response.content or ""
        logger.info(f"Summarized {len(messages)} messages for profile {profile.id} ({len(summary)} chars)")
        return summary


async def summarize_conversation(
    messages: Sequence[Message],
    profile: AIProfile,
    provider: LLMProvider,
    model: Optional[str] = None,
) -> str:
    """Convenience wrapper around :class:`Summarizer`."""
    return await Summarizer(provider, model or SUMMARY_MODEL).summarize(messages, profile)
