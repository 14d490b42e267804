"""
Conversations router.
Handles workspaces held under the active profile.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from chat.state import AppState
from models.conversation import (
    Conversation,
    ConversationCreate,
    ConversationSummary,
    ConversationUpdate,
)
from services import get_state

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_or_404(state: AppState, conversation_id: str) -> Conversation:
    conversation = state.get_conversation(conversation_id)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


def _summary(conversation: Conversation) -> ConversationSummary:
    return ConversationSummary(
        id=conversation.id,
        title=conversation.title,
        last_updated=conversation.last_updated,
        profile_id=conversation.profile_id,
        is_memory_enabled=conversation.is_memory_enabled,
        message_count=len(conversation.messages),
    )


@router.get("", response_model=List[ConversationSummary])
async def list_conversations(
    profile_id: Optional[str] = Query(None, alias="profileId"),
    state: AppState = Depends(get_state)
) -> List[ConversationSummary]:
    """
    List conversations for a profile, newest first.
    Defaults to the active profile.
    """
    profile_id = profile_id or state.settings.active_profile_id
    return [_summary(c) for c in state.profile_conversations(profile_id)]


@router.post("", response_model=Conversation)
async def create_conversation(
    data: ConversationCreate,
    state: AppState = Depends(get_state)
) -> Conversation:
    """Open a new, empty workspace under the active profile and activate it."""
    return await state.create_conversation(title=data.title)


@router.get("/{conversation_id}", response_model=Conversation)
async def get_conversation(
    conversation_id: str,
    state: AppState = Depends(get_state)
) -> Conversation:
    return _get_or_404(state, conversation_id)


@router.put("/{conversation_id}", response_model=Conversation)
async def update_conversation(
    conversation_id: str,
    data: ConversationUpdate,
    state: AppState = Depends(get_state)
) -> Conversation:
    """Toggle whether profile memory is attached to this conversation's turns."""
    conversation = _get_or_404(state, conversation_id)
    if data.is_memory_enabled is None:
        return conversation
    return await state.set_memory_enabled(conversation_id, data.is_memory_enabled)


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    state: AppState = Depends(get_state)
) -> dict:
    """Delete a conversation and all its messages."""
    _get_or_404(state, conversation_id)
    await state.delete_conversation(conversation_id)
    return {"message": "Conversation deleted"}


@router.post("/{conversation_id}/activate", response_model=Conversation)
async def activate_conversation(
    conversation_id: str,
    state: AppState = Depends(get_state)
) -> Conversation:
    """Make a conversation active. Its profile becomes the active profile."""
    _get_or_404(state, conversation_id)
    return await state.activate_conversation(conversation_id)
