"""
Profiles router.
Handles AI profile management and per-profile memory.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from chat.state import AppState, ProtectedProfileError
from models.memory import MemoryUpdate, UserMemory
from models.profile import AIProfile, ProfileCreate, ProfileUpdate
from services import get_state

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_or_404(state: AppState, profile_id: str) -> AIProfile:
    profile = state.get_profile(profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.get("", response_model=List[AIProfile])
async def list_profiles(state: AppState = Depends(get_state)) -> List[AIProfile]:
    """List all profiles, default first."""
    return state.profiles


@router.post("", response_model=AIProfile)
async def create_profile(
    data: ProfileCreate,
    state: AppState = Depends(get_state)
) -> AIProfile:
    """Create a new profile. Omitted fields use the new-entity defaults."""
    return await state.create_profile(data)


@router.get("/{profile_id}", response_model=AIProfile)
async def get_profile(profile_id: str, state: AppState = Depends(get_state)) -> AIProfile:
    return _get_or_404(state, profile_id)


@router.put("/{profile_id}", response_model=AIProfile)
async def update_profile(
    profile_id: str,
    data: ProfileUpdate,
    state: AppState = Depends(get_state)
) -> AIProfile:
    """Update a profile. Changing the model re-resolves its route."""
    _get_or_404(state, profile_id)
    return await state.update_profile(profile_id, data)


@router.delete("/{profile_id}")
async def delete_profile(profile_id: str, state: AppState = Depends(get_state)) -> dict:
    """Delete a profile and every conversation held under it."""
    _get_or_404(state, profile_id)
    try:
        removed = await state.delete_profile(profile_id)
    except ProtectedProfileError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"message": "Profile deleted", "deletedConversations": removed}


@router.post("/{profile_id}/activate", response_model=AIProfile)
async def activate_profile(profile_id: str, state: AppState = Depends(get_state)) -> AIProfile:
    """Make a profile active. The active conversation is cleared."""
    _get_or_404(state, profile_id)
    return await state.select_profile(profile_id)


# ============================================================
# Memory
# ============================================================
@router.get("/{profile_id}/memory", response_model=UserMemory)
async def get_memory(profile_id: str, state: AppState = Depends(get_state)) -> UserMemory:
    return _get_or_404(state, profile_id).memory


@router.put("/{profile_id}/memory", response_model=UserMemory)
async def update_memory(
    profile_id: str,
    data: MemoryUpdate,
    state: AppState = Depends(get_state)
) -> UserMemory:
    """Edit memory fields. Omitted fields keep their value."""
    _get_or_404(state, profile_id)
    return await state.update_memory(profile_id, data)


@router.post("/{profile_id}/memory/purge", response_model=UserMemory)
async def purge_memory(profile_id: str, state: AppState = Depends(get_state)) -> UserMemory:
    """Clear every memory field, including the summary."""
    _get_or_404(state, profile_id)
    return await state.purge_memory(profile_id)
