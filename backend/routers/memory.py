"""
Memory router.
Condenses a conversation into its profile's long-term memory summary.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from chat.orchestrator import ChatOrchestrator
from services import get_orchestrator

logger = logging.getLogger(__name__)
router = APIRouter()


class MemorySyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    conversation_id: Optional[str] = None


@router.post("/sync")
async def sync_memory(
    data: Optional[MemorySyncRequest] = None,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator)
) -> dict:
    """
    Summarize a conversation (the active one by default) into memory.

    The summary replaces the previous one. Returns ``skipped`` when a sync
    is already running, the conversation has fewer than two messages, or
    its profile was deleted before the summary landed.
    """
    conversation_id = data.conversation_id if data else None
    try:
        memory = await orchestrator.sync_memory(conversation_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"Memory sync failed: {e}")

    if memory is None:
        return {"skipped": True}
    return {"skipped": False, "memory": memory.model_dump(mode="json", by_alias=True)}
