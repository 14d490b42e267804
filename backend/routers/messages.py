"""
Messages router.
Sends chat turns and streams the assistant reply over SSE.
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from chat.orchestrator import ChatOrchestrator, UpdateListener
from models.conversation import Conversation
from models.message import Message, MessageCreate
from services import get_orchestrator

logger = logging.getLogger(__name__)
router = APIRouter()

# Strong references to in-flight turns; the event loop only keeps weak ones
_background_tasks = set()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def _event(payload) -> str:
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {data}\n\n"


def _dump(message: Message) -> dict:
    return message.model_dump(mode="json", by_alias=True)


def _stream_turn(run: Callable[[UpdateListener], Awaitable[Optional[Message]]]) -> StreamingResponse:
    """
    Run a turn in a background task and relay its updates as SSE.

    A client disconnect cancels only the SSE generator. The turn keeps
    running and its result is persisted by the orchestrator either way.
    """
    stream_queue: asyncio.Queue = asyncio.Queue()

    async def _on_update(conversation: Conversation, message: Message) -> None:
        await stream_queue.put(_event({
            "conversationId": conversation.id,
            "messageId": message.id,
            "content": message.content,
        }))

    async def _consume_turn():
        try:
            message = await run(_on_update)
            if message is None:
                await stream_queue.put(_event({"skipped": True}))
            elif message.is_error:
                await stream_queue.put(_event({"error": message.content, "message": _dump(message)}))
            else:
                await stream_queue.put(_event({"done": True, "message": _dump(message)}))
        except Exception as e:
            logger.error(f"Chat turn crashed: {e}", exc_info=True)
            await stream_queue.put(_event({"error": f"Error: {e}"}))

        await stream_queue.put(_event("[DONE]"))
        await stream_queue.put(None)

    consumer_task = asyncio.create_task(_consume_turn())
    _background_tasks.add(consumer_task)
    consumer_task.add_done_callback(_background_tasks.discard)

    async def generate_stream():
        try:
            while True:
                item = await stream_queue.get()
                if item is None:
                    break
                yield item
        except asyncio.CancelledError:
            logger.info("Client disconnected mid-stream, turn continues")

    return StreamingResponse(
        generate_stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("")
async def send_message(
    data: MessageCreate,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator)
) -> StreamingResponse:
    """
    Send a user message and stream the assistant reply.

    Events carry the accumulated reply text so far. A blank message or a
    send while another turn is running yields a single ``skipped`` event.
    """
    if data.conversation_id and orchestrator.state.get_conversation(data.conversation_id) is None:
        raise HTTPException(status_code=404, detail="Conversation not found")

    return _stream_turn(
        lambda on_update: orchestrator.send(
            data.content,
            conversation_id=data.conversation_id,
            on_update=on_update,
        )
    )


@router.post("/cancel")
async def cancel_message(orchestrator: ChatOrchestrator = Depends(get_orchestrator)) -> dict:
    """Stop the running turn after its current fragment."""
    return {"cancelled": orchestrator.cancel()}


@router.post("/{message_id}/retry")
async def retry_message(
    message_id: str,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator)
) -> StreamingResponse:
    """Resend the user message behind an errored reply as a new turn."""
    try:
        conversation, prompt = orchestrator.retry_target(message_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Message not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Retrying message {message_id} in conversation {conversation.id}")
    return _stream_turn(
        lambda on_update: orchestrator.send(
            prompt.content,
            conversation_id=conversation.id,
            on_update=on_update,
        )
    )
