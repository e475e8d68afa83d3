"""
FastAPI routes for conversation summaries with live-status overlay.

The durable store is written by the supervisor (PUT); the UI reads merged
pages over HTTP or keeps a live view open over WebSocket.
"""

import asyncio
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from mediator.api.dependencies import get_conversation_store, get_feed
from mediator.bridge.schemas import WireModel
from mediator.conversations.correlator import LiveStatusCorrelator, merge_live_status
from mediator.conversations.schemas import (
    ConversationPage,
    ConversationStatus,
    ConversationSummary,
    ConversationWithLiveStatus,
)
from mediator.conversations.store import ConversationStore
from mediator.core.logger import logger
from mediator.runs.live_status import LiveStatusFeed

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


class ConversationUpsert(WireModel):
    title: str = "New Chat"
    project_path: str | None = None
    status: ConversationStatus = ConversationStatus.ONGOING
    streaming_id: str | None = None
    archived: bool = False
    pinned: bool = False
    updated_at: datetime | None = None


@router.get("", response_model=ConversationPage)
async def list_conversations(
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
    feed: Annotated[LiveStatusFeed, Depends(get_feed)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    archived: Annotated[bool | None, Query()] = None,
    pinned: Annotated[bool | None, Query()] = None,
):
    """
    One page of conversations, most recently updated first, with live status merged in.

    has_more is False once a page comes back shorter than the limit.
    """
    page = await store.list_page(limit=limit, offset=offset, archived=archived, pinned=pinned)
    return ConversationPage(
        conversations=merge_live_status(page, feed.snapshot()),
        has_more=len(page) == limit,
    )


@router.put("/{session_id}", response_model=ConversationSummary)
async def upsert_conversation(
    session_id: str,
    body: ConversationUpsert,
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
):
    """Create or update a durable conversation record."""
    existing = await store.get(session_id)
    fields = body.model_dump(exclude_none=True)
    if existing is not None:
        fields["created_at"] = existing.created_at
    return await store.save(ConversationSummary(session_id=session_id, **fields))


@router.get("/{session_id}", response_model=ConversationWithLiveStatus)
async def get_conversation(
    session_id: str,
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
    feed: Annotated[LiveStatusFeed, Depends(get_feed)],
):
    summary = await store.get(session_id)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return merge_live_status([summary], feed.snapshot())[0]


def report_pump_failure(task: asyncio.Task) -> None:
    """Log why a push task died (it is otherwise only ever cancelled)."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Conversations push failed: {error}", exc_info=error)


@router.websocket("/ws")
async def conversations_websocket(websocket: WebSocket):
    """
    Live conversation list for one UI session.

    Client messages:
        {"type": "load", "archived"?: bool, "pinned"?: bool}
        {"type": "load_more"}
    Server pushes {"type": "conversations", "conversations": [...], "hasMore": bool}
    after every load and every live status change of a loaded run.
    """
    await websocket.accept()

    state = websocket.app.state
    outbox: asyncio.Queue[list[ConversationWithLiveStatus]] = asyncio.Queue()
    correlator = LiveStatusCorrelator(
        state.conversations.list_page,
        state.feed,
        on_change=outbox.put_nowait,
    )

    async def pump() -> None:
        while True:
            view = await outbox.get()
            await websocket.send_json(
                {
                    "type": "conversations",
                    "conversations": [conversation.to_wire() for conversation in view],
                    "hasMore": correlator.has_more,
                }
            )

    sender = asyncio.create_task(pump())
    sender.add_done_callback(report_pump_failure)
    try:
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                continue
            if message.get("type") == "load":
                filters = {key: message[key] for key in ("archived", "pinned") if key in message}
                await correlator.load(**filters)
            elif message.get("type") == "load_more":
                if correlator.has_more:
                    await correlator.load_more()
                else:
                    # Nothing left to fetch; answer with the current view
                    outbox.put_nowait(correlator.conversations)

    except WebSocketDisconnect:
        logger.info("Conversations WebSocket disconnected")
    finally:
        correlator.close()
        sender.cancel()
