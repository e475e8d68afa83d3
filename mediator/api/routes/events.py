"""
WebSocket endpoint pushing mediation events and live statuses to UI sessions.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from mediator.bridge.schemas import RequestStatus
from mediator.core.logger import logger

router = APIRouter(prefix="/api/v1/events", tags=["events"])


@router.websocket("/ws")
async def events_websocket(websocket: WebSocket):
    """
    Push channel for the UI.

    On connect the client receives a snapshot of pending requests, then
    request_created / request_decided / live_status messages as they happen.
    A {"type": "ping"} message is answered with {"type": "pong"}.
    """
    await websocket.accept()

    state = websocket.app.state
    broadcaster = state.broadcaster
    connection_id = broadcaster.register_connection(websocket)

    try:
        pending = state.gateway.list(status=RequestStatus.PENDING)
        await websocket.send_json(
            {"type": "snapshot", "requests": [request.to_wire() for request in pending]}
        )

        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})

    except WebSocketDisconnect:
        logger.info("Events WebSocket disconnected")
    finally:
        broadcaster.unregister_connection(connection_id)
