"""
Event Broadcaster - WebSocket push channel for UI sessions.

Pushes store lifecycle events and live statuses to every connected UI. This
is an optimization layered on the polling protocol; it carries no state the
HTTP endpoints do not also expose.
"""

import asyncio
from typing import Any
from uuid import uuid4

from fastapi import WebSocket

from mediator.bridge.schemas import StoreEvent
from mediator.bridge.store import PendingRequestStore
from mediator.core.logger import logger
from mediator.runs.live_status import LiveStatus, LiveStatusFeed


class EventBroadcaster:
    """
    Fan-out of store events and live statuses to WebSocket connections.

    Store and feed listeners are synchronous; sends are scheduled as tasks
    on the running event loop.
    """

    def __init__(self, store: PendingRequestStore, feed: LiveStatusFeed):
        # connection_id -> WebSocket connection
        self._connections: dict[str, WebSocket] = {}
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribers = [
            store.subscribe(self._on_store_event),
            feed.subscribe_all(self._on_live_status),
        ]
        logger.info("EventBroadcaster initialized")

    def register_connection(self, websocket: WebSocket) -> str:
        """
        Register a UI WebSocket.

        Returns:
            Connection id to unregister with
        """
        connection_id = str(uuid4())
        self._connections[connection_id] = websocket
        logger.debug(f"Registered WebSocket connection: {connection_id}")
        return connection_id

    def unregister_connection(self, connection_id: str) -> None:
        if self._connections.pop(connection_id, None) is not None:
            logger.debug(f"Unregistered WebSocket connection: {connection_id}")

    def get_connection_count(self) -> int:
        return len(self._connections)

    async def broadcast(self, message: dict[str, Any]) -> int:
        """
        Send one message to every connection.

        Returns:
            Number of connections the message reached
        """
        delivered = 0
        for connection_id, websocket in list(self._connections.items()):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.error(f"Failed to push {message.get('type')} to {connection_id}: {e}")
                # Remove broken connection
                self.unregister_connection(connection_id)
        return delivered

    def _schedule(self, message: dict[str, Any]) -> None:
        if not self._connections:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, dropping push of {message.get('type')}")
            return
        task = loop.create_task(self.broadcast(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_store_event(self, event: StoreEvent) -> None:
        self._schedule(event.to_wire())

    def _on_live_status(self, status: LiveStatus) -> None:
        self._schedule({"type": "live_status", "status": status.to_wire()})

    def close(self) -> None:
        """Detach from the store and the feed."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._connections.clear()
