"""
Live status feed for in-flight agent runs.

Best-effort, push-based "this run is streaming, here is its phase" signal,
keyed by the same streaming id the run's mediation requests carry.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from mediator.bridge.schemas import WireModel
from mediator.core.logger import logger

# Phases after which a dropped connection means the run is over
TERMINAL_PHASES = frozenset({"Completed"})


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class LiveStatus(WireModel):
    """Latest known live state of one run."""

    streaming_id: str
    connection_state: ConnectionState = ConnectionState.CONNECTED
    current_status: str = "Running"
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_finished(self) -> bool:
        """Connection dropped after a terminal phase."""
        return (
            self.connection_state == ConnectionState.DISCONNECTED
            and self.current_status in TERMINAL_PHASES
        )


LiveStatusListener = Callable[[LiveStatus], None]


class LiveStatusFeed:
    """In-process publish/subscribe hub for live statuses."""

    def __init__(self):
        self._statuses: dict[str, LiveStatus] = {}
        self._listeners: dict[str, list[LiveStatusListener]] = {}
        self._global_listeners: list[LiveStatusListener] = []

    def publish(self, status: LiveStatus) -> None:
        """Record the latest status for a run and fan it out to subscribers."""
        self._statuses[status.streaming_id] = status
        listeners = [*self._listeners.get(status.streaming_id, []), *self._global_listeners]
        for listener in listeners:
            try:
                listener(status)
            except Exception as e:
                logger.error(
                    f"Live status listener failed for {status.streaming_id}: {e}", exc_info=True
                )

    def subscribe(self, streaming_id: str, listener: LiveStatusListener) -> Callable[[], None]:
        """
        Listen to one run's updates.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.setdefault(streaming_id, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(streaming_id, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(streaming_id, None)

        return unsubscribe

    def subscribe_all(self, listener: LiveStatusListener) -> Callable[[], None]:
        """Listen to every run's updates (push channel)."""
        self._global_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._global_listeners:
                self._global_listeners.remove(listener)

        return unsubscribe

    def get(self, streaming_id: str) -> LiveStatus | None:
        return self._statuses.get(streaming_id)

    def snapshot(self) -> dict[str, LiveStatus]:
        """Copy of the latest status per streaming id."""
        return dict(self._statuses)

    def subscriber_count(self, streaming_id: str) -> int:
        return len(self._listeners.get(streaming_id, []))
