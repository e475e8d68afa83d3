"""
Run Registry - the broker's view of the process supervisor.

Tracks which agent runs are alive, assigns their streaming (correlation) ids,
and triggers bulk cleanup of their mediation requests when they end. Ending a
run never interrupts an in-flight waiter; it only stops unbounded growth of
decided-but-unread requests.
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from mediator.bridge.gateway import MediationGateway
from mediator.core.logger import logger
from mediator.runs.live_status import ConnectionState, LiveStatus, LiveStatusFeed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunRegistry:
    """Lifecycle of agent runs, keyed by streaming id."""

    def __init__(
        self,
        gateway: MediationGateway,
        feed: LiveStatusFeed,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.gateway = gateway
        self.feed = feed
        self._now = now
        # streaming_id -> last activity timestamp
        self.active_runs: dict[str, datetime] = {}

    def register_run(self, streaming_id: str | None = None) -> str:
        """
        Register a run that the supervisor just started.

        Returns:
            The run's streaming id (generated when not supplied)
        """
        streaming_id = streaming_id or str(uuid4())
        self.active_runs[streaming_id] = self._now()
        self.feed.publish(LiveStatus(streaming_id=streaming_id, updated_at=self._now()))
        logger.info(f"Run registered: {streaming_id}")
        return streaming_id

    def touch(self, streaming_id: str) -> None:
        """Update last activity timestamp for a run."""
        if streaming_id in self.active_runs:
            self.active_runs[streaming_id] = self._now()

    def report_status(self, status: LiveStatus) -> None:
        """Forward a live status from the supervisor and count it as activity."""
        self.touch(status.streaming_id)
        self.feed.publish(status)

    def is_active(self, streaming_id: str) -> bool:
        return streaming_id in self.active_runs

    def end_run(self, streaming_id: str, final_status: str = "Completed") -> int:
        """
        Mark a run finished and drop all of its mediation requests.

        Returns:
            Number of mediation requests removed
        """
        self.active_runs.pop(streaming_id, None)
        self.feed.publish(
            LiveStatus(
                streaming_id=streaming_id,
                connection_state=ConnectionState.DISCONNECTED,
                current_status=final_status,
                updated_at=self._now(),
            )
        )
        removed = self.gateway.cleanup(streaming_id)
        logger.info(f"Run ended: {streaming_id} ({final_status}, {removed} request(s) removed)")
        return removed

    def expire_stale_runs(self, threshold_hours: int = 24) -> list[str]:
        """
        End runs with no activity for longer than the threshold.

        Returns:
            Streaming ids that were expired
        """
        cutoff = self._now() - timedelta(hours=threshold_hours)
        expired = [sid for sid, last_activity in self.active_runs.items() if last_activity < cutoff]

        for sid in expired:
            self.end_run(sid, final_status="Expired")

        if expired:
            logger.debug(f"Expired {len(expired)} stale run(s)")
        return expired
