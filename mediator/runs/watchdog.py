"""
Watchdog Service for stale agent runs.

Uses APScheduler to periodically reap runs the supervisor never ended, so
their mediation requests do not accumulate forever.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from mediator.core.logger import logger
from mediator.runs.registry import RunRegistry


class WatchdogService:
    """
    Periodic stale-run sweep.

    Uses APScheduler (in-process memory store) to call
    RunRegistry.expire_stale_runs on an interval.
    """

    def __init__(self, registry: RunRegistry, threshold_hours: int = 24):
        """
        Initialize WatchdogService.

        Args:
            registry: RunRegistry instance
            threshold_hours: Idle hours before a run is considered stale
        """
        self.registry = registry
        self.threshold_hours = threshold_hours
        self.scheduler: AsyncIOScheduler | None = None
        self._running = False

    async def start(self, interval_seconds: int = 60) -> None:
        """
        Start the watchdog scheduler.

        Args:
            interval_seconds: Check interval in seconds (default: 60)
        """
        if self._running:
            logger.warning("WatchdogService already running")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.check_stale_runs,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id="mediator_watchdog",
            name="Mediator Watchdog - Expire Stale Runs",
        )
        self.scheduler.start()
        self._running = True
        logger.info(f"WatchdogService started (interval: {interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the watchdog scheduler."""
        if not self._running:
            return

        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None

        self._running = False
        logger.info("WatchdogService stopped")

    async def check_stale_runs(self) -> None:
        """
        Expire stale runs.

        Called periodically by APScheduler; a failed sweep is logged and the
        next tick tries again.
        """
        try:
            expired = self.registry.expire_stale_runs(self.threshold_hours)
            if expired:
                logger.info(f"Watchdog expired {len(expired)} stale run(s)")
        except Exception as e:
            logger.error(f"Watchdog check failed: {e}", exc_info=True)
