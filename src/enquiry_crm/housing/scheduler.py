"""In-process scheduler for the incremental Housing.com sync.

Provides a lightweight APScheduler wrapper with one interval job calling
run_scheduled_sync(). The cadence comes from deployment configuration
(HOUSING_SCHEDULER_ENABLED, HOUSING_SYNC_INTERVAL_MINUTES); HousingService
itself knows nothing about it. Deployments driven by an external cron leave
the scheduler disabled and call the HTTP or CLI trigger instead.

max_instances=1 keeps this process from overlapping its own runs; it does
not guard against other processes or manual triggers.

Exports:
    HousingSyncScheduler: Async interval scheduler for the scheduled sync.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.enquiry_crm.housing.schemas import SyncResult

logger = structlog.get_logger(__name__)

JOB_ID = "housing_scheduled_sync"


class HousingSyncScheduler:
    """Runs the scheduled sync every ``interval_minutes``.

    Args:
        sync: Coroutine function performing one scheduled sync.
        interval_minutes: Minutes between runs.
    """

    def __init__(
        self,
        sync: Callable[[], Awaitable[SyncResult]],
        interval_minutes: int = 15,
    ) -> None:
        self._sync = sync
        self._interval_minutes = interval_minutes
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    def start(self) -> bool:
        """Start the scheduler. Returns False if it is already running."""
        if self._started:
            return False

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._scheduled_sync,
            trigger=IntervalTrigger(minutes=self._interval_minutes),
            id=JOB_ID,
            name="Housing.com incremental lead sync",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self._interval_minutes * 60,
        )
        self._scheduler.start()
        self._started = True
        logger.info(
            "housing_scheduler_started",
            job=JOB_ID,
            interval_minutes=self._interval_minutes,
        )
        return True

    async def _scheduled_sync(self) -> None:
        """Run one sync and log its outcome. Never raises into APScheduler."""
        logger.info("housing_scheduled_sync_triggered")

        try:
            result = await self._sync()
        except Exception as exc:
            logger.error("housing_scheduled_sync_crashed", error=str(exc))
            return

        stats = result.stats.model_dump() if result.stats else {}
        if result.success:
            logger.info("housing_scheduled_sync_complete", message=result.message, **stats)
        else:
            logger.error("housing_scheduled_sync_failed", message=result.message)

    def stop(self) -> None:
        """Shut down the scheduler."""
        if self._scheduler and self._started:
            self._scheduler.shutdown(wait=False)
            self._started = False
            logger.info("housing_scheduler_stopped")


__all__ = ["HousingSyncScheduler"]
