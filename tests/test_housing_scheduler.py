"""Tests for the in-process Housing.com sync scheduler."""

from __future__ import annotations

from unittest.mock import AsyncMock

from src.enquiry_crm.housing.scheduler import JOB_ID, HousingSyncScheduler
from src.enquiry_crm.housing.schemas import SyncResult, SyncStats


class TestLifecycle:
    async def test_start_registers_single_interval_job(self):
        scheduler = HousingSyncScheduler(AsyncMock(), interval_minutes=5)

        assert scheduler.start() is True
        try:
            job = scheduler._scheduler.get_job(JOB_ID)
            assert job is not None
            assert job.max_instances == 1
            assert job.trigger.interval.total_seconds() == 300
            assert scheduler.running is True
        finally:
            scheduler.stop()

        assert scheduler.running is False

    async def test_start_twice_is_noop(self):
        scheduler = HousingSyncScheduler(AsyncMock())
        assert scheduler.start() is True
        try:
            assert scheduler.start() is False
        finally:
            scheduler.stop()

    def test_stop_without_start(self):
        scheduler = HousingSyncScheduler(AsyncMock())
        scheduler.stop()
        assert scheduler.running is False


class TestScheduledSync:
    async def test_runs_sync(self):
        sync = AsyncMock(
            return_value=SyncResult(success=True, message="ok", stats=SyncStats())
        )
        scheduler = HousingSyncScheduler(sync)

        await scheduler._scheduled_sync()

        sync.assert_awaited_once()

    async def test_failed_result_is_logged_not_raised(self):
        sync = AsyncMock(return_value=SyncResult(success=False, message="Error syncing leads: x"))
        await HousingSyncScheduler(sync)._scheduled_sync()
        sync.assert_awaited_once()

    async def test_crash_is_contained(self):
        sync = AsyncMock(side_effect=RuntimeError("boom"))
        await HousingSyncScheduler(sync)._scheduled_sync()
        sync.assert_awaited_once()
