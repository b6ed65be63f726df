"""Housing.com sync orchestration -- scheduled, manual and diagnostic modes.

HousingService ties the pieces of one sync cycle together:

    WatermarkStore -> HousingAPIClient.fetch_leads -> process_lead
        -> LeadUpserter.sync_leads -> WatermarkStore (advance)

Modes:
- fetch_and_sync_latest_leads(): Incremental sync from the watermark to now.
  The watermark only advances after the batch has been processed; any
  exception aborts the cycle, returns success=False and leaves it untouched.
- manual_fetch(hours_back): Ad-hoc sync over a caller-chosen lookback.
  Never reads or writes the watermark.
- test_connection(): One-hour fetch returning raw leads; never syncs.
- preview_leads(): Fetch and map for display; never syncs.
- add_leads(leads): Sync caller-supplied canonical leads (e.g. a selection
  made from a preview); never touches the watermark.

The service holds no scheduling state; cadence belongs to whoever calls
run_scheduled_sync() (HousingSyncScheduler, an external cron hitting the
HTTP trigger, or scripts/housing_sync.py).

Overlapping invocations are not locked against each other.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from src.enquiry_crm.config import Settings, get_settings
from src.enquiry_crm.core.monitoring import track_sync_run
from src.enquiry_crm.housing.client import HousingAPIClient
from src.enquiry_crm.housing.exceptions import ConfigurationError
from src.enquiry_crm.housing.schemas import (
    CanonicalLead,
    ConnectionTestResult,
    LeadPreviewResult,
    SyncResult,
    SyncStats,
)
from src.enquiry_crm.housing.store import LeadStore
from src.enquiry_crm.housing.upserter import LeadUpserter
from src.enquiry_crm.housing.watermark import WatermarkStore

logger = structlog.get_logger(__name__)

CONNECTION_TEST_WINDOW_SECONDS = 3600


class HousingService:
    """Orchestrates Housing.com lead fetches and CRM syncs.

    Args:
        client: Signed upstream API client.
        store: Persistence backend for enquiries and the watermark.
        watermark: Optional WatermarkStore; built from ``store`` if omitted.
        upserter: Optional LeadUpserter; built from ``store`` if omitted.
    """

    def __init__(
        self,
        client: HousingAPIClient,
        store: LeadStore,
        watermark: WatermarkStore | None = None,
        upserter: LeadUpserter | None = None,
    ) -> None:
        self.client = client
        self._store = store
        self._watermark = watermark or WatermarkStore(store)
        self._upserter = upserter or LeadUpserter(store)

    @property
    def watermark(self) -> WatermarkStore:
        return self._watermark

    @property
    def upserter(self) -> LeadUpserter:
        return self._upserter

    async def fetch_and_sync_latest_leads(self) -> SyncResult:
        """Incremental sync of leads created since the last successful cycle."""
        async with track_sync_run("scheduled") as tracker:
            try:
                last_fetch = await self._watermark.get_last_fetch_timestamp()
                current = self.client.now()

                if last_fetch > current:
                    logger.warning(
                        "housing_service.watermark_in_future",
                        last_fetch=last_fetch,
                        current=current,
                    )

                logger.info(
                    "housing_service.sync_started",
                    start_timestamp=last_fetch,
                    end_timestamp=current,
                )

                raw_leads = await self.client.fetch_leads(str(last_fetch), str(current))

                if not raw_leads:
                    await self._watermark.update_last_fetch_timestamp(current)
                    logger.info("housing_service.no_new_leads")
                    result = SyncResult(
                        success=True,
                        message="No new leads found",
                        stats=SyncStats(),
                    )
                else:
                    leads = [self.client.process_lead(raw) for raw in raw_leads]
                    batch = await self._upserter.sync_leads(leads)

                    # Advance only once every lead has an outcome
                    await self._watermark.update_last_fetch_timestamp(current)

                    result = SyncResult(
                        success=True,
                        message=(
                            f"Successfully synced {len(raw_leads)} leads "
                            "from Housing API to database"
                        ),
                        stats=SyncStats.from_batch(len(raw_leads), batch),
                        details=batch.details,
                    )
            except Exception as exc:
                logger.exception("housing_service.sync_failed", error=str(exc))
                result = SyncResult(success=False, message=f"Error syncing leads: {exc}")

            _fill_tracker(tracker, result)

        return result

    async def manual_fetch(self, hours_back: int = 24) -> SyncResult:
        """Sync leads from the last ``hours_back`` hours without using the watermark."""
        async with track_sync_run("manual") as tracker:
            try:
                if hours_back <= 0:
                    raise ValueError(f"hours_back must be positive, got {hours_back}")

                leads = await self.client.fetch_latest_leads(hours_back)

                if not leads:
                    result = SyncResult(
                        success=True,
                        message=f"No leads found in the last {hours_back} hours",
                        stats=SyncStats(),
                    )
                else:
                    batch = await self._upserter.sync_leads(leads)
                    result = SyncResult(
                        success=True,
                        message=f"Successfully synced leads from last {hours_back} hours",
                        stats=SyncStats.from_batch(len(leads), batch),
                        details=batch.details,
                    )
            except Exception as exc:
                logger.exception("housing_service.manual_fetch_failed", error=str(exc))
                result = SyncResult(success=False, message=f"Error fetching leads: {exc}")

            _fill_tracker(tracker, result)

        return result

    async def test_connection(self) -> ConnectionTestResult:
        """Fetch the last hour of leads to prove credentials and connectivity.

        The leads are returned exactly as the API sent them, unmapped.
        """
        end_time = self.client.now()
        start_time = end_time - CONNECTION_TEST_WINDOW_SECONDS

        try:
            leads = await self.client.fetch_raw_records(str(start_time), str(end_time))
        except Exception as exc:
            logger.warning("housing_service.connection_test_failed", error=str(exc))
            return ConnectionTestResult(success=False, message=f"Connection failed: {exc}")

        return ConnectionTestResult(
            success=True,
            message=f"Connection successful! Found {len(leads)} leads in the last hour",
            data=leads,
        )

    async def preview_leads(
        self,
        hours_back: int = 24,
        days_back: int | None = None,
    ) -> LeadPreviewResult:
        """Fetch and map leads for display without writing them anywhere.

        Args:
            hours_back: Lookback window in hours.
            days_back: If given, overrides hours_back with a window in days.
        """
        window_seconds = days_back * 86400 if days_back is not None else hours_back * 3600
        end_time = self.client.now()
        start_time = end_time - window_seconds

        try:
            raw_leads = await self.client.fetch_leads(str(start_time), str(end_time))
        except Exception as exc:
            logger.warning("housing_service.preview_failed", error=str(exc))
            return LeadPreviewResult(
                success=False,
                message=f"Error fetching Housing leads: {exc}",
            )

        leads = [self.client.process_lead(raw) for raw in raw_leads]
        return LeadPreviewResult(
            success=True,
            message=f"Found {len(leads)} leads from Housing.com",
            data=leads,
            count=len(leads),
        )

    async def add_leads(self, leads: Sequence[CanonicalLead]) -> SyncResult:
        """Sync caller-supplied canonical leads into the CRM."""
        async with track_sync_run("selected") as tracker:
            try:
                batch = await self._upserter.sync_leads(leads)
                result = SyncResult(
                    success=True,
                    message=f"Successfully added {batch.inserted} leads to the CRM",
                    stats=SyncStats.from_batch(len(leads), batch),
                    details=batch.details,
                )
            except Exception as exc:
                logger.exception("housing_service.add_leads_failed", error=str(exc))
                result = SyncResult(success=False, message=f"Error adding leads: {exc}")

            _fill_tracker(tracker, result)

        return result


def _fill_tracker(tracker: dict, result: SyncResult) -> None:
    tracker["success"] = result.success
    if result.stats is not None:
        tracker["inserted"] = result.stats.inserted
        tracker["skipped"] = result.stats.skipped
        tracker["errors"] = result.stats.errors


# ── Trigger Surface ─────────────────────────────────────────────────────────


def build_housing_service(
    settings: Settings | None = None,
    session_factory: Callable[..., AsyncGenerator[AsyncSession, None]] | None = None,
) -> HousingService:
    """Wire a HousingService against the CRM database.

    Raises:
        ConfigurationError: If Housing.com credentials are missing.
    """
    from src.enquiry_crm.core.database import get_session
    from src.enquiry_crm.housing.postgres import PostgresLeadStore

    settings = settings or get_settings()
    client = HousingAPIClient.from_settings(settings)
    store = PostgresLeadStore(session_factory=session_factory or get_session)
    watermark = WatermarkStore(
        store,
        default_lookback_seconds=settings.HOUSING_DEFAULT_LOOKBACK_HOURS * 3600,
    )
    return HousingService(client=client, store=store, watermark=watermark)


async def run_scheduled_sync(service: HousingService | None = None) -> SyncResult:
    """Entry point for schedulers: incremental sync from the watermark."""
    try:
        service = service or build_housing_service()
    except ConfigurationError as exc:
        return SyncResult(success=False, message=f"Error syncing leads: {exc}")
    return await service.fetch_and_sync_latest_leads()


async def run_manual_fetch(hours_back: int, service: HousingService | None = None) -> SyncResult:
    """Entry point for ad-hoc syncs over a lookback window."""
    try:
        service = service or build_housing_service()
    except ConfigurationError as exc:
        return SyncResult(success=False, message=f"Error fetching leads: {exc}")
    return await service.manual_fetch(hours_back)


async def run_connection_test(service: HousingService | None = None) -> ConnectionTestResult:
    """Entry point for credential/connectivity checks."""
    try:
        service = service or build_housing_service()
    except ConfigurationError as exc:
        return ConnectionTestResult(success=False, message=f"Connection failed: {exc}")
    return await service.test_connection()
