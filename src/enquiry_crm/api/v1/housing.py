"""REST endpoints for the Housing.com lead sync.

Every sync-style endpoint returns the structured result as JSON with
200 when ``success`` is true and 500 otherwise:

- GET  /housing/cron          Scheduled sync for external cron callers
                               (Bearer CRON_SECRET when configured)
- GET  /housing/sync          Scheduled sync on demand ("sync now")
- POST /housing/sync          Manual fetch over {"hoursBack": N}
- GET  /housing/test          Connection test (raw leads from the last hour)
- GET  /housing/fetch-leads   Preview mapped leads, nothing written
- POST /housing/fetch-leads   Sync caller-supplied leads {"leads": [...]}
- POST /housing/test-fetch    Preview over {"daysBack": N} days
- GET  /housing/debug         Masked configuration status
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from src.enquiry_crm.api.deps import get_housing_service, verify_cron_secret
from src.enquiry_crm.config import get_settings
from src.enquiry_crm.housing.exceptions import ConfigurationError
from src.enquiry_crm.housing.schemas import CanonicalLead, LeadStatus, SyncResult
from src.enquiry_crm.housing.service import (
    HousingService,
    run_connection_test,
    run_manual_fetch,
    run_scheduled_sync,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/housing", tags=["housing"])


# ── Request Schemas ──────────────────────────────────────────────────────────


class ManualFetchRequest(BaseModel):
    """Request body for a manual fetch."""

    model_config = ConfigDict(populate_by_name=True)

    hours_back: int = Field(default=24, ge=1, le=720, alias="hoursBack")


class AddLeadsRequest(BaseModel):
    """Request body carrying canonical leads picked from a preview."""

    leads: list[CanonicalLead]


class TestFetchRequest(BaseModel):
    """Request body for a preview over a window in days."""

    model_config = ConfigDict(populate_by_name=True)

    days_back: int = Field(default=30, ge=1, le=365, alias="daysBack")


# ── Helpers ──────────────────────────────────────────────────────────────────


def _status_for(success: bool) -> int:
    return status.HTTP_200_OK if success else status.HTTP_500_INTERNAL_SERVER_ERROR


def _iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.get("/cron")
async def scheduled_sync_trigger(
    request: Request,
    authorized: bool = Depends(verify_cron_secret),
) -> JSONResponse:
    """Scheduled sync for external schedulers (Cloud Scheduler, cron, CI).

    Adds request metadata (requestId, timing) and logs per-lead errors and
    skips for the scheduler's log stream.
    """
    started = datetime.now(timezone.utc)
    request_id = f"cron_{int(started.timestamp() * 1000)}"
    log = logger.bind(request_id=request_id)

    if not authorized:
        log.warning("housing_cron.unauthorized")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={
                "success": False,
                "message": "Unauthorized",
                "requestId": request_id,
                "timestamp": _iso(started),
            },
        )

    log.info("housing_cron.sync_started")
    start_clock = time.monotonic()

    try:
        service = await get_housing_service(request)
    except ConfigurationError as exc:
        result = SyncResult(success=False, message=f"Error syncing leads: {exc}")
    else:
        result = await run_scheduled_sync(service)

    completed = datetime.now(timezone.utc)
    duration_ms = round((time.monotonic() - start_clock) * 1000)

    for outcome in result.details or []:
        if outcome.status is LeadStatus.ERROR:
            log.warning(
                "housing_cron.lead_error",
                client_name=outcome.lead.client_name,
                mobile=outcome.lead.mobile,
                error=outcome.error,
            )
        elif outcome.status is LeadStatus.SKIPPED:
            log.info(
                "housing_cron.lead_skipped",
                client_name=outcome.lead.client_name,
                mobile=outcome.lead.mobile,
                reason=outcome.error,
            )

    log.info(
        "housing_cron.sync_completed",
        success=result.success,
        message=result.message,
        duration_ms=duration_ms,
        **(result.stats.model_dump() if result.stats else {}),
    )

    content: dict[str, Any] = result.to_payload()
    content.update(
        {
            "requestId": request_id,
            "timestamp": _iso(started),
            "duration": f"{duration_ms}ms",
            "executionTime": {
                "started": _iso(started),
                "completed": _iso(completed),
            },
        }
    )
    return JSONResponse(status_code=_status_for(result.success), content=content)


@router.get("/sync")
async def sync_now(
    service: HousingService = Depends(get_housing_service),
) -> JSONResponse:
    """Run the incremental sync immediately."""
    result = await run_scheduled_sync(service)
    return JSONResponse(status_code=_status_for(result.success), content=result.to_payload())


@router.post("/sync")
async def manual_fetch(
    body: ManualFetchRequest,
    service: HousingService = Depends(get_housing_service),
) -> JSONResponse:
    """Sync leads from the last ``hoursBack`` hours; the watermark is not touched."""
    result = await run_manual_fetch(body.hours_back, service)
    return JSONResponse(status_code=_status_for(result.success), content=result.to_payload())


@router.get("/test")
async def connection_test(
    service: HousingService = Depends(get_housing_service),
) -> JSONResponse:
    """Check credentials and connectivity with a one-hour fetch."""
    result = await run_connection_test(service)
    return JSONResponse(status_code=_status_for(result.success), content=result.to_payload())


@router.get("/fetch-leads")
async def preview_leads(
    hours_back: int = Query(default=24, ge=1, le=720, alias="hoursBack"),
    service: HousingService = Depends(get_housing_service),
) -> JSONResponse:
    """Fetch and map recent leads for display without inserting them."""
    result = await service.preview_leads(hours_back=hours_back)
    content = result.to_payload()
    content["timestamp"] = _iso(datetime.now(timezone.utc))
    return JSONResponse(status_code=_status_for(result.success), content=content)


@router.post("/fetch-leads")
async def add_selected_leads(
    body: AddLeadsRequest,
    service: HousingService = Depends(get_housing_service),
) -> JSONResponse:
    """Insert leads chosen from a preview, with the usual dedup rules."""
    result = await service.add_leads(body.leads)
    return JSONResponse(status_code=_status_for(result.success), content=result.to_payload())


@router.post("/test-fetch")
async def test_fetch(
    body: TestFetchRequest,
    service: HousingService = Depends(get_housing_service),
) -> JSONResponse:
    """Preview leads over a wider window in days; nothing is written."""
    result = await service.preview_leads(days_back=body.days_back)
    return JSONResponse(status_code=_status_for(result.success), content=result.to_payload())


@router.get("/debug")
async def config_debug() -> dict[str, Any]:
    """Masked Housing.com configuration status."""
    settings = get_settings()
    return {
        "configStatus": settings.housing_config_status(),
        "timestamp": _iso(datetime.now(timezone.utc)),
    }
