"""Prometheus metrics, Sentry integration, and lead sync tracking.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- track_sync_run(): Context manager recording Housing.com sync run metrics
- record_watermark(): Gauge update when the sync watermark advances
- init_sentry(): Initialize Sentry for the FastAPI app
- get_metrics_response(): Handler body for /metrics
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Lead Sync Metrics ────────────────────────────────────────────────────────

housing_sync_runs_total = Counter(
    "housing_sync_runs_total",
    "Housing.com sync invocations",
    ["mode", "status"],
)

housing_sync_duration_seconds = Histogram(
    "housing_sync_duration_seconds",
    "Housing.com sync duration in seconds",
    ["mode"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

housing_leads_processed_total = Counter(
    "housing_leads_processed_total",
    "Housing.com leads processed by outcome",
    ["status"],
)

housing_watermark_timestamp = Gauge(
    "housing_watermark_timestamp",
    "Epoch seconds of the last successful Housing.com sync window end",
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that records Prometheus metrics for every HTTP request.

    Skips the /metrics endpoint itself to avoid self-referential counting.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        endpoint = request.url.path

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# ── Sync Metrics Helper ─────────────────────────────────────────────────────


@asynccontextmanager
async def track_sync_run(mode: str) -> AsyncGenerator[dict[str, Any], None]:
    """Context manager that tracks one sync invocation.

    Usage:
        async with track_sync_run("scheduled") as tracker:
            result = await do_sync(...)
            tracker["success"] = result.success
            tracker["inserted"] = result.stats.inserted

    Records duration, the run count by status, and per-outcome lead counts
    for any of ``inserted``/``skipped``/``errors`` set on the tracker.
    """
    tracker: dict[str, Any] = {
        "success": False,
        "inserted": 0,
        "skipped": 0,
        "errors": 0,
    }
    start_time = time.perf_counter()

    try:
        yield tracker
    except Exception:
        tracker["success"] = False
        raise
    finally:
        duration = time.perf_counter() - start_time
        status = "success" if tracker["success"] else "error"

        housing_sync_runs_total.labels(mode=mode, status=status).inc()
        housing_sync_duration_seconds.labels(mode=mode).observe(duration)

        for outcome, label in (("inserted", "inserted"), ("skipped", "skipped"), ("errors", "error")):
            if tracker.get(outcome):
                housing_leads_processed_total.labels(status=label).inc(tracker[outcome])


def record_watermark(timestamp: int) -> None:
    """Expose the persisted watermark as a gauge."""
    housing_watermark_timestamp.set(timestamp)


# ── Sentry Integration ───────────────────────────────────────────────────────


def init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry SDK.

    Args:
        dsn: Sentry DSN string.
        environment: Deployment environment (development, staging, production).
    """
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.starlette import StarletteIntegration

    traces_sample_rate = 0.1 if environment == "production" else 1.0

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            StarletteIntegration(),
            FastApiIntegration(),
        ],
    )


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
