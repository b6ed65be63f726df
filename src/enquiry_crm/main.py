"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, Sentry,
lifespan events for database initialization and the optional in-process
Housing.com sync scheduler, and the v1 API router.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response

from src.enquiry_crm.config import get_settings
from src.enquiry_crm.core.database import close_db, init_db
from src.enquiry_crm.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.enquiry_crm.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.enquiry_crm.api.v1.router import router as v1_router
from src.enquiry_crm.housing.exceptions import HousingError
from src.enquiry_crm.housing.scheduler import HousingSyncScheduler
from src.enquiry_crm.housing.service import run_scheduled_sync


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB, Sentry and the scheduler; tear down on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()
    await init_db()

    # Initialize Sentry if DSN is configured
    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    app.state.housing_scheduler = None
    if settings.HOUSING_SCHEDULER_ENABLED:
        if settings.housing_configured():
            scheduler = HousingSyncScheduler(
                run_scheduled_sync,
                interval_minutes=settings.HOUSING_SYNC_INTERVAL_MINUTES,
            )
            scheduler.start()
            app.state.housing_scheduler = scheduler
        else:
            log.warning("housing_scheduler.not_started", reason="credentials missing")

    yield

    scheduler = getattr(app.state, "housing_scheduler", None)
    if scheduler is not None:
        scheduler.stop()
    await close_db()


async def housing_error_handler(request: Request, exc: HousingError) -> JSONResponse:
    """Render unhandled Housing.com errors as the structured failure shape."""
    structlog.get_logger(__name__).error(
        "housing_request_failed",
        path=request.url.path,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": str(exc)},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Enquiry CRM API",
        version="0.1.0",
        description="Real-estate enquiry CRM with Housing.com lead ingestion",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(HousingError, housing_error_handler)

    # Include v1 API router (health, housing)
    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
