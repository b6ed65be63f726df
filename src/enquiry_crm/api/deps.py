"""FastAPI dependency injection for the Housing.com sync endpoints.

These dependencies are used in endpoint function signatures to inject the
HousingService and to check the optional scheduled-trigger secret.
"""

from __future__ import annotations

import hmac

from fastapi import Header, Request

from src.enquiry_crm.config import get_settings
from src.enquiry_crm.housing.service import HousingService, build_housing_service


async def get_housing_service(request: Request) -> HousingService:
    """Return the app's HousingService, building one from settings if unset.

    Raises:
        ConfigurationError: If Housing.com credentials are missing (rendered
            as a structured 500 by the app's exception handler).
    """
    service = getattr(request.app.state, "housing_service", None)
    if service is not None:
        return service
    return build_housing_service()


def cron_secret_valid(authorization: str | None, secret: str) -> bool:
    """Check an Authorization header against ``Bearer <secret>``.

    An empty secret disables the check.
    """
    if not secret:
        return True
    expected = f"Bearer {secret}"
    return hmac.compare_digest((authorization or "").encode("utf-8"), expected.encode("utf-8"))


async def verify_cron_secret(authorization: str | None = Header(default=None)) -> bool:
    """True if the caller may run the scheduled sync."""
    return cron_secret_valid(authorization, get_settings().CRON_SECRET)
