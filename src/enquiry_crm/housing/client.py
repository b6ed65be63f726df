"""Async client for the Housing.com builder-leads API.

Provides HousingAPIClient, which signs each request with an HMAC of the
request timestamp, fetches leads for an epoch-seconds window, tolerates both
response shapes the API is known to return (a bare JSON array, or a
``{status, data, message}`` envelope) and maps raw records onto the CRM's
canonical lead.

There is deliberately no retry around the upstream call: a failed call fails
the whole sync cycle, which leaves the watermark untouched so the next run
re-covers the window.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from src.enquiry_crm.config import Settings
from src.enquiry_crm.housing.exceptions import (
    ConfigurationError,
    UpstreamProtocolError,
    UpstreamRequestFailed,
)
from src.enquiry_crm.housing.field_mapping import (
    build_area,
    build_budget,
    build_configuration,
    build_remarks,
    epoch_to_iso,
)
from src.enquiry_crm.housing.schemas import CanonicalLead, RawUpstreamLead
from src.enquiry_crm.housing.signing import sign_request_timestamp

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://leads.housing.com/api/v0/get-builder-leads"

# Characters of an unparseable body carried into UpstreamProtocolError
_SNIPPET_LENGTH = 100


def extract_leads(payload: Any) -> list[Any]:
    """Pull the lead list out of either upstream response shape.

    A top-level array is the lead list itself; an object carries it under
    ``data``. Anything else yields no leads.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        data = payload.get("data")
        return data if isinstance(data, list) else []
    return []


def _envelope_status_ok(status: Any) -> bool:
    """True when an envelope status is absent/empty or numerically equals 200."""
    if not status:
        return True
    try:
        return float(status) == 200
    except (TypeError, ValueError):
        return False


class HousingAPIClient:
    """Signed, async access to the Housing.com lead feed.

    Args:
        profile_id: Housing.com builder profile identifier (``id`` param).
        encryption_key: Shared secret used to sign ``current_time``.
        api_url: Builder-leads endpoint.
        timeout: HTTP timeout in seconds for the single upstream call.
        transport: Optional httpx transport (tests inject MockTransport).
        clock: Returns current epoch seconds; defaults to time.time.

    Raises:
        ConfigurationError: If profile_id or encryption_key is empty.
    """

    def __init__(
        self,
        profile_id: str,
        encryption_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if not profile_id or not encryption_key:
            logger.error(
                "housing_client.not_configured",
                profile_id="SET" if profile_id else "NOT SET",
                encryption_key="SET" if encryption_key else "NOT SET",
                hint="set HOUSING_PROFILE_ID and HOUSING_ENCRYPTION_KEY",
            )
            raise ConfigurationError("Housing.com API credentials not configured properly")

        self._profile_id = profile_id
        self._encryption_key = encryption_key
        self._api_url = api_url
        self._timeout = timeout
        self._transport = transport
        self._clock = clock or time.time

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> HousingAPIClient:
        """Build a client from application settings."""
        return cls(
            profile_id=settings.HOUSING_PROFILE_ID,
            encryption_key=settings.HOUSING_ENCRYPTION_KEY,
            api_url=settings.HOUSING_API_URL,
            timeout=settings.HOUSING_HTTP_TIMEOUT,
            transport=transport,
        )

    def now(self) -> int:
        """Current epoch seconds per the client's clock."""
        return int(self._clock())

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=self._timeout,
            transport=self._transport,
        )

    def _masked_profile_id(self) -> str:
        return f"{self._profile_id[:4]}..."

    async def fetch_raw_records(self, start_date: str, end_date: str) -> list[dict[str, Any]]:
        """Fetch upstream lead records created in [start_date, end_date), unmodified.

        The signing timestamp is taken at call time and is independent of
        the requested window.

        Args:
            start_date: Window start, epoch seconds as a string.
            end_date: Window end, epoch seconds as a string.

        Returns:
            Lead objects exactly as the API returned them (possibly empty).
            Non-object array members are dropped.

        Raises:
            UpstreamProtocolError: Body is not valid JSON.
            UpstreamRequestFailed: Non-2xx status, non-200 envelope status,
                or transport failure.
        """
        current_time = str(self.now())
        params = {
            "start_date": start_date,
            "end_date": end_date,
            "current_time": current_time,
            "hash": sign_request_timestamp(self._encryption_key, current_time),
            "id": self._profile_id,
        }

        logger.info(
            "housing_client.fetch_started",
            start_date=start_date,
            end_date=end_date,
            current_time=current_time,
            profile_id=self._masked_profile_id(),
        )

        try:
            async with self._client() as client:
                response = await client.get(self._api_url, params=params)
        except httpx.HTTPError as exc:
            logger.error("housing_client.transport_error", error=str(exc))
            raise UpstreamRequestFailed(f"Housing API request failed: {exc}") from exc

        body = response.text
        logger.debug(
            "housing_client.response_received",
            status_code=response.status_code,
            body_preview=body[:200],
        )

        try:
            payload = json.loads(body)
        except ValueError as exc:
            snippet = body[:_SNIPPET_LENGTH]
            logger.error(
                "housing_client.invalid_json",
                status_code=response.status_code,
                snippet=snippet,
            )
            raise UpstreamProtocolError(
                f"Invalid JSON response from Housing API: {snippet}",
                snippet=snippet,
            ) from exc

        envelope = payload if isinstance(payload, dict) else {}
        message = envelope.get("message")

        if not response.is_success:
            logger.error(
                "housing_client.request_failed",
                status_code=response.status_code,
                message=message,
            )
            raise UpstreamRequestFailed(
                message or f"API request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        if not _envelope_status_ok(envelope.get("status")):
            logger.error(
                "housing_client.envelope_status_error",
                envelope_status=envelope.get("status"),
                message=message,
            )
            raise UpstreamRequestFailed(
                message or "API returned non-success status",
                status_code=response.status_code,
            )

        records: list[dict[str, Any]] = []
        for item in extract_leads(payload):
            if not isinstance(item, dict):
                logger.warning("housing_client.lead_dropped", reason="not an object")
                continue
            records.append(item)

        logger.info("housing_client.fetch_complete", count=len(records))
        return records

    async def fetch_leads(self, start_date: str, end_date: str) -> list[RawUpstreamLead]:
        """Fetch leads for the window, parsed into RawUpstreamLead.

        Raises the same errors as fetch_raw_records().
        """
        records = await self.fetch_raw_records(start_date, end_date)
        return [RawUpstreamLead.model_validate(record) for record in records]

    def process_lead(self, lead: RawUpstreamLead) -> CanonicalLead:
        """Map a raw upstream record onto the canonical lead. Never raises.

        Name and mobile get no placeholder: a lead missing either must fail
        validation at insert time rather than be stored as "Unknown".
        """
        return CanonicalLead(
            client_name=(lead.lead_name or "").strip(),
            mobile=lead.lead_phone or "",
            email=lead.lead_email or "",
            configuration=build_configuration(
                lead.min_area,
                lead.max_area,
                lead.property_field,
                lead.apartment_names,
            ),
            enquiry_for=lead.project_name or "General Inquiry",
            property_type=lead.category_type or lead.service_type or "Residential",
            assigned_to="Unassigned",
            created_date=epoch_to_iso(lead.lead_date),
            enquiry_progress="New",
            budget=build_budget(lead.min_price, lead.max_price),
            nfd="",
            enquiry_source="Housing",
            area=build_area(lead.locality, lead.city),
            remarks=build_remarks(lead.project_name, lead.locality),
        )

    async def fetch_latest_leads(self, hours_back: int = 24) -> list[CanonicalLead]:
        """Fetch and map leads from the last ``hours_back`` hours."""
        end_time = self.now()
        start_time = end_time - hours_back * 3600

        leads = await self.fetch_leads(str(start_time), str(end_time))
        return [self.process_lead(lead) for lead in leads]


__all__ = ["HousingAPIClient", "extract_leads"]
