"""Field derivations and enquiry column mappings for Housing.com leads.

Defines:
- Derivation helpers used by HousingAPIClient.process_lead() to turn a
  RawUpstreamLead into a CanonicalLead (configuration, budget, area, ...).
- clean_mobile(): Separator stripping shared by dedup and insert.
- ENQUIRY_COLUMN_MAP: CanonicalLead field -> enquiries table column name.
- to_enquiry_record(): Builds the persisted row, keyed by column name.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from src.enquiry_crm.housing.schemas import CanonicalLead

NOT_SPECIFIED = "Not specified"

ENQUIRY_SOURCE = "Housing"
ASSIGNED_BY = "System"
INITIAL_PROGRESS = "New"

_MOBILE_SEPARATORS = re.compile(r"[\s\-()]")


# ── Enquiry Column Mapping ─────────────────────────────────────────────────
# Column names are the CRM's display-style headers, shared with the UI.

ENQUIRY_COLUMN_MAP: dict[str, str] = {
    "client_name": "Client Name",
    "mobile": "Mobile",
    "email": "Email",
    "enquiry_for": "Enquiry For",
    "property_type": "Property Type",
    "assigned_to": "Assigned To",
    "created_date": "Created Date",
    "enquiry_progress": "Enquiry Progress",
    "budget": "Budget",
    "nfd": "NFD",
    "enquiry_source": "Enquiry Source",
    "area": "Area",
    "configuration": "Configuration",
    "remarks": "Remarks",
}

LAST_REMARKS_COLUMN = "Last Remarks"
ASSIGNED_BY_COLUMN = "Assigned By"


# ── Derivations ────────────────────────────────────────────────────────────


def clean_mobile(mobile: str) -> str:
    """Strip whitespace, dashes and parentheses from a phone number."""
    return _MOBILE_SEPARATORS.sub("", mobile or "")


def epoch_to_iso(epoch_seconds: str | None, now: datetime | None = None) -> str:
    """Convert upstream epoch seconds to an ISO-8601 UTC string with milliseconds.

    Missing or unparseable values fall back to ``now`` (current UTC time).
    """
    try:
        moment = datetime.fromtimestamp(float(epoch_seconds), tz=timezone.utc)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError, OSError):
        moment = now or datetime.now(timezone.utc)

    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def format_created_date(iso_date: str) -> str:
    """Render an ISO timestamp as the CRM's DD/MM/YYYY created-date string."""
    try:
        moment = datetime.fromisoformat(iso_date.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        moment = datetime.now(timezone.utc)
    return moment.strftime("%d/%m/%Y")


def build_configuration(
    min_area: str | None,
    max_area: str | None,
    property_field: str | None,
    apartment_names: str | None,
) -> str:
    """Human-readable configuration from area range, property type and building names."""
    parts = [
        f"{min_area}-{max_area} sqft" if min_area and max_area else "",
        property_field or "",
        apartment_names or "",
    ]
    return ", ".join(part for part in parts if part) or NOT_SPECIFIED


def build_budget(min_price: str | None, max_price: str | None) -> str:
    """Budget label from an optional price range."""
    if min_price and max_price:
        return f"₹{min_price} - ₹{max_price}"
    if min_price:
        return f"₹{min_price}+"
    if max_price:
        return f"Up to ₹{max_price}"
    return NOT_SPECIFIED


def build_area(locality: str | None, city: str | None) -> str:
    return locality or city or NOT_SPECIFIED


def build_remarks(project_name: str | None, locality: str | None) -> str:
    """Traceability note recording where the lead came from."""
    return (
        f"Lead from Housing.com - Project: {project_name or 'N/A'}, "
        f"Locality: {locality or 'N/A'}"
    )


# ── Persisted Record ───────────────────────────────────────────────────────


def to_enquiry_record(lead: CanonicalLead, assigned_to: str) -> dict[str, Any]:
    """Build the enquiries row for a validated lead.

    Nullable columns are always present: NFD is explicitly None (set later
    by the sales team), Email is None when empty and Budget falls back to
    "Not specified".

    Args:
        lead: Canonical lead with non-empty client_name and mobile.
        assigned_to: Employee chosen by LeadUpserter.assign_employee().

    Returns:
        Dict keyed by enquiries column name.
    """
    remarks = lead.remarks.strip()

    values: dict[str, Any] = {
        "client_name": lead.client_name.strip(),
        "mobile": clean_mobile(lead.mobile),
        "email": lead.email.strip() or None,
        "enquiry_for": lead.enquiry_for.strip(),
        "property_type": lead.property_type.strip(),
        "assigned_to": assigned_to,
        "created_date": format_created_date(lead.created_date),
        "enquiry_progress": INITIAL_PROGRESS,
        "budget": lead.budget.strip() or NOT_SPECIFIED,
        "nfd": None,
        "enquiry_source": ENQUIRY_SOURCE,
        "area": lead.area.strip(),
        "configuration": lead.configuration.strip(),
        "remarks": remarks,
    }

    record = {ENQUIRY_COLUMN_MAP[field]: value for field, value in values.items()}
    record[LAST_REMARKS_COLUMN] = remarks
    record[ASSIGNED_BY_COLUMN] = ASSIGNED_BY
    return record
