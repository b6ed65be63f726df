"""Pydantic schemas for the Housing.com lead ingestion pipeline.

Defines the structured types that flow through one sync cycle:
- RawUpstreamLead: Record shape returned by the Housing.com builder-leads API
- CanonicalLead: CRM-shaped lead produced by HousingAPIClient.process_lead()
- LeadStatus / LeadOutcome / InsertResult / BatchSyncResult: Per-record outcomes
- SyncStats / SyncResult: Aggregate result of one orchestrator invocation
- ConnectionTestResult / LeadPreviewResult: Results of the non-syncing modes

CanonicalLead and everything embedding it serialize with camelCase aliases
(clientName, enquiryFor, ...) so UI and scheduler callers receive the same
JSON shape the CRM front end already consumes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# ── Upstream Record ─────────────────────────────────────────────────────────


class RawUpstreamLead(BaseModel):
    """A lead as returned by the Housing.com API.

    Every field is optional: upstream records are frequently partial and
    process_lead() substitutes fallbacks for anything missing. Numeric
    values (epoch dates, prices, areas) are normalized to strings.
    """

    model_config = ConfigDict(extra="ignore")

    lead_name: str | None = None
    lead_phone: str | None = None
    lead_email: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    locality: str | None = None
    city: str | None = None
    lead_date: str | None = None  # Epoch seconds
    apartment_names: str | None = None
    property_field: str | None = None
    min_area: str | None = None
    max_area: str | None = None
    min_price: str | None = None
    max_price: str | None = None
    service_type: str | None = None
    category_type: str | None = None
    flat_id: str | None = None
    property_id: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_scalars(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, (list, dict)):
            return None
        return value


# ── Canonical Lead ──────────────────────────────────────────────────────────


class CanonicalLead(BaseModel):
    """Normalized lead in the CRM's enquiry vocabulary.

    ``mobile`` is kept as received; cleaning happens at insert time so the
    existence check can try both representations.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    client_name: str = ""
    mobile: str = ""
    email: str = ""
    configuration: str = "Not specified"
    enquiry_for: str = "General Inquiry"
    property_type: str = "Residential"
    assigned_to: str = "Unassigned"
    created_date: str = ""
    enquiry_progress: str = "New"
    budget: str = "Not specified"
    nfd: str = ""
    enquiry_source: str = "Housing"
    area: str = "Not specified"
    remarks: str = ""


# ── Per-record Outcomes ─────────────────────────────────────────────────────


class LeadStatus(str, Enum):
    """Closed set of per-record outcomes of a sync."""

    INSERTED = "inserted"
    SKIPPED = "skipped"
    ERROR = "error"


class LeadOutcome(BaseModel):
    """What happened to one lead during a sync."""

    lead: CanonicalLead
    status: LeadStatus
    error: str | None = None


class InsertResult(BaseModel):
    """Result of LeadUpserter.insert_lead() for a single lead."""

    success: bool
    status: LeadStatus
    id: str = ""
    error: str | None = None


class BatchSyncResult(BaseModel):
    """Tally of LeadUpserter.sync_leads() over a list of leads."""

    inserted: int = 0
    skipped: int = 0
    errors: int = 0
    details: list[LeadOutcome] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.skipped + self.errors


# ── Aggregate Results ───────────────────────────────────────────────────────


class SyncStats(BaseModel):
    """Aggregate counts for one sync invocation.

    Every fetched lead lands in exactly one bucket.
    """

    fetched: int = Field(default=0, ge=0)
    inserted: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_conservation(self) -> SyncStats:
        if self.fetched != self.inserted + self.skipped + self.errors:
            raise ValueError(
                f"fetched ({self.fetched}) must equal inserted + skipped + errors "
                f"({self.inserted} + {self.skipped} + {self.errors})"
            )
        return self

    @classmethod
    def from_batch(cls, fetched: int, batch: BatchSyncResult) -> SyncStats:
        return cls(
            fetched=fetched,
            inserted=batch.inserted,
            skipped=batch.skipped,
            errors=batch.errors,
        )


class SyncResult(BaseModel):
    """Structured result returned to every sync caller (scheduler, UI, CLI)."""

    success: bool
    message: str
    stats: SyncStats | None = None
    details: list[LeadOutcome] | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase lead fields and no empty sections."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ConnectionTestResult(BaseModel):
    """Result of a connectivity/credential check against the upstream API.

    ``data`` carries the upstream lead objects verbatim, including fields
    RawUpstreamLead does not model.
    """

    success: bool
    message: str
    data: list[dict[str, Any]] | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class LeadPreviewResult(BaseModel):
    """Mapped leads fetched for display, never written to the CRM."""

    success: bool
    message: str
    data: list[CanonicalLead] | None = None
    count: int = 0

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
