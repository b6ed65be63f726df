"""Deduplicating insert of canonical leads into the CRM enquiries table.

For each lead: validate required fields -> existence check by mobile ->
assign an owning employee -> insert. Every lead ends in exactly one of
inserted / skipped / error, and one lead's failure never affects another.

Leads are processed strictly one at a time. The existence check and the
insert are separate statements with no unique constraint behind them, so
running leads concurrently could let two copies of the same phone number
through the check.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence

import structlog

from src.enquiry_crm.housing.field_mapping import clean_mobile, to_enquiry_record
from src.enquiry_crm.housing.schemas import (
    BatchSyncResult,
    CanonicalLead,
    InsertResult,
    LeadOutcome,
    LeadStatus,
)
from src.enquiry_crm.housing.store import LeadPersistenceError, LeadStore

logger = structlog.get_logger(__name__)

LEAD_ALREADY_EXISTS = "Lead already exists"

# Area (lower-cased) -> employees eligible for round-robin assignment.
AREA_ASSIGNMENTS: dict[str, list[str]] = {
    "bhopal": ["Rajdeepsinh, Jadeja", "Maulik, Jadav"],
    "sindhupan": ["Rushirajsinh, Zala"],
    "default": ["Rajdeepsinh, Jadeja", "Maulik, Jadav", "Rushirajsinh, Zala"],
}


class LeadUpserter:
    """Inserts canonical leads, skipping mobiles already in the CRM.

    Args:
        store: Persistence backend for the enquiries table.
        area_assignments: Area -> employee pool table; must contain "default".
        clock: Returns current epoch seconds; drives round-robin assignment.
    """

    def __init__(
        self,
        store: LeadStore,
        area_assignments: dict[str, list[str]] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._store = store
        self._assignments = area_assignments or AREA_ASSIGNMENTS
        self._clock = clock or time.time

    async def check_lead_exists(self, mobile: str) -> bool:
        """Return True if an enquiry with this mobile is already stored.

        Tries the mobile as received, then its cleaned form. A lookup that
        fails (as opposed to finding nothing) is reported as False, letting
        the insert proceed.
        """
        candidates = [mobile]
        cleaned = clean_mobile(mobile)
        if cleaned and cleaned != mobile:
            candidates.append(cleaned)

        for candidate in candidates:
            try:
                enquiry_id = await self._store.find_enquiry_by_mobile(candidate)
            except Exception as exc:
                logger.error(
                    "housing_sync.existence_check_failed",
                    mobile=candidate,
                    error=str(exc),
                )
                return False
            if enquiry_id is not None:
                return True

        return False

    def assign_employee(self, area: str) -> str:
        """Pick an employee for the lead's area by time-based round-robin."""
        key = (area or "").strip().lower()
        employees = self._assignments.get(key) or self._assignments["default"]
        index = int(self._clock()) % len(employees)
        return employees[index]

    async def insert_lead(self, lead: CanonicalLead) -> InsertResult:
        """Validate, dedup and insert one lead.

        Returns:
            InsertResult with status inserted (success, new id), skipped
            (mobile already present) or error (validation/persistence).
        """
        if not lead.client_name.strip() or not clean_mobile(lead.mobile):
            message = (
                "Lead missing required fields - "
                f"Client Name: {lead.client_name}, Mobile: {lead.mobile}"
            )
            logger.warning("housing_sync.lead_invalid", error=message)
            return InsertResult(success=False, status=LeadStatus.ERROR, error=message)

        cleaned_mobile = clean_mobile(lead.mobile)

        if await self.check_lead_exists(lead.mobile):
            logger.info("housing_sync.lead_skipped", mobile=lead.mobile, reason="duplicate")
            return InsertResult(
                success=False,
                status=LeadStatus.SKIPPED,
                error=LEAD_ALREADY_EXISTS,
            )

        assigned_to = self.assign_employee(lead.area)
        record = to_enquiry_record(lead, assigned_to)

        try:
            enquiry_id = await self._store.insert_enquiry(record)
        except LeadPersistenceError as exc:
            logger.error(
                "housing_sync.lead_insert_failed",
                client_name=lead.client_name,
                mobile=cleaned_mobile,
                error=str(exc),
            )
            return InsertResult(success=False, status=LeadStatus.ERROR, error=str(exc))
        except Exception as exc:
            logger.exception("housing_sync.lead_insert_error", mobile=cleaned_mobile)
            return InsertResult(success=False, status=LeadStatus.ERROR, error=str(exc))

        logger.info(
            "housing_sync.lead_inserted",
            enquiry_id=enquiry_id,
            client_name=lead.client_name,
            mobile=cleaned_mobile,
            assigned_to=assigned_to,
        )
        return InsertResult(success=True, status=LeadStatus.INSERTED, id=enquiry_id)

    async def sync_leads(self, leads: Sequence[CanonicalLead]) -> BatchSyncResult:
        """Insert leads one after another, tallying each outcome."""
        result = BatchSyncResult()

        for lead in leads:
            outcome = await self.insert_lead(lead)

            if outcome.status is LeadStatus.INSERTED:
                result.inserted += 1
            elif outcome.status is LeadStatus.SKIPPED:
                result.skipped += 1
            else:
                result.errors += 1

            result.details.append(
                LeadOutcome(lead=lead, status=outcome.status, error=outcome.error)
            )

        logger.info(
            "housing_sync.batch_complete",
            total=len(leads),
            inserted=result.inserted,
            skipped=result.skipped,
            errors=result.errors,
        )
        return result
