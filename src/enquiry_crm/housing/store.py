"""Persistence interface used by the lead sync pipeline.

LeadStore is the narrow slice of the CRM database the pipeline needs: an
existence lookup and insert against the enquiries table, and a get/upsert
pair against the generic system_config key/value table (the watermark).

PostgresLeadStore is the production implementation; tests use an
in-memory double with the same interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class LeadLookupError(Exception):
    """A read failed for a reason other than "no matching row"."""


class LeadPersistenceError(Exception):
    """A write (insert or upsert) was rejected or could not be completed."""


class LeadStore(ABC):
    """Abstract interface for the enquiries and system_config tables.

    Methods:
        find_enquiry_by_mobile: ID of an enquiry with exactly this Mobile, or None.
        insert_enquiry: Insert a row keyed by column name, return its ID.
        get_config_value: Value stored under a system_config key, or None.
        upsert_config_value: Insert or replace a system_config key.
    """

    @abstractmethod
    async def find_enquiry_by_mobile(self, mobile: str) -> str | None:
        """Return the ID of an enquiry whose Mobile equals ``mobile``.

        Raises:
            LeadLookupError: The lookup itself failed.
        """
        ...

    @abstractmethod
    async def insert_enquiry(self, record: dict[str, Any]) -> str:
        """Insert an enquiry row (keys are column names), return the new ID.

        Raises:
            LeadPersistenceError: The insert failed.
        """
        ...

    @abstractmethod
    async def get_config_value(self, key: str) -> str | None:
        """Return the system_config value for ``key``.

        Raises:
            LeadLookupError: The lookup itself failed.
        """
        ...

    @abstractmethod
    async def upsert_config_value(self, key: str, value: str) -> None:
        """Insert or update the system_config row for ``key``.

        Raises:
            LeadPersistenceError: The write failed.
        """
        ...
