"""Shared fixtures for the Housing.com lead sync tests.

Provides:
- InMemoryLeadStore: LeadStore test double with failure switches
- A fixed clock so watermarks, signatures and assignment are deterministic
- Factories for HousingAPIClient backed by an httpx.MockTransport
- A HousingService wired to the in-memory store
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from src.enquiry_crm.config import get_settings
from src.enquiry_crm.housing.client import HousingAPIClient
from src.enquiry_crm.housing.service import HousingService
from src.enquiry_crm.housing.store import LeadLookupError, LeadPersistenceError, LeadStore
from src.enquiry_crm.housing.upserter import LeadUpserter
from src.enquiry_crm.housing.watermark import WatermarkStore

FIXED_NOW = 1_700_003_600
PROFILE_ID = "profile-1234"
ENCRYPTION_KEY = "test-encryption-key"


# ── In-Memory Test Double ────────────────────────────────────────────────────


class InMemoryLeadStore(LeadStore):
    """In-memory LeadStore for testing without a database.

    Set ``fail_lookup`` / ``fail_insert`` / ``fail_config_read`` /
    ``fail_config_write`` to simulate backend failures.
    """

    def __init__(self) -> None:
        self.enquiries: dict[str, dict[str, Any]] = {}
        self.config: dict[str, str] = {}
        self.lookups: list[str] = []
        self.fail_lookup = False
        self.fail_insert = False
        self.fail_config_read = False
        self.fail_config_write = False
        self._next_id = 1

    async def find_enquiry_by_mobile(self, mobile: str) -> str | None:
        self.lookups.append(mobile)
        if self.fail_lookup:
            raise LeadLookupError("connection reset")
        for enquiry_id, record in self.enquiries.items():
            if record["Mobile"] == mobile:
                return enquiry_id
        return None

    async def insert_enquiry(self, record: dict[str, Any]) -> str:
        if self.fail_insert:
            raise LeadPersistenceError("insert rejected")
        enquiry_id = str(self._next_id)
        self._next_id += 1
        self.enquiries[enquiry_id] = dict(record)
        return enquiry_id

    async def get_config_value(self, key: str) -> str | None:
        if self.fail_config_read:
            raise LeadLookupError("config table unavailable")
        return self.config.get(key)

    async def upsert_config_value(self, key: str, value: str) -> None:
        if self.fail_config_write:
            raise LeadPersistenceError("config write rejected")
        self.config[key] = value


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are cached per process; reset around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> Callable[[], float]:
    return lambda: float(FIXED_NOW)


@pytest.fixture
def store() -> InMemoryLeadStore:
    return InMemoryLeadStore()


@pytest.fixture
def make_client(clock):
    """Factory: HousingAPIClient whose HTTP calls go to ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> HousingAPIClient:
        return HousingAPIClient(
            profile_id=PROFILE_ID,
            encryption_key=ENCRYPTION_KEY,
            api_url="https://leads.example.test/get-builder-leads",
            transport=httpx.MockTransport(handler),
            clock=clock,
        )

    return _make


@pytest.fixture
def make_service(store, clock, make_client):
    """Factory: HousingService over the in-memory store and a mocked upstream."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> HousingService:
        return HousingService(
            client=make_client(handler),
            store=store,
            watermark=WatermarkStore(store, clock=clock),
            upserter=LeadUpserter(store, clock=clock),
        )

    return _make


@pytest.fixture
def raw_lead():
    """Factory: an upstream lead record with sensible defaults."""

    def _make(**overrides: Any) -> dict[str, Any]:
        lead = {
            "lead_name": "Asha Patel",
            "lead_phone": "98765 43210",
            "lead_email": "asha@example.com",
            "project_name": "Greenview",
            "locality": "Bopal",
            "city": "Ahmedabad",
            "lead_date": "1700000000",
            "min_price": "50L",
            "max_price": "75L",
        }
        lead.update(overrides)
        return lead

    return _make
