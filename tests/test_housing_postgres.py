"""Unit tests for PostgresLeadStore.

Uses mocked AsyncSession objects -- no real database.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.enquiry_crm.housing.field_mapping import ENQUIRY_COLUMN_MAP, LAST_REMARKS_COLUMN
from src.enquiry_crm.housing.models import EnquiryModel
from src.enquiry_crm.housing.postgres import PostgresLeadStore
from src.enquiry_crm.housing.store import LeadLookupError, LeadPersistenceError


def _session_factory(session):
    async def factory():
        yield session

    return factory


def _session(scalar=None, execute_error=None, commit_error=None) -> MagicMock:
    session = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    session.execute = AsyncMock(return_value=result, side_effect=execute_error)
    session.commit = AsyncMock(side_effect=commit_error)
    session.add = MagicMock()
    return session


def _db_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


class TestFindEnquiryByMobile:
    async def test_found(self):
        store = PostgresLeadStore(_session_factory(_session(scalar=42)))
        assert await store.find_enquiry_by_mobile("9876543210") == "42"

    async def test_not_found(self):
        store = PostgresLeadStore(_session_factory(_session(scalar=None)))
        assert await store.find_enquiry_by_mobile("9876543210") is None

    async def test_db_error_raises_lookup_error(self):
        store = PostgresLeadStore(_session_factory(_session(execute_error=_db_error())))
        with pytest.raises(LeadLookupError, match="connection refused"):
            await store.find_enquiry_by_mobile("9876543210")


class TestInsertEnquiry:
    def _record(self) -> dict:
        record = {column: "x" for column in ENQUIRY_COLUMN_MAP.values()}
        record[LAST_REMARKS_COLUMN] = "x"
        return record

    async def test_maps_columns_onto_model(self):
        session = _session()
        store = PostgresLeadStore(_session_factory(session))

        await store.insert_enquiry({**self._record(), "Client Name": "Asha", "Mobile": "1"})

        model = session.add.call_args.args[0]
        assert isinstance(model, EnquiryModel)
        assert model.client_name == "Asha"
        assert model.mobile == "1"
        session.commit.assert_awaited_once()

    async def test_unknown_column(self):
        store = PostgresLeadStore(_session_factory(_session()))
        with pytest.raises(LeadPersistenceError, match="Unknown enquiries column"):
            await store.insert_enquiry({"Nope": 1})

    async def test_commit_failure(self):
        store = PostgresLeadStore(_session_factory(_session(commit_error=_db_error())))
        with pytest.raises(LeadPersistenceError, match="connection refused"):
            await store.insert_enquiry(self._record())


class TestConfigValues:
    async def test_get(self):
        store = PostgresLeadStore(_session_factory(_session(scalar="1700000000")))
        assert await store.get_config_value("housing_last_fetch") == "1700000000"

    async def test_get_failure(self):
        store = PostgresLeadStore(_session_factory(_session(execute_error=_db_error())))
        with pytest.raises(LeadLookupError):
            await store.get_config_value("housing_last_fetch")

    async def test_upsert_commits(self):
        session = _session()
        store = PostgresLeadStore(_session_factory(session))

        await store.upsert_config_value("housing_last_fetch", "1700000000")

        session.execute.assert_awaited_once()
        session.commit.assert_awaited_once()

    async def test_upsert_failure(self):
        store = PostgresLeadStore(_session_factory(_session(execute_error=_db_error())))
        with pytest.raises(LeadPersistenceError):
            await store.upsert_config_value("housing_last_fetch", "1")
