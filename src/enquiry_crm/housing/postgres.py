"""PostgreSQL LeadStore -- enquiries and system_config via async SQLAlchemy.

Uses the session_factory callable pattern: each operation opens its own
session, so one lead's failed insert never poisons the next lead's
transaction. SQLAlchemy errors are translated into LeadLookupError and
LeadPersistenceError at this boundary.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any

import structlog
from sqlalchemy import func, inspect as sa_inspect, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.enquiry_crm.housing.models import EnquiryModel, SystemConfigModel
from src.enquiry_crm.housing.store import LeadLookupError, LeadPersistenceError, LeadStore

logger = structlog.get_logger(__name__)

# Column name ("Client Name") -> mapped attribute ("client_name")
_ENQUIRY_ATTRIBUTES: dict[str, str] = {
    prop.columns[0].name: prop.key for prop in sa_inspect(EnquiryModel).column_attrs
}


def _error_text(exc: SQLAlchemyError) -> str:
    """Prefer the driver's message over SQLAlchemy's wrapper text."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


class PostgresLeadStore(LeadStore):
    """LeadStore backed by the CRM's PostgreSQL database.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def find_enquiry_by_mobile(self, mobile: str) -> str | None:
        try:
            async for session in self._session_factory():
                stmt = (
                    select(EnquiryModel.id)
                    .where(EnquiryModel.mobile == mobile)
                    .order_by(EnquiryModel.id)
                    .limit(1)
                )
                result = await session.execute(stmt)
                enquiry_id = result.scalar_one_or_none()
                return str(enquiry_id) if enquiry_id is not None else None
        except SQLAlchemyError as exc:
            raise LeadLookupError(_error_text(exc)) from exc
        return None

    async def insert_enquiry(self, record: dict[str, Any]) -> str:
        try:
            values = {_ENQUIRY_ATTRIBUTES[column]: value for column, value in record.items()}
        except KeyError as exc:
            raise LeadPersistenceError(f"Unknown enquiries column: {exc.args[0]}") from exc

        try:
            async for session in self._session_factory():
                model = EnquiryModel(**values)
                session.add(model)
                await session.commit()
                logger.info(
                    "postgres_lead_store.enquiry_inserted",
                    enquiry_id=model.id,
                )
                return str(model.id)
        except SQLAlchemyError as exc:
            raise LeadPersistenceError(_error_text(exc)) from exc
        raise LeadPersistenceError("No database session available")

    async def get_config_value(self, key: str) -> str | None:
        try:
            async for session in self._session_factory():
                stmt = select(SystemConfigModel.value).where(SystemConfigModel.key == key)
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise LeadLookupError(_error_text(exc)) from exc
        return None

    async def upsert_config_value(self, key: str, value: str) -> None:
        stmt = pg_insert(SystemConfigModel).values(key=key, value=value, updated_at=func.now())
        stmt = stmt.on_conflict_do_update(
            index_elements=[SystemConfigModel.key],
            set_={"value": stmt.excluded.value, "updated_at": func.now()},
        )

        try:
            async for session in self._session_factory():
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise LeadPersistenceError(_error_text(exc)) from exc
