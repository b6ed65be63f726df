"""Persistence models touched by the Housing.com lead sync.

Two SQLAlchemy models on the shared declarative Base:
- EnquiryModel: The CRM's enquiries table. Column names are the CRM's
  display-style headers ("Client Name", "Mobile", ...) used by the web UI;
  Python attribute names are snake_case.
- SystemConfigModel: Generic key/value configuration table; the sync
  watermark lives under the ``housing_last_fetch`` key.

"Mobile" is indexed but not unique: dedup is an application-level check.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.enquiry_crm.core.database import Base


class EnquiryModel(Base):
    """A sales enquiry (lead) in the CRM."""

    __tablename__ = "enquiries"
    __table_args__ = (Index("ix_enquiries_mobile", "Mobile"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_name: Mapped[str] = mapped_column("Client Name", String(200), nullable=False)
    mobile: Mapped[str] = mapped_column("Mobile", String(32), nullable=False)
    email: Mapped[str | None] = mapped_column("Email", String(320), nullable=True)
    enquiry_for: Mapped[str | None] = mapped_column("Enquiry For", String(300), nullable=True)
    property_type: Mapped[str | None] = mapped_column("Property Type", String(100), nullable=True)
    assigned_to: Mapped[str | None] = mapped_column("Assigned To", String(200), nullable=True)
    created_date: Mapped[str | None] = mapped_column("Created Date", String(32), nullable=True)
    enquiry_progress: Mapped[str | None] = mapped_column(
        "Enquiry Progress", String(50), nullable=True
    )
    budget: Mapped[str | None] = mapped_column("Budget", String(100), nullable=True)
    nfd: Mapped[str | None] = mapped_column("NFD", String(32), nullable=True)
    enquiry_source: Mapped[str | None] = mapped_column("Enquiry Source", String(50), nullable=True)
    area: Mapped[str | None] = mapped_column("Area", String(200), nullable=True)
    configuration: Mapped[str | None] = mapped_column("Configuration", Text, nullable=True)
    remarks: Mapped[str | None] = mapped_column("Remarks", Text, nullable=True)
    last_remarks: Mapped[str | None] = mapped_column("Last Remarks", Text, nullable=True)
    assigned_by: Mapped[str | None] = mapped_column("Assigned By", String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )


class SystemConfigModel(Base):
    """Generic key/value configuration row."""

    __tablename__ = "system_config"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=True,
    )
