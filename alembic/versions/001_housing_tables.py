"""Enquiries and system_config tables for Housing.com lead ingestion.

Revision ID: 001_housing_tables
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_housing_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "enquiries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("Client Name", sa.String(200), nullable=False),
        sa.Column("Mobile", sa.String(32), nullable=False),
        sa.Column("Email", sa.String(320), nullable=True),
        sa.Column("Enquiry For", sa.String(300), nullable=True),
        sa.Column("Property Type", sa.String(100), nullable=True),
        sa.Column("Assigned To", sa.String(200), nullable=True),
        sa.Column("Created Date", sa.String(32), nullable=True),
        sa.Column("Enquiry Progress", sa.String(50), nullable=True),
        sa.Column("Budget", sa.String(100), nullable=True),
        sa.Column("NFD", sa.String(32), nullable=True),
        sa.Column("Enquiry Source", sa.String(50), nullable=True),
        sa.Column("Area", sa.String(200), nullable=True),
        sa.Column("Configuration", sa.Text(), nullable=True),
        sa.Column("Remarks", sa.Text(), nullable=True),
        sa.Column("Last Remarks", sa.Text(), nullable=True),
        sa.Column("Assigned By", sa.String(200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    # Lookup index only; duplicates are prevented by the sync, not the schema
    op.create_index("ix_enquiries_mobile", "enquiries", ["Mobile"], unique=False)

    op.create_table(
        "system_config",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("system_config")
    op.drop_index("ix_enquiries_mobile", table_name="enquiries")
    op.drop_table("enquiries")
