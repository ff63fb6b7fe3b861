"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates the tables of the UniStay booking service:
- Listings (read-only snapshot source)
- Bookings, with at most one active booking per requester
- Payment records (M-Pesa notifications)
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ACTIVE_STATUS_SQL = (
    "status IN ('awaiting_manual_payment', 'confirmed', 'pending', 'pending_admin_confirmation')"
)


def upgrade() -> None:
    """Create all database tables."""

    # ==================== LISTINGS ====================
    op.create_table(
        "listings",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.Text, nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("agent_name", sa.String(255), nullable=False),
        sa.Column("agent_phone", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("requester_id", sa.String(128), nullable=False, index=True),
        sa.Column("requester_email", sa.String(255), nullable=False),
        sa.Column("requester_phone", sa.String(20)),
        sa.Column("listing_id", sa.String(64), nullable=False, index=True),
        sa.Column("listing_name", sa.String(255), nullable=False),
        sa.Column("listing_address", sa.Text, nullable=False),
        sa.Column("agent_name", sa.String(255), nullable=False),
        sa.Column("agent_phone", sa.String(20), nullable=False),
        sa.Column("move_in_date", sa.Date, nullable=False),
        sa.Column("tenant_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("booking_fee", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_rent", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            sa.String(30),
            nullable=False,
            server_default="awaiting_manual_payment",
            index=True,
        ),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("payment_confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("payment_receipt", sa.String(64)),
        sa.Column("admin_confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("admin_rejected_at", sa.DateTime(timezone=True)),
        sa.Column("user_cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "admin_confirmed_at IS NULL OR admin_rejected_at IS NULL",
            name="ck_bookings_single_admin_decision",
        ),
    )
    op.create_index(
        "uq_bookings_requester_active",
        "bookings",
        ["requester_id"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_STATUS_SQL),
    )
    op.create_index(
        "ix_bookings_requester_requested_at",
        "bookings",
        ["requester_id", "requested_at"],
    )

    # ==================== PAYMENT RECORDS ====================
    op.create_table(
        "payment_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("trans_id", sa.String(64), nullable=False, unique=True, index=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("bill_ref", sa.String(64), nullable=False),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), index=True),
        sa.Column("raw", postgresql.JSONB),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("payment_records")
    op.drop_index("ix_bookings_requester_requested_at", table_name="bookings")
    op.drop_index("uq_bookings_requester_active", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("listings")
