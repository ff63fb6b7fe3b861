"""Booking-related database models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, Index, Integer, Numeric, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.database import Base
from app.domain.booking_state import ACTIVE_STATUSES, BookingStatus

_ACTIVE_STATUS_SQL = "status IN ({})".format(
    ", ".join(f"'{s.value}'" for s in sorted(ACTIVE_STATUSES, key=lambda s: s.value))
)


class Booking(Base):
    """Booking request for a listing."""

    __tablename__ = "bookings"
    __table_args__ = (
        # At most one active booking per requester
        Index(
            "uq_bookings_requester_active",
            "requester_id",
            unique=True,
            postgresql_where=text(_ACTIVE_STATUS_SQL),
            sqlite_where=text(_ACTIVE_STATUS_SQL),
        ),
        Index("ix_bookings_requester_requested_at", "requester_id", "requested_at"),
        CheckConstraint(
            "admin_confirmed_at IS NULL OR admin_rejected_at IS NULL",
            name="ck_bookings_single_admin_decision",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Requester (ids come from the auth provider, not necessarily UUIDs)
    requester_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    requester_email: Mapped[str] = mapped_column(String(255), nullable=False)
    requester_phone: Mapped[str | None] = mapped_column(String(20))

    # Listing snapshot at request time
    listing_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    listing_name: Mapped[str] = mapped_column(String(255), nullable=False)
    listing_address: Mapped[str] = mapped_column(Text, nullable=False)
    agent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    agent_phone: Mapped[str] = mapped_column(String(20), nullable=False)

    # Request
    move_in_date: Mapped[date] = mapped_column(Date, nullable=False)
    tenant_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Pricing (KES)
    booking_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # 50% of rent
    total_rent: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # monthly

    # Status
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=BookingStatus.AWAITING_MANUAL_PAYMENT.value, index=True
    )

    # Timestamps
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    payment_confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_receipt: Mapped[str | None] = mapped_column(String(64))
    admin_confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    admin_rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    user_cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
