"""Payment-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.database import Base


class PaymentRecord(Base):
    """Payment notification received from M-Pesa (C2B / STK callback)."""

    __tablename__ = "payment_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    trans_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    bill_ref: Mapped[str] = mapped_column(String(64), nullable=False)  # booking id as typed by payer
    booking_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), index=True)
    raw: Mapped[dict | None] = mapped_column(JSON)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
