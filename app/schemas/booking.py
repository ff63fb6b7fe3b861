"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.domain.booking_state import BookingStatus


class BookingCreate(BaseModel):
    """Schema for requesting a booking."""

    listing_id: str = Field(..., min_length=1, max_length=64)
    move_in_date: date
    # Range is enforced by the engine so the configured maximum applies.
    tenant_count: int = 1
    phone: str | None = Field(None, max_length=20)


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    requester_id: str
    requester_email: str
    requester_phone: str | None

    # Listing snapshot
    listing_id: str
    listing_name: str
    listing_address: str
    agent_name: str
    agent_phone: str

    move_in_date: date
    tenant_count: int

    # Pricing
    booking_fee: Decimal
    total_rent: Decimal

    # Status
    status: BookingStatus
    payment_receipt: str | None

    # Timestamps
    requested_at: datetime
    payment_confirmed_at: datetime | None
    admin_confirmed_at: datetime | None
    admin_rejected_at: datetime | None
    user_cancelled_at: datetime | None
    updated_at: datetime | None


class BookingListResponse(BaseModel):
    """Schema for a booking list, newest request first."""

    bookings: list[BookingResponse]
    total: int


class StatusCountsResponse(BaseModel):
    """Booking totals per status, every status present."""

    counts: dict[BookingStatus, int]
    total: int


class AdminDashboardResponse(BaseModel):
    """Admin dashboard: all bookings plus status totals."""

    bookings: list[BookingResponse]
    counts: dict[BookingStatus, int]
    total: int


class BookingReceiptResponse(BaseModel):
    """Booking confirmation receipt for a confirmed booking."""

    booking_id: str
    reference: str
    listing_name: str
    listing_address: str
    agent_name: str
    agent_phone: str
    move_in_date: date
    tenant_count: int
    requester_email: str
    requester_phone: str | None
    booking_fee_paid: Decimal
    monthly_rent: Decimal
    currency: str
    payment_receipt: str | None
    requested_at: datetime
    payment_confirmed_at: datetime | None
    confirmed_at: datetime
