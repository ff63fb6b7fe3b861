"""Pydantic schemas for API validation."""

from app.schemas.booking import (
    AdminDashboardResponse,
    BookingCreate,
    BookingListResponse,
    BookingReceiptResponse,
    BookingResponse,
    StatusCountsResponse,
)
from app.schemas.payment import (
    C2BAcknowledgement,
    C2BConfirmation,
    PaymentConfirmRequest,
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    ReceiptResponse,
)

__all__ = [
    # Booking
    "BookingCreate",
    "BookingResponse",
    "BookingListResponse",
    "BookingReceiptResponse",
    "StatusCountsResponse",
    "AdminDashboardResponse",
    # Payment
    "PaymentInitiateRequest",
    "PaymentInitiateResponse",
    "PaymentConfirmRequest",
    "ReceiptResponse",
    "C2BConfirmation",
    "C2BAcknowledgement",
]
