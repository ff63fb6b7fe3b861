"""Plain records exchanged between the engine and its stores."""

from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from app.domain.booking_state import BookingStatus


@dataclass(frozen=True)
class ListingSnapshot:
    """Listing fields frozen into a booking at request time."""

    id: str
    name: str
    address: str
    price: Decimal
    agent_name: str
    agent_phone: str


@dataclass
class BookingRecord:
    """A booking document as held by the store."""

    requester_id: str
    requester_email: str
    listing_id: str
    listing_name: str
    listing_address: str
    agent_name: str
    agent_phone: str
    move_in_date: date
    tenant_count: int
    booking_fee: Decimal
    total_rent: Decimal
    requested_at: datetime
    status: BookingStatus = BookingStatus.AWAITING_MANUAL_PAYMENT
    id: str | None = None
    requester_phone: str | None = None
    payment_confirmed_at: datetime | None = None
    payment_receipt: str | None = None
    admin_confirmed_at: datetime | None = None
    admin_rejected_at: datetime | None = None
    user_cancelled_at: datetime | None = None
    updated_at: datetime | None = None

    def with_changes(self, changes: dict[str, Any]) -> "BookingRecord":
        return replace(self, **changes)

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# Fields the engine may write after creation.
MUTABLE_FIELDS: frozenset[str] = frozenset(
    {
        "status",
        "payment_confirmed_at",
        "payment_receipt",
        "admin_confirmed_at",
        "admin_rejected_at",
        "user_cancelled_at",
        "updated_at",
    }
)


@dataclass
class PaymentNotification:
    """A payment notification pushed by the payment gateway."""

    trans_id: str
    amount: Decimal
    phone: str
    bill_ref: str
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Receipt:
    """Proof that a booking fee payment was accepted."""

    receipt_number: str
    booking_id: str
    amount: Decimal
    payer_phone: str
    confirmed_at: datetime
    transaction_id: str | None = None
