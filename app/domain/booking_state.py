"""Booking state machine.

States:
    awaiting_manual_payment → pending_admin_confirmation → confirmed | rejected
    awaiting_manual_payment | pending_admin_confirmation → cancelled
    confirmed | rejected → pending_admin_confirmation (admin reset)
    rejected | cancelled → deleted (tenant purge)

``pending`` is a legacy initial state. It is never produced any more but is
accepted wherever ``awaiting_manual_payment`` is.
"""

from enum import Enum

from app.core.exceptions import InvalidStateError


class BookingStatus(str, Enum):
    """Booking statuses, in dashboard reporting order."""

    PENDING = "pending"
    AWAITING_MANUAL_PAYMENT = "awaiting_manual_payment"
    PENDING_ADMIN_CONFIRMATION = "pending_admin_confirmation"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self not in TERMINAL_STATUSES


class BookingTransition(str, Enum):
    """Named transitions of the booking lifecycle."""

    CONFIRM_PAYMENT = "confirm_payment"
    APPROVE = "approve"
    REJECT = "reject"
    RESET = "reset"
    CANCEL = "cancel"
    PURGE = "purge"


TERMINAL_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.REJECTED, BookingStatus.CANCELLED}
)

ACTIVE_STATUSES: frozenset[BookingStatus] = frozenset(
    status for status in BookingStatus if status not in TERMINAL_STATUSES
)

AWAITING_PAYMENT_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.AWAITING_MANUAL_PAYMENT}
)

REVIEWABLE_STATUSES: frozenset[BookingStatus] = AWAITING_PAYMENT_STATUSES | {
    BookingStatus.PENDING_ADMIN_CONFIRMATION
}

# Source statuses per transition. PURGE has no target: the record is deleted.
TRANSITION_SOURCES: dict[BookingTransition, frozenset[BookingStatus]] = {
    BookingTransition.CONFIRM_PAYMENT: AWAITING_PAYMENT_STATUSES,
    BookingTransition.APPROVE: REVIEWABLE_STATUSES,
    BookingTransition.REJECT: REVIEWABLE_STATUSES,
    BookingTransition.RESET: frozenset({BookingStatus.CONFIRMED, BookingStatus.REJECTED}),
    BookingTransition.CANCEL: REVIEWABLE_STATUSES,
    BookingTransition.PURGE: TERMINAL_STATUSES,
}

TRANSITION_TARGETS: dict[BookingTransition, BookingStatus | None] = {
    BookingTransition.CONFIRM_PAYMENT: BookingStatus.PENDING_ADMIN_CONFIRMATION,
    BookingTransition.APPROVE: BookingStatus.CONFIRMED,
    BookingTransition.REJECT: BookingStatus.REJECTED,
    BookingTransition.RESET: BookingStatus.PENDING_ADMIN_CONFIRMATION,
    BookingTransition.CANCEL: BookingStatus.CANCELLED,
    BookingTransition.PURGE: None,
}

_STRICT_REVIEW_SOURCES = frozenset({BookingStatus.PENDING_ADMIN_CONFIRMATION})


def allowed_sources(
    transition: BookingTransition, require_payment_before_review: bool = False
) -> frozenset[BookingStatus]:
    """Statuses a transition may start from."""
    if require_payment_before_review and transition in (
        BookingTransition.APPROVE,
        BookingTransition.REJECT,
    ):
        return _STRICT_REVIEW_SOURCES
    return TRANSITION_SOURCES[transition]


def can_transition(
    current: BookingStatus,
    transition: BookingTransition,
    require_payment_before_review: bool = False,
) -> bool:
    return current in allowed_sources(transition, require_payment_before_review)


def assert_booking_transition(
    current: BookingStatus,
    transition: BookingTransition,
    require_payment_before_review: bool = False,
) -> BookingStatus | None:
    """Validate a transition and return its target status (None for purge)."""
    if not can_transition(current, transition, require_payment_before_review):
        raise InvalidStateError(
            f"Cannot {transition.value.replace('_', ' ')} a booking that is {current.label}"
        )
    return TRANSITION_TARGETS[transition]
