"""Booking lifecycle engine.

Owns every status change of a booking. Each transition is applied as one
conditional write against the store (``expected_status`` is the status the
transition was validated against). When another writer got there first the
booking is re-read and re-validated, so a transition is either applied
exactly once or rejected; it is never double-stamped.
"""

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.config import settings
from app.core.exceptions import (
    ConcurrentModificationError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.core.permissions import Permission
from app.domain.actor import Actor
from app.domain.booking_state import (
    TERMINAL_STATUSES,
    BookingStatus,
    BookingTransition,
    assert_booking_transition,
)
from app.domain.records import BookingRecord, ListingSnapshot
from app.services.booking_guard import ActiveBookingGuard, conflict_for
from app.stores.base import ActiveBookingExists, BookingStore, ListingProvider

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Stamp = Callable[[datetime], dict[str, Any]]


def utc_now() -> datetime:
    return datetime.now(UTC)


def calculate_booking_fee(monthly_rent: Decimal, ratio: float | Decimal | None = None) -> Decimal:
    """Up-front reservation fee: a share (default half) of one month's rent."""
    ratio = Decimal(str(settings.booking_fee_ratio if ratio is None else ratio))
    return (Decimal(monthly_rent) * ratio).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class BookingEngine:
    """State machine over booking records held in a ``BookingStore``."""

    def __init__(
        self,
        store: BookingStore,
        listings: ListingProvider | None = None,
        clock: Clock | None = None,
        max_tenants: int | None = None,
        max_retries: int | None = None,
        require_payment_before_review: bool | None = None,
    ) -> None:
        self.store = store
        self.listings = listings
        self.guard = ActiveBookingGuard(store)
        self.clock = clock or utc_now
        self.max_tenants = max_tenants if max_tenants is not None else settings.max_tenants
        self.max_retries = max_retries if max_retries is not None else settings.booking_cas_max_retries
        self.require_payment_before_review = (
            require_payment_before_review
            if require_payment_before_review is not None
            else settings.require_payment_before_review
        )

    # ==================== CREATE ====================

    async def create_booking(
        self,
        actor: Actor,
        listing: ListingSnapshot,
        move_in_date: date,
        tenant_count: int,
        requester_phone: str | None = None,
    ) -> BookingRecord:
        """Create a booking request in ``awaiting_manual_payment``.

        Raises:
            ValidationError: move-in date in the past, tenant count out of
                range, or no contact email for the requester
            ConflictError: the requester already has an active booking
        """
        actor.require(Permission.CREATE_BOOKING)
        now = self.clock()
        self._validate_request(actor, move_in_date, tenant_count, now.date())

        await self.guard.ensure_can_book(actor.user_id)

        record = BookingRecord(
            requester_id=actor.user_id,
            requester_email=actor.email or "",
            requester_phone=requester_phone,
            listing_id=listing.id,
            listing_name=listing.name,
            listing_address=listing.address,
            agent_name=listing.agent_name,
            agent_phone=listing.agent_phone,
            move_in_date=move_in_date,
            tenant_count=tenant_count,
            booking_fee=calculate_booking_fee(listing.price),
            total_rent=Decimal(listing.price),
            status=BookingStatus.AWAITING_MANUAL_PAYMENT,
            requested_at=now,
            updated_at=now,
        )
        try:
            booking_id = await self.store.create(record)
        except ActiveBookingExists:
            # Lost a race with a concurrent request from the same requester
            active = await self.guard.has_active_booking(actor.user_id)
            raise conflict_for(active) if active else ConflictError()

        logger.info(
            "Booking %s created for listing %s by %s (fee %s)",
            booking_id, listing.id, actor.user_id, record.booking_fee,
        )
        return await self.load(booking_id)

    async def create_booking_for_listing(
        self,
        actor: Actor,
        listing_id: str,
        move_in_date: date,
        tenant_count: int,
        requester_phone: str | None = None,
    ) -> BookingRecord:
        """Look up the listing snapshot and create a booking for it."""
        if self.listings is None:
            raise RuntimeError("BookingEngine was built without a listing provider")
        listing = await self.listings.get(listing_id)
        if listing is None:
            raise NotFoundError("Listing", listing_id)
        return await self.create_booking(actor, listing, move_in_date, tenant_count, requester_phone)

    def _validate_request(self, actor: Actor, move_in_date: date, tenant_count: int, today: date) -> None:
        if not actor.email:
            raise ValidationError("A contact email is required to request a booking")
        if move_in_date < today:
            raise ValidationError("Move-in date cannot be in the past")
        if not 1 <= tenant_count <= self.max_tenants:
            raise ValidationError(f"Number of tenants must be between 1 and {self.max_tenants}")

    # ==================== TRANSITIONS ====================

    async def confirm_payment(self, booking_id: str, receipt: str | None = None) -> BookingRecord:
        """Move a paid booking into the admin review queue."""
        return await self._apply(
            booking_id,
            BookingTransition.CONFIRM_PAYMENT,
            stamp=lambda now: {"payment_confirmed_at": now, "payment_receipt": receipt},
            actor_label="payment-gate",
        )

    async def approve(self, booking_id: str, actor: Actor) -> BookingRecord:
        actor.require(Permission.REVIEW_BOOKING)
        return await self._apply(
            booking_id,
            BookingTransition.APPROVE,
            stamp=lambda now: {"admin_confirmed_at": now, "admin_rejected_at": None},
            actor_label=actor.user_id,
        )

    async def reject(self, booking_id: str, actor: Actor) -> BookingRecord:
        actor.require(Permission.REVIEW_BOOKING)
        return await self._apply(
            booking_id,
            BookingTransition.REJECT,
            stamp=lambda now: {"admin_rejected_at": now, "admin_confirmed_at": None},
            actor_label=actor.user_id,
        )

    async def reset(self, booking_id: str, actor: Actor) -> BookingRecord:
        """Undo an admin decision and put the booking back in the review queue.

        Raises:
            ConflictError: the booking was rejected and its requester has
                since made another active booking
        """
        actor.require(Permission.REVIEW_BOOKING)
        return await self._apply(
            booking_id,
            BookingTransition.RESET,
            stamp=lambda now: {"admin_confirmed_at": None, "admin_rejected_at": None},
            actor_label=actor.user_id,
        )

    async def cancel(self, booking_id: str, actor: Actor) -> BookingRecord:
        """Tenant withdraws a request that has not been confirmed yet."""
        actor.require(Permission.CANCEL_BOOKING)
        return await self._apply(
            booking_id,
            BookingTransition.CANCEL,
            stamp=lambda now: {"user_cancelled_at": now},
            actor_label=actor.user_id,
            authorize=lambda booking: self._require_owner(booking, actor),
        )

    async def purge(self, booking_id: str, actor: Actor) -> None:
        """Tenant removes a rejected or cancelled booking from their history."""
        actor.require(Permission.CANCEL_BOOKING)
        for attempt in range(1, self.max_retries + 1):
            booking = await self.load(booking_id)
            self._require_owner(booking, actor)
            assert_booking_transition(booking.status, BookingTransition.PURGE)
            if await self.store.delete(booking_id, expected_statuses=TERMINAL_STATUSES):
                logger.info("Booking %s purged by %s (was %s)", booking_id, actor.user_id, booking.status.value)
                return
            logger.warning("Purge of booking %s lost a race (attempt %d)", booking_id, attempt)
        raise ConcurrentModificationError(booking_id, self.max_retries)

    async def admin_delete(self, booking_id: str, actor: Actor) -> None:
        """Admin removes a booking regardless of its status."""
        actor.require(Permission.DELETE_ANY_BOOKING)
        if not await self.store.delete(booking_id):
            raise NotFoundError("Booking", booking_id)
        logger.info("Booking %s deleted by admin %s", booking_id, actor.user_id)

    async def _apply(
        self,
        booking_id: str,
        transition: BookingTransition,
        stamp: Stamp,
        actor_label: str,
        authorize: Callable[[BookingRecord], None] | None = None,
    ) -> BookingRecord:
        for attempt in range(1, self.max_retries + 1):
            booking = await self.load(booking_id)
            if authorize:
                authorize(booking)
            target = assert_booking_transition(
                booking.status, transition, self.require_payment_before_review
            )

            if booking.status.is_terminal and target.is_active:
                # Reopened bookings still count towards the one-active limit
                active = await self.guard.has_active_booking(booking.requester_id)
                if active is not None:
                    raise conflict_for(active)

            now = self.clock()
            fields = {"status": target, "updated_at": now, **stamp(now)}
            try:
                applied = await self.store.update(booking_id, fields, expected_status=booking.status)
            except ActiveBookingExists:
                active = await self.guard.has_active_booking(booking.requester_id)
                raise conflict_for(active) if active else ConflictError()
            if applied:
                logger.info(
                    "Booking %s %s: %s → %s (by %s)",
                    booking_id, transition.value, booking.status.value, target.value, actor_label,
                )
                return await self.load(booking_id)

            logger.warning(
                "Booking %s changed during %s (attempt %d/%d), retrying",
                booking_id, transition.value, attempt, self.max_retries,
            )
        raise ConcurrentModificationError(booking_id, self.max_retries)

    # ==================== READS ====================

    async def get_booking(self, booking_id: str, actor: Actor) -> BookingRecord:
        """Fetch one booking; tenants only see their own."""
        booking = await self.load(booking_id)
        if not actor.can(Permission.VIEW_ALL_BOOKINGS):
            self._require_owner(booking, actor)
        return booking

    async def list_for_requester(self, actor: Actor) -> list[BookingRecord]:
        actor.require(Permission.VIEW_BOOKING)
        return await self.store.query_by_requester(actor.user_id)

    async def list_all(self, actor: Actor) -> list[BookingRecord]:
        actor.require(Permission.VIEW_ALL_BOOKINGS)
        return await self.store.query_all()

    async def load(self, booking_id: str) -> BookingRecord:
        booking = await self.store.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    @staticmethod
    def _require_owner(booking: BookingRecord, actor: Actor) -> None:
        if booking.requester_id != actor.user_id:
            raise UnauthorizedError("You can only manage your own bookings")
