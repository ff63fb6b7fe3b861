"""Admin dashboard reporting (read-only)."""

from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timedelta

from app.config import settings
from app.core.permissions import Permission
from app.domain.actor import Actor
from app.domain.booking_state import AWAITING_PAYMENT_STATUSES, BookingStatus
from app.domain.records import BookingRecord
from app.stores.base import BookingStore


def status_counts(bookings: Iterable[BookingRecord]) -> dict[BookingStatus, int]:
    """Count bookings per status, every status present, in enum order."""
    counts = Counter(booking.status for booking in bookings)
    return {status: counts.get(status, 0) for status in BookingStatus}


def stale_payment_bookings(
    bookings: Iterable[BookingRecord],
    now: datetime,
    older_than_days: int | None = None,
) -> list[BookingRecord]:
    """Bookings still awaiting payment after ``older_than_days``, oldest first."""
    days = older_than_days if older_than_days is not None else settings.stale_payment_after_days
    cutoff = now - timedelta(days=days)
    stale = [
        booking
        for booking in bookings
        if booking.status in AWAITING_PAYMENT_STATUSES and booking.requested_at <= cutoff
    ]
    return sorted(stale, key=lambda booking: booking.requested_at)


class ReportingService:
    """Read-only booking reports for the admin dashboard."""

    def __init__(self, store: BookingStore) -> None:
        self.store = store

    async def get_status_counts(self, actor: Actor) -> dict[BookingStatus, int]:
        actor.require(Permission.VIEW_ALL_BOOKINGS)
        return status_counts(await self.store.query_all())

    async def get_dashboard(self, actor: Actor) -> tuple[list[BookingRecord], dict[BookingStatus, int]]:
        """All bookings (newest first) together with their status counts.

        Both are computed from the same read so the totals always match the
        listed rows.
        """
        actor.require(Permission.VIEW_ALL_BOOKINGS)
        bookings = await self.store.query_all()
        return bookings, status_counts(bookings)

    async def get_stale_payment_bookings(
        self,
        now: datetime,
        older_than_days: int | None = None,
    ) -> list[BookingRecord]:
        return stale_payment_bookings(await self.store.query_all(), now, older_than_days)
