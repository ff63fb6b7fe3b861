"""Single-active-booking-per-requester guard."""

from app.core.exceptions import ConflictError
from app.domain.records import BookingRecord
from app.stores.base import BookingStore


class ActiveBookingGuard:
    """Read-only check run before any booking is created."""

    def __init__(self, store: BookingStore) -> None:
        self.store = store

    async def has_active_booking(self, requester_id: str) -> BookingRecord | None:
        """Return the requester's first non-terminal booking, if any."""
        for booking in await self.store.query_by_requester(requester_id):
            if booking.status.is_active:
                return booking
        return None

    async def ensure_can_book(self, requester_id: str) -> None:
        """Raise ConflictError if the requester already has an active booking."""
        active = await self.has_active_booking(requester_id)
        if active is not None:
            raise conflict_for(active)


def conflict_for(booking: BookingRecord) -> ConflictError:
    return ConflictError(
        f"You already have an active booking for {booking.listing_name} "
        f"(status: {booking.status.label}). Please wait for it to be resolved "
        "(rejected or cancelled) before making a new request.",
        listing_name=booking.listing_name,
        booking_status=booking.status.value,
    )
