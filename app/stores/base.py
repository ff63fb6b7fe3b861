"""Store interfaces consumed by the booking engine and payment gate.

The engine holds no state of its own; the store is the single source of
truth. Implementations must make ``update`` and ``delete`` conditional on
the expected status so that concurrent writers cannot overwrite each other.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from app.domain.booking_state import BookingStatus
from app.domain.records import BookingRecord, ListingSnapshot, PaymentNotification


class ActiveBookingExists(Exception):
    """Insert refused: the requester already holds an active booking."""

    def __init__(self, requester_id: str) -> None:
        self.requester_id = requester_id
        super().__init__(f"Requester '{requester_id}' already has an active booking")


class BookingStore(ABC):
    """Persistent collection of booking records."""

    @abstractmethod
    async def create(self, record: BookingRecord) -> str:
        """Insert a new booking and return its id.

        Raises:
            ActiveBookingExists: if the record is active and the requester
                already holds another active booking
        """

    @abstractmethod
    async def get(self, booking_id: str) -> BookingRecord | None:
        """Fetch a booking by id."""

    @abstractmethod
    async def update(
        self,
        booking_id: str,
        fields: dict[str, Any],
        expected_status: BookingStatus,
    ) -> bool:
        """Apply ``fields`` only if the stored status equals ``expected_status``.

        Returns:
            True if the update was applied, False if the booking is missing
            or its status changed

        Raises:
            ActiveBookingExists: if the update would reactivate a booking while
                its requester holds another active one
        """

    @abstractmethod
    async def delete(
        self,
        booking_id: str,
        expected_statuses: Iterable[BookingStatus] | None = None,
    ) -> bool:
        """Remove a booking, optionally only while in one of ``expected_statuses``."""

    @abstractmethod
    async def query_by_requester(self, requester_id: str) -> list[BookingRecord]:
        """All bookings of a requester, newest request first."""

    @abstractmethod
    async def query_all(self) -> list[BookingRecord]:
        """All bookings, newest request first."""


class ListingProvider(ABC):
    """Read-only lookup of listing snapshots."""

    @abstractmethod
    async def get(self, listing_id: str) -> ListingSnapshot | None:
        """Return the current snapshot of a listing."""


class PaymentLedger(ABC):
    """Log of payment notifications received from the gateway."""

    @abstractmethod
    async def record(self, notification: PaymentNotification) -> bool:
        """Store a notification. Returns False if ``trans_id`` was already seen."""

    @abstractmethod
    async def mark_matched(self, trans_id: str, booking_id: str) -> None:
        """Link a recorded notification to the booking it paid for."""
