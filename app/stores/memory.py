"""In-process store implementations.

Used for local development and tests. Each store serialises its writes with
an ``asyncio.Lock`` so that the conditional update behaves like a
single-row transaction.
"""

import asyncio
import uuid
from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from app.domain.booking_state import ACTIVE_STATUSES, BookingStatus
from app.domain.records import MUTABLE_FIELDS, BookingRecord, ListingSnapshot, PaymentNotification
from app.stores.base import ActiveBookingExists, BookingStore, ListingProvider, PaymentLedger


def _newest_first(records: Iterable[BookingRecord]) -> list[BookingRecord]:
    return sorted(records, key=lambda r: r.requested_at, reverse=True)


class MemoryBookingStore(BookingStore):
    """Dictionary-backed booking store."""

    def __init__(self) -> None:
        self._records: dict[str, BookingRecord] = {}
        self._lock = asyncio.Lock()

    def _holds_active(self, requester_id: str) -> bool:
        return any(
            r.requester_id == requester_id and r.status in ACTIVE_STATUSES for r in self._records.values()
        )

    async def create(self, record: BookingRecord) -> str:
        async with self._lock:
            if record.status in ACTIVE_STATUSES and self._holds_active(record.requester_id):
                raise ActiveBookingExists(record.requester_id)
            booking_id = record.id or str(uuid.uuid4())
            self._records[booking_id] = replace(record, id=booking_id)
            return booking_id

    async def get(self, booking_id: str) -> BookingRecord | None:
        record = self._records.get(booking_id)
        return replace(record) if record else None

    async def update(
        self,
        booking_id: str,
        fields: dict[str, Any],
        expected_status: BookingStatus,
    ) -> bool:
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update immutable booking fields: {sorted(unknown)}")

        async with self._lock:
            current = self._records.get(booking_id)
            if current is None or current.status != expected_status:
                return False
            updated = current.with_changes(fields)
            reactivated = updated.status in ACTIVE_STATUSES and current.status not in ACTIVE_STATUSES
            if reactivated and self._holds_active(current.requester_id):
                raise ActiveBookingExists(current.requester_id)
            self._records[booking_id] = updated
            return True

    async def delete(
        self,
        booking_id: str,
        expected_statuses: Iterable[BookingStatus] | None = None,
    ) -> bool:
        async with self._lock:
            current = self._records.get(booking_id)
            if current is None:
                return False
            if expected_statuses is not None and current.status not in set(expected_statuses):
                return False
            del self._records[booking_id]
            return True

    async def query_by_requester(self, requester_id: str) -> list[BookingRecord]:
        return _newest_first(
            replace(r) for r in self._records.values() if r.requester_id == requester_id
        )

    async def query_all(self) -> list[BookingRecord]:
        return _newest_first(replace(r) for r in self._records.values())


class MemoryListingProvider(ListingProvider):
    """Listing lookup over a fixed set of snapshots."""

    def __init__(self, listings: Iterable[ListingSnapshot] = ()) -> None:
        self._listings = {listing.id: listing for listing in listings}

    def add(self, listing: ListingSnapshot) -> None:
        self._listings[listing.id] = listing

    async def get(self, listing_id: str) -> ListingSnapshot | None:
        return self._listings.get(listing_id)


class MemoryPaymentLedger(PaymentLedger):
    """Payment notifications kept in a dictionary keyed by transaction id."""

    def __init__(self) -> None:
        self.entries: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def record(self, notification: PaymentNotification) -> bool:
        async with self._lock:
            if notification.trans_id in self.entries:
                return False
            self.entries[notification.trans_id] = {
                "notification": notification,
                "booking_id": None,
                "received_at": datetime.now(UTC),
            }
            return True

    async def mark_matched(self, trans_id: str, booking_id: str) -> None:
        async with self._lock:
            if trans_id in self.entries:
                self.entries[trans_id]["booking_id"] = booking_id
