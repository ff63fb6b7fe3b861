"""SQLAlchemy-backed store implementations."""

import uuid
from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.booking_state import BookingStatus
from app.domain.records import MUTABLE_FIELDS, BookingRecord, ListingSnapshot, PaymentNotification
from app.models.booking import Booking
from app.models.listing import Listing
from app.models.payment import PaymentRecord
from app.stores.base import ActiveBookingExists, BookingStore, ListingProvider, PaymentLedger


def parse_uuid(value: str | None) -> uuid.UUID | None:
    """Parse an id coming from a URL or payment reference; None if malformed."""
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _to_record(row: Booking) -> BookingRecord:
    return BookingRecord(
        id=str(row.id),
        requester_id=row.requester_id,
        requester_email=row.requester_email,
        requester_phone=row.requester_phone,
        listing_id=row.listing_id,
        listing_name=row.listing_name,
        listing_address=row.listing_address,
        agent_name=row.agent_name,
        agent_phone=row.agent_phone,
        move_in_date=row.move_in_date,
        tenant_count=row.tenant_count,
        booking_fee=row.booking_fee,
        total_rent=row.total_rent,
        status=BookingStatus(row.status),
        requested_at=row.requested_at,
        payment_confirmed_at=row.payment_confirmed_at,
        payment_receipt=row.payment_receipt,
        admin_confirmed_at=row.admin_confirmed_at,
        admin_rejected_at=row.admin_rejected_at,
        user_cancelled_at=row.user_cancelled_at,
        updated_at=row.updated_at,
    )


def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value.value if isinstance(value, BookingStatus) else value
        for key, value in fields.items()
    }


class SqlBookingStore(BookingStore):
    """Booking store over an async SQLAlchemy session.

    Conditional updates are a single ``UPDATE ... WHERE id = :id AND
    status = :expected`` statement; the affected row count tells whether the
    write won.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, record: BookingRecord) -> str:
        values = record.as_dict()
        values.pop("id")
        values.pop("updated_at")
        row = Booking(**_column_values(values))
        if record.id:
            row.id = uuid.UUID(record.id)
        try:
            async with self.db.begin_nested():
                self.db.add(row)
        except IntegrityError as e:
            raise ActiveBookingExists(record.requester_id) from e
        return str(row.id)

    async def get(self, booking_id: str) -> BookingRecord | None:
        pk = parse_uuid(booking_id)
        if pk is None:
            return None
        result = await self.db.execute(
            select(Booking).where(Booking.id == pk).execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _to_record(row) if row else None

    async def update(
        self,
        booking_id: str,
        fields: dict[str, Any],
        expected_status: BookingStatus,
    ) -> bool:
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update immutable booking fields: {sorted(unknown)}")
        pk = parse_uuid(booking_id)
        if pk is None:
            return False

        stmt = (
            update(Booking)
            .where(Booking.id == pk, Booking.status == expected_status.value)
            .values(**_column_values(fields))
            .execution_options(synchronize_session=False)
        )
        try:
            async with self.db.begin_nested():
                result = await self.db.execute(stmt)
        except IntegrityError as e:
            # Only the one-active-booking index can refuse a status change
            requester_id = await self.db.scalar(select(Booking.requester_id).where(Booking.id == pk))
            raise ActiveBookingExists(requester_id) from e
        return result.rowcount == 1

    async def delete(
        self,
        booking_id: str,
        expected_statuses: Iterable[BookingStatus] | None = None,
    ) -> bool:
        pk = parse_uuid(booking_id)
        if pk is None:
            return False

        stmt = delete(Booking).where(Booking.id == pk)
        if expected_statuses is not None:
            stmt = stmt.where(Booking.status.in_([s.value for s in expected_statuses]))
        result = await self.db.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount == 1

    async def query_by_requester(self, requester_id: str) -> list[BookingRecord]:
        result = await self.db.execute(
            select(Booking)
            .where(Booking.requester_id == requester_id)
            .order_by(Booking.requested_at.desc())
            .execution_options(populate_existing=True)
        )
        return [_to_record(row) for row in result.scalars().all()]

    async def query_all(self) -> list[BookingRecord]:
        result = await self.db.execute(
            select(Booking)
            .order_by(Booking.requested_at.desc())
            .execution_options(populate_existing=True)
        )
        return [_to_record(row) for row in result.scalars().all()]


class SqlListingProvider(ListingProvider):
    """Listing snapshots read from the ``listings`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, listing_id: str) -> ListingSnapshot | None:
        result = await self.db.execute(select(Listing).where(Listing.id == listing_id))
        listing = result.scalar_one_or_none()
        if not listing:
            return None
        return ListingSnapshot(
            id=listing.id,
            name=listing.name,
            address=listing.address,
            price=listing.price,
            agent_name=listing.agent_name,
            agent_phone=listing.agent_phone,
        )


class SqlPaymentLedger(PaymentLedger):
    """Payment notifications stored in ``payment_records``."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def seen(self, trans_id: str) -> bool:
        existing = await self.db.execute(select(PaymentRecord.id).where(PaymentRecord.trans_id == trans_id))
        return existing.scalar_one_or_none() is not None

    async def record(self, notification: PaymentNotification) -> bool:
        if await self.seen(notification.trans_id):
            return False

        try:
            async with self.db.begin_nested():
                self.db.add(
                    PaymentRecord(
                        trans_id=notification.trans_id,
                        amount=notification.amount,
                        phone=notification.phone,
                        bill_ref=notification.bill_ref,
                        raw=notification.raw,
                    )
                )
        except IntegrityError:
            # A concurrent delivery of the same transaction was stored first
            return False
        return True

    async def mark_matched(self, trans_id: str, booking_id: str) -> None:
        await self.db.execute(
            update(PaymentRecord)
            .where(PaymentRecord.trans_id == trans_id)
            .values(booking_id=parse_uuid(booking_id))
        )
