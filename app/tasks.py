"""Celery background tasks."""

import asyncio
import logging
from datetime import UTC, datetime

from celery import shared_task

from app.database import close_db, get_db_context
from app.domain.records import BookingRecord
from app.services.reporting_service import ReportingService
from app.stores.sql import SqlBookingStore
from app.utils.booking_number import short_reference

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


# ==================== HOUSEKEEPING TASKS ====================


@shared_task(bind=True, max_retries=3)
def report_stale_payment_bookings(self, older_than_days: int | None = None):
    """Log bookings that have been awaiting payment for too long.

    Never changes booking state; admins clean these up by hand.
    """
    try:
        stale = run_async(_find_stale_payment_bookings(older_than_days))
    except Exception as exc:
        raise self.retry(exc=exc, countdown=300)

    for booking in stale:
        logger.warning(
            "Booking %s (%s) for %s has awaited payment since %s",
            booking.id, short_reference(booking.id), booking.listing_name,
            booking.requested_at.isoformat(),
        )
    logger.info("Stale payment report: %d booking(s)", len(stale))
    return {"status": "success", "stale_bookings": [b.id for b in stale]}


async def _find_stale_payment_bookings(older_than_days: int | None) -> list[BookingRecord]:
    try:
        async with get_db_context() as db:
            reporting = ReportingService(SqlBookingStore(db))
            return await reporting.get_stale_payment_bookings(datetime.now(UTC), older_than_days)
    finally:
        # Pooled connections are bound to this run's event loop
        await close_db()
