"""Admin panel endpoints."""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status

from app.api.deps import CurrentAdmin, Engine, Notifier, get_reporting_service
from app.schemas.booking import AdminDashboardResponse, BookingResponse, StatusCountsResponse
from app.services.reporting_service import ReportingService

router = APIRouter()

Reporting = Annotated[ReportingService, Depends(get_reporting_service)]


# ============ BOOKING REVIEW ============


@router.get("/bookings", response_model=AdminDashboardResponse)
async def get_all_bookings(admin: CurrentAdmin, reporting: Reporting) -> AdminDashboardResponse:
    """All bookings, newest request first, with per-status totals."""
    bookings, counts = await reporting.get_dashboard(admin)
    return AdminDashboardResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        counts=counts,
        total=len(bookings),
    )


@router.get("/bookings/stats", response_model=StatusCountsResponse)
async def get_booking_stats(admin: CurrentAdmin, reporting: Reporting) -> StatusCountsResponse:
    """Booking totals for every status."""
    counts = await reporting.get_status_counts(admin)
    return StatusCountsResponse(counts=counts, total=sum(counts.values()))


@router.post("/bookings/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: str,
    admin: CurrentAdmin,
    engine: Engine,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> BookingResponse:
    """Approve a booking request."""
    booking = await engine.approve(booking_id, admin)
    background_tasks.add_task(notifier.notify_booking_confirmed, booking)
    return BookingResponse.model_validate(booking)


@router.post("/bookings/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: str,
    admin: CurrentAdmin,
    engine: Engine,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> BookingResponse:
    """Reject a booking request."""
    booking = await engine.reject(booking_id, admin)
    background_tasks.add_task(notifier.notify_booking_rejected, booking)
    return BookingResponse.model_validate(booking)


@router.post("/bookings/{booking_id}/reset", response_model=BookingResponse)
async def reset_booking(
    booking_id: str,
    admin: CurrentAdmin,
    engine: Engine,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> BookingResponse:
    """Put a decided booking back into the review queue."""
    booking = await engine.reset(booking_id, admin)
    background_tasks.add_task(notifier.notify_booking_reset, booking)
    return BookingResponse.model_validate(booking)


@router.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(booking_id: str, admin: CurrentAdmin, engine: Engine) -> Response:
    """Delete a booking in any status."""
    await engine.admin_delete(booking_id, admin)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
