"""Tenant booking endpoints."""

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status

from app.api.deps import CurrentActor, Engine, Notifier
from app.config import settings
from app.core.exceptions import InvalidStateError, ValidationError
from app.core.middleware import booking_limiter
from app.domain.booking_state import BookingStatus
from app.schemas.booking import (
    BookingCreate,
    BookingListResponse,
    BookingReceiptResponse,
    BookingResponse,
)
from app.utils.booking_number import short_reference
from app.utils.validators import normalize_phone, validate_kenyan_phone

router = APIRouter()


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_limiter)],
)
async def create_booking(
    booking_data: BookingCreate,
    actor: CurrentActor,
    engine: Engine,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> BookingResponse:
    """Request a booking for a listing.

    The booking starts in ``awaiting_manual_payment``; the booking fee has to
    be paid before the request reaches the admin review queue.
    """
    phone = booking_data.phone
    if phone:
        if not validate_kenyan_phone(phone):
            raise ValidationError("Invalid phone number")
        phone = normalize_phone(phone)

    booking = await engine.create_booking_for_listing(
        actor,
        booking_data.listing_id,
        booking_data.move_in_date,
        booking_data.tenant_count,
        requester_phone=phone,
    )
    background_tasks.add_task(notifier.notify_booking_requested, booking)
    return BookingResponse.model_validate(booking)


@router.get("/", response_model=BookingListResponse)
async def get_my_bookings(actor: CurrentActor, engine: Engine) -> BookingListResponse:
    """Get the current tenant's bookings, newest first."""
    bookings = await engine.list_for_requester(actor)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=len(bookings),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str, actor: CurrentActor, engine: Engine) -> BookingResponse:
    """Get a booking by ID."""
    return BookingResponse.model_validate(await engine.get_booking(booking_id, actor))


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(booking_id: str, actor: CurrentActor, engine: Engine) -> BookingResponse:
    """Withdraw a booking that has not been confirmed yet."""
    return BookingResponse.model_validate(await engine.cancel(booking_id, actor))


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def purge_booking(booking_id: str, actor: CurrentActor, engine: Engine) -> Response:
    """Remove a rejected or cancelled booking from the tenant's history."""
    await engine.purge(booking_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{booking_id}/receipt", response_model=BookingReceiptResponse)
async def get_booking_receipt(
    booking_id: str,
    actor: CurrentActor,
    engine: Engine,
) -> BookingReceiptResponse:
    """Booking confirmation receipt, available once the booking is confirmed."""
    booking = await engine.get_booking(booking_id, actor)
    if booking.status != BookingStatus.CONFIRMED or booking.admin_confirmed_at is None:
        raise InvalidStateError("A receipt is only available for confirmed bookings")

    return BookingReceiptResponse(
        booking_id=booking.id,
        reference=short_reference(booking.id),
        listing_name=booking.listing_name,
        listing_address=booking.listing_address,
        agent_name=booking.agent_name,
        agent_phone=booking.agent_phone,
        move_in_date=booking.move_in_date,
        tenant_count=booking.tenant_count,
        requester_email=booking.requester_email,
        requester_phone=booking.requester_phone,
        booking_fee_paid=booking.booking_fee,
        monthly_rent=booking.total_rent,
        currency=settings.currency,
        payment_receipt=booking.payment_receipt,
        requested_at=booking.requested_at,
        payment_confirmed_at=booking.payment_confirmed_at,
        confirmed_at=booking.admin_confirmed_at,
    )
