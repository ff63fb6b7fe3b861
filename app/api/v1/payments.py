"""Booking fee payment endpoints."""

from fastapi import APIRouter, BackgroundTasks

from app.api.deps import CurrentActor, Gate, Notifier
from app.schemas.payment import (
    PaymentConfirmRequest,
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    ReceiptResponse,
)

router = APIRouter()


@router.post("/initiate", response_model=PaymentInitiateResponse)
async def initiate_payment(
    payment_data: PaymentInitiateRequest,
    actor: CurrentActor,
    gate: Gate,
) -> PaymentInitiateResponse:
    """Start paying the booking fee. The booking status does not change."""
    initiation = await gate.initiate_payment(payment_data.booking_id, actor, payment_data.phone)
    return PaymentInitiateResponse.model_validate(initiation)


@router.post("/confirm", response_model=ReceiptResponse)
async def confirm_payment(
    payment_data: PaymentConfirmRequest,
    actor: CurrentActor,
    gate: Gate,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> ReceiptResponse:
    """Report a completed paybill payment and send the booking for admin review."""
    receipt = await gate.confirm_by_tenant(
        payment_data.booking_id,
        actor,
        payer_phone=payment_data.phone,
        transaction_code=payment_data.transaction_code,
    )
    booking = await gate.engine.load(receipt.booking_id)
    background_tasks.add_task(notifier.notify_payment_received, booking, receipt)
    return ReceiptResponse.model_validate(receipt)
