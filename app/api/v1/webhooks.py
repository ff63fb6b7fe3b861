"""Webhook endpoints for payment gateways."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.deps import Gate, get_payment_gateway
from app.gateways.base import PaymentGateway
from app.schemas.payment import C2BAcknowledgement, C2BConfirmation

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/mpesa/c2b", response_model=C2BAcknowledgement, status_code=status.HTTP_200_OK)
async def mpesa_c2b_confirmation(
    payload: C2BConfirmation,
    gate: Gate,
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
) -> C2BAcknowledgement:
    """Handle an M-Pesa C2B paybill confirmation.

    Always acknowledged: payments that cannot be applied are recorded and
    logged for manual reconciliation instead of being bounced back.
    """
    notification = gateway.parse_notification(payload.model_dump(exclude_none=True))
    if notification is None:
        logger.warning("Unparseable C2B confirmation: %s", payload.model_dump(exclude_none=True))
        return C2BAcknowledgement()

    receipt = await gate.handle_payment_notification(notification)
    if receipt is not None:
        logger.info("C2B payment %s confirmed booking %s", notification.trans_id, receipt.booking_id)
    return C2BAcknowledgement()
