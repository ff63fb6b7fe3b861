"""Payment gate.

Bridges the external payment step to the engine's payment-confirmed
transition. The gate keeps no booking state of its own: a booking whose
payment is never completed simply stays in ``awaiting_manual_payment``.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from app.config import settings
from app.core.exceptions import (
    ConcurrentModificationError,
    InvalidStateError,
    NotFoundError,
    PaymentError,
    UnauthorizedError,
    ValidationError,
)
from app.core.permissions import Permission
from app.domain.actor import Actor
from app.domain.booking_state import AWAITING_PAYMENT_STATUSES
from app.domain.records import BookingRecord, PaymentNotification, Receipt
from app.gateways.base import PaymentGateway
from app.services.booking_engine import BookingEngine
from app.stores.base import PaymentLedger
from app.utils.booking_number import generate_receipt_number
from app.utils.validators import mask_sensitive_data, normalize_phone, validate_kenyan_phone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentInitiation:
    """What the tenant needs to complete the booking fee payment."""

    booking_id: str
    amount: Decimal
    currency: str
    phone: str
    status: str
    checkout_request_id: str | None
    instructions: str | None


class PaymentGate:
    """Thin adapter between a payment gateway and the booking engine."""

    def __init__(
        self,
        engine: BookingEngine,
        gateway: PaymentGateway,
        ledger: PaymentLedger | None = None,
    ) -> None:
        self.engine = engine
        self.gateway = gateway
        self.ledger = ledger

    async def initiate_payment(self, booking_id: str, actor: Actor, phone: str) -> PaymentInitiation:
        """Ask the gateway to collect the booking fee from ``phone``.

        Does not change the booking's status.
        """
        actor.require(Permission.PAY_BOOKING)
        booking = await self._owned_booking(booking_id, actor)
        self._require_awaiting_payment(booking)

        if not validate_kenyan_phone(phone):
            raise ValidationError("Enter a valid M-Pesa phone number, e.g. 07XXXXXXXX")
        payer = normalize_phone(phone)

        result = await self.gateway.initiate(
            phone=payer,
            amount=booking.booking_fee,
            reference=booking.id,
            description=f"Booking fee for {booking.listing_name}",
        )
        if not result.success:
            logger.warning("Payment initiation failed for booking %s: %s", booking.id, result.error_message)
            raise PaymentError(result.error_message or "Failed to initiate payment")

        logger.info(
            "Payment of %s initiated for booking %s from %s",
            booking.booking_fee, booking.id, mask_sensitive_data(payer),
        )
        return PaymentInitiation(
            booking_id=booking.id,
            amount=booking.booking_fee,
            currency=settings.currency,
            phone=payer,
            status=result.status,
            checkout_request_id=result.checkout_request_id,
            instructions=result.instructions,
        )

    async def confirm_payment(
        self,
        booking_id: str,
        amount: Decimal,
        payer_phone: str,
        transaction_id: str | None = None,
    ) -> Receipt:
        """Accept a successful payment and advance the booking to admin review.

        Raises:
            NotFoundError: unknown booking
            PaymentError: amount does not cover the booking fee
            InvalidStateError: booking is not awaiting payment (including a
                second confirmation of the same booking)
        """
        booking = await self.engine.load(booking_id)
        amount = Decimal(amount)
        if amount < booking.booking_fee:
            raise PaymentError(
                f"Amount {amount} does not cover the booking fee of {booking.booking_fee}"
            )

        confirmed = await self.engine.confirm_payment(booking_id, receipt=transaction_id)
        confirmed_at = confirmed.payment_confirmed_at
        return Receipt(
            receipt_number=generate_receipt_number(confirmed_at),
            booking_id=booking_id,
            amount=amount,
            payer_phone=payer_phone,
            confirmed_at=confirmed_at,
            transaction_id=transaction_id,
        )

    async def confirm_by_tenant(
        self,
        booking_id: str,
        actor: Actor,
        payer_phone: str,
        transaction_code: str | None = None,
    ) -> Receipt:
        """Tenant-side confirmation that the booking fee has been paid."""
        actor.require(Permission.PAY_BOOKING)
        booking = await self._owned_booking(booking_id, actor)
        return await self.confirm_payment(
            booking_id,
            amount=booking.booking_fee,
            payer_phone=normalize_phone(payer_phone),
            transaction_id=transaction_code,
        )

    async def handle_payment_notification(self, notification: PaymentNotification) -> Receipt | None:
        """Record a gateway notification and confirm the booking it pays for.

        Unmatched, duplicate or insufficient payments are logged and left for
        manual reconciliation; nothing is raised back to the gateway.
        """
        if self.ledger is not None and not await self.ledger.record(notification):
            logger.info("Ignoring duplicate payment notification %s", notification.trans_id)
            return None

        try:
            receipt = await self.confirm_payment(
                notification.bill_ref,
                amount=notification.amount,
                payer_phone=notification.phone,
                transaction_id=notification.trans_id,
            )
        except (NotFoundError, InvalidStateError, PaymentError, ConcurrentModificationError) as e:
            logger.warning(
                "Payment %s (ref %s, amount %s) not applied: %s",
                notification.trans_id, notification.bill_ref, notification.amount, e.detail,
            )
            return None

        if self.ledger is not None:
            await self.ledger.mark_matched(notification.trans_id, notification.bill_ref)
        return receipt

    async def _owned_booking(self, booking_id: str, actor: Actor) -> BookingRecord:
        booking = await self.engine.load(booking_id)
        if booking.requester_id != actor.user_id:
            raise UnauthorizedError("You can only pay for your own bookings")
        return booking

    @staticmethod
    def _require_awaiting_payment(booking: BookingRecord) -> None:
        if booking.status not in AWAITING_PAYMENT_STATUSES:
            raise InvalidStateError(f"Booking is {booking.status.label}; no payment is due")
