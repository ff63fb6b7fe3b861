"""Manual M-Pesa paybill gateway adapter."""

from decimal import Decimal, InvalidOperation

from app.config import settings
from app.domain.records import PaymentNotification
from app.gateways.base import GatewayType, InitiationResult, PaymentGateway


class ManualGateway(PaymentGateway):
    """Manual paybill payments.

    Initiation only hands back paybill instructions; the money arrives later
    as a C2B confirmation callback from Safaricom.
    """

    def __init__(self, shortcode: str | None = None, currency: str | None = None) -> None:
        self.shortcode = shortcode or settings.mpesa_shortcode
        self.currency = currency or settings.currency

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    async def initiate(
        self,
        phone: str,
        amount: Decimal,
        reference: str,
        description: str,
    ) -> InitiationResult:
        """Return paybill instructions (always succeeds)."""
        instructions = (
            f"Go to M-Pesa > Lipa na M-Pesa > Pay Bill. Business number {self.shortcode}, "
            f"account number {reference}, amount {self.currency} {amount:,.2f}."
        )
        return InitiationResult(
            success=True,
            status="pending",
            checkout_request_id=f"manual_{reference}",
            instructions=instructions,
            raw_response={
                "type": "paybill",
                "status": "pending_payment",
                "shortcode": self.shortcode,
                "account_reference": reference,
                "amount": str(amount),
                "phone": phone,
                "description": description,
            },
        )

    def parse_notification(self, payload: dict) -> PaymentNotification | None:
        """Parse a C2B confirmation (TransID, TransAmount, MSISDN, BillRefNumber)."""
        trans_id = payload.get("TransID")
        bill_ref = payload.get("BillRefNumber")
        if not trans_id or not bill_ref:
            return None
        try:
            amount = Decimal(str(payload.get("TransAmount")))
        except InvalidOperation:
            return None
        return PaymentNotification(
            trans_id=str(trans_id),
            amount=amount,
            phone=str(payload.get("MSISDN", "")),
            bill_ref=str(bill_ref).strip(),
            raw=payload,
        )
