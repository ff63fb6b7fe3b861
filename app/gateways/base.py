"""Base payment initiator interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from app.domain.records import PaymentNotification


class GatewayType(str, Enum):
    """Supported payment gateways."""

    MANUAL = "manual"  # M-Pesa paybill, paid by the tenant from their phone


@dataclass
class InitiationResult:
    """Result of asking the gateway to start a payment."""

    success: bool
    status: str = "pending"
    checkout_request_id: str | None = None
    instructions: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def initiate(
        self,
        phone: str,
        amount: Decimal,
        reference: str,
        description: str,
    ) -> InitiationResult:
        """Start a payment.

        Args:
            phone: Payer phone in 2547XXXXXXXX format
            amount: Amount in KES
            reference: Account reference the payer must quote (booking id)
            description: Payment description

        Returns:
            InitiationResult; ``success=False`` means the payment could not
            be started at all
        """
        pass

    @abstractmethod
    def parse_notification(self, payload: dict) -> PaymentNotification | None:
        """Parse a payment notification pushed by the gateway.

        Args:
            payload: Decoded JSON body of the callback

        Returns:
            PaymentNotification if the payload is a completed payment,
            None otherwise
        """
        pass
