"""Payment-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class PaymentInitiateRequest(BaseModel):
    """Schema for initiating a booking fee payment."""

    booking_id: str
    phone: str = Field(..., min_length=9, max_length=20)


class PaymentInitiateResponse(BaseModel):
    """Schema for payment initiation response."""

    model_config = ConfigDict(from_attributes=True)

    booking_id: str
    amount: Decimal
    currency: str
    phone: str
    status: str
    checkout_request_id: str | None
    instructions: str | None


class PaymentConfirmRequest(BaseModel):
    """Schema for a tenant reporting a completed paybill payment."""

    booking_id: str
    phone: str = Field(..., min_length=9, max_length=20)
    transaction_code: str | None = Field(None, max_length=32)


class ReceiptResponse(BaseModel):
    """Schema for a payment receipt."""

    model_config = ConfigDict(from_attributes=True)

    receipt_number: str
    booking_id: str
    amount: Decimal
    payer_phone: str
    confirmed_at: datetime
    transaction_id: str | None


class C2BConfirmation(BaseModel):
    """M-Pesa C2B confirmation callback body."""

    model_config = ConfigDict(extra="allow")

    TransactionType: str | None = None
    TransID: str | None = None
    TransTime: str | None = None
    TransAmount: str | None = None
    BusinessShortCode: str | None = None
    BillRefNumber: str | None = None
    MSISDN: str | None = None
    FirstName: str | None = None


class C2BAcknowledgement(BaseModel):
    """Response body Safaricom expects from a C2B callback."""

    ResultCode: int = 0
    ResultDesc: str = "Accepted"
