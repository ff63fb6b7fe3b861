"""Database models."""

from app.models.booking import Booking
from app.models.listing import Listing
from app.models.payment import PaymentRecord

__all__ = [
    # Booking
    "Booking",
    # Listing
    "Listing",
    # Payment
    "PaymentRecord",
]
