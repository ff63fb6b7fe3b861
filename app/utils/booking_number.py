"""Receipt and reference number generation utilities."""

import random
import string
from datetime import datetime


def generate_receipt_number(when: datetime | None = None) -> str:
    """Generate a receipt number for booking fee payments.

    Returns:
        str: Receipt number like 'UNI-20240115-A3B7'
    """
    date_part = (when or datetime.now()).strftime("%Y%m%d")
    random_part = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"UNI-{date_part}-{random_part}"


def short_reference(booking_id: str) -> str:
    """Short human-facing booking reference, as printed on receipts.

    Returns:
        str: First eight characters of the id, upper-cased
    """
    return booking_id.replace("-", "")[:8].upper()
