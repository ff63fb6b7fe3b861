"""Custom validation utilities."""

import re


def validate_kenyan_phone(phone: str) -> bool:
    """Validate a Kenyan mobile number usable for M-Pesa.

    Accepted formats:
    - +254712345678 (international)
    - 254712345678 (M-Pesa format)
    - 0712345678 / 0112345678 (local)

    Args:
        phone: Phone number to validate

    Returns:
        bool: True if valid Kenyan mobile format
    """
    # Remove spaces, dashes, and parentheses
    cleaned = re.sub(r"[\s\-\(\)]", "", phone)

    if cleaned.startswith("+254"):
        cleaned = cleaned[1:]

    # M-Pesa format: 254 followed by 7XXXXXXXX or 1XXXXXXXX
    if cleaned.startswith("254"):
        return len(cleaned) == 12 and cleaned.isdigit() and cleaned[3] in "17"

    # Local format starting with 07 or 01
    if cleaned.startswith(("07", "01")):
        return len(cleaned) == 10 and cleaned.isdigit()

    return False


def normalize_phone(phone: str) -> str:
    """Normalize phone number to the 2547XXXXXXXX format M-Pesa expects.

    Args:
        phone: Phone number in any format

    Returns:
        str: Phone number in 254XXXXXXXXX format
    """
    # Remove non-digits
    cleaned = re.sub(r"\D", "", phone)

    # Already international format
    if cleaned.startswith("254"):
        return cleaned

    # Local format starting with 0
    if cleaned.startswith("0"):
        return "254" + cleaned[1:]

    # Just digits starting with 7 or 1
    if cleaned.startswith(("7", "1")) and len(cleaned) == 9:
        return "254" + cleaned

    return phone  # Return as-is if can't normalize


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """Mask sensitive data showing only last few characters.

    Args:
        data: Sensitive data to mask
        visible_chars: Number of characters to show at end

    Returns:
        str: Masked string like '********7890'
    """
    if len(data) <= visible_chars:
        return "*" * len(data)

    masked_length = len(data) - visible_chars
    return "*" * masked_length + data[-visible_chars:]
