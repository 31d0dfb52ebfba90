"""
Phone parsing shared by the booking and waitlist request models and by patient
de-duplication.
"""

import re
from typing import Optional


def clean_phone_number(phone: str) -> str:
    """Strip spaces, dashes, dots, parentheses and plus signs."""
    return re.sub(r'[-\s().+]', '', phone)


def validate_phone(phone: str) -> str:
    """
    Validate a phone number and return it cleaned.

    Accepts 10-15 digits once separators are removed (North American numbers
    with or without the leading country code, and international numbers).

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone or not phone.strip():
        raise ValueError('Phone number is required')

    cleaned = clean_phone_number(phone)

    if not cleaned.isdigit():
        raise ValueError('Invalid phone number format')

    if not 10 <= len(cleaned) <= 15:
        raise ValueError('Phone number must have between 10 and 15 digits')

    return cleaned


def validate_phone_optional(phone: Optional[str]) -> Optional[str]:
    """validate_phone() for optional fields; None or blank returns None."""
    if phone is None or not phone.strip():
        return None
    return validate_phone(phone)


def normalize_phone_for_match(phone: Optional[str]) -> Optional[str]:
    """
    Canonical form used to de-duplicate patients.

    "+1 (514) 555-0100", "514.555.0100" and "15145550100" all normalize to
    "5145550100".
    """
    if not phone:
        return None
    cleaned = clean_phone_number(phone)
    if len(cleaned) == 11 and cleaned.startswith('1'):
        cleaned = cleaned[1:]
    return cleaned or None
