"""
Phone number validation for Malawian contact numbers.

Malawian numbers format: +265 XXX XXX XXX (country code + 9 digits)
"""

import re
from typing import Tuple, Optional

COUNTRY_CODE = "265"
SUBSCRIBER_DIGITS = 9


def validate_malawian_phone(phone_number: str) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate and clean a Malawian phone number.
    
    Accepts +265XXXXXXXXX, 265XXXXXXXXX and the local 0XXXXXXXXX form.
    
    Args:
        phone_number: Phone number to validate
        
    Returns:
        Tuple of (is_valid, cleaned_number, error_message)
    """
    if not phone_number:
        return False, None, "Phone number is required"
    
    # Remove all spaces, hyphens, and parentheses
    cleaned = re.sub(r'[\s\-\(\)]', '', phone_number)
    
    if cleaned.startswith('+'):
        cleaned = cleaned[1:]
        if not cleaned.startswith(COUNTRY_CODE):
            return False, None, "Phone number must start with +265, 265 or 0"
    
    if cleaned.startswith(COUNTRY_CODE) and len(cleaned) > SUBSCRIBER_DIGITS + 1:
        subscriber = cleaned[len(COUNTRY_CODE):]
    elif cleaned.startswith('0'):
        subscriber = cleaned[1:]
    else:
        return False, None, "Phone number must start with +265, 265 or 0"
    
    if not subscriber.isdigit():
        return False, None, "Phone number must contain only digits"
    
    if len(subscriber) != SUBSCRIBER_DIGITS:
        return False, None, (
            f"Invalid phone number length. Expected {SUBSCRIBER_DIGITS} digits after "
            f"the country code, got {len(subscriber)}"
        )
    
    return True, f"+{COUNTRY_CODE}{subscriber}", None


def normalize_phone(phone_number: str) -> str:
    """
    Return the +265 form of a phone number.
    
    Raises:
        ValueError: If the number is not a valid Malawian number
    """
    is_valid, cleaned, error = validate_malawian_phone(phone_number)
    if not is_valid:
        raise ValueError(f"{phone_number!r} is not a valid Malawian phone number: {error}")
    return cleaned


def get_whatsapp_link(phone_number: str) -> Optional[str]:
    """Build a wa.me chat link for a contact number, or None if the number is invalid."""
    is_valid, cleaned, _ = validate_malawian_phone(phone_number)
    if not is_valid or not cleaned:
        return None
    return f"https://wa.me/{cleaned[1:]}"
