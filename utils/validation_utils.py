"""
utils/validation_utils.py

Purpose: Input validation

- MTN South Sudan mobile number validation
- MSISDN normalization for the payment gateway
- Message text sanitization
"""

import re
from typing import Optional

from app.core.config import settings


def normalize_mobile_number(text: Optional[str]) -> str:
    """
    Strips whitespace, dashes and brackets users commonly type.
    """
    if not text:
        return ""
    return re.sub(r"[\s\-()]", "", text.strip())


def validate_mobile_number(text: Optional[str]) -> bool:
    """
    Validates a local MTN number (default format: 092xxxxxxx).

    Args:
        text: Raw user input

    Returns:
        True if valid, False otherwise
    """
    number = normalize_mobile_number(text)
    if not number:
        return False
    return re.fullmatch(settings.MOBILE_NUMBER_PATTERN, number) is not None


def format_msisdn(number: str, production: Optional[bool] = None) -> str:
    """
    Formats a local number for the MoMo API.

    Production expects the international form (21192xxxxxxx); the sandbox
    accepts the number unchanged.
    """
    if production is None:
        production = settings.MOMO_ENVIRONMENT == "production"

    number = normalize_mobile_number(number)
    if production and number.startswith("0"):
        return f"211{number[1:]}"
    return number


def sanitize_message(text: Optional[str]) -> str:
    """
    Trims surrounding whitespace and drops NUL characters.
    """
    if not text:
        return ""
    return text.replace("\x00", "").strip()


def is_message_too_long(text: str) -> bool:
    return len(text) > settings.MAX_MESSAGE_LENGTH
