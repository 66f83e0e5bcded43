"""Shared validation utilities"""

import re
from datetime import datetime, timezone
from typing import Optional

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_hhmm(value: str, field: str = "time") -> str:
    """24-hour HH:MM; the format sorts lexicographically, which slot checks rely on"""
    if not value or not HHMM_PATTERN.match(value.strip()):
        raise ValueError(f"{field} must be a 24-hour HH:MM time")
    return value.strip()


def validate_currency(code: str) -> str:
    code = (code or "").strip().upper()
    if not CURRENCY_PATTERN.match(code):
        raise ValueError("currency must be a 3-letter ISO code")
    return code


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a timestamp for storage: aware values are converted to UTC,
    naive values are taken to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
