"""Shared validation utilities"""

import html
import re
from typing import Any, Optional

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def validate_id_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize an Indonesian phone number to E.164 format.

    Accepts local (08xx), international (+62 / 62) and bare (8xx) forms with
    any separators.

    Returns:
        Normalized phone number (+62XXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    if digits.startswith("62"):
        national = digits[2:]
    elif digits.startswith("0"):
        national = digits[1:]
    else:
        national = digits

    # Mobile and landline numbers are 8-12 digits after the country code
    if not 8 <= len(national) <= 12 or national.startswith("0"):
        raise ValueError("Invalid Indonesian phone number")

    return f"+62{national}"


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


def normalize_time(value: Any, fallback: str) -> str:
    """Accept HH:MM or HH:MM:SS and return HH:MM:SS, or the fallback when invalid"""
    raw = str(value if value is not None else "").strip()
    if not raw:
        return fallback

    match = TIME_PATTERN.match(raw)
    if not match:
        return fallback

    return f"{match.group(1)}:{match.group(2)}:{match.group(3) or '00'}"


def normalize_number(value: Any, fallback: float) -> float:
    """Coerce a number or numeric string; blank or non-finite input yields the fallback"""
    if value is None or value == "":
        return fallback
    try:
        number = float(str(value).strip()) if not isinstance(value, (int, float)) else float(value)
    except ValueError:
        return fallback
    if number != number or number in (float("inf"), float("-inf")):
        return fallback
    return number


def time_to_minutes(value: str) -> int:
    """'HH:MM[:SS]' to minutes after midnight"""
    parts = str(value or "").strip().split(":")
    hour = int(parts[0] or 0) if parts and parts[0].isdigit() else 0
    minute = int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else 0
    return hour * 60 + minute


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """Escape HTML special characters in free text; None passes through"""
    if value is None:
        return None
    return html.escape(str(value).strip(), quote=True)


def clean_notes(value: Optional[str]) -> Optional[str]:
    """Trim notes; blank becomes None"""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
