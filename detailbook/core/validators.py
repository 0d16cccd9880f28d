"""
Input parsing and validation shared by the booking services
"""

from datetime import date, time, datetime
from typing import Optional, Union
import re

from email_validator import validate_email as _check_email, EmailNotValidError

from detailbook.core.exceptions import BookingValidationError

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9](:[0-5][0-9])?$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]+$")

MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15


def parse_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD calendar date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value.strip()):
        raise BookingValidationError("Invalid date format (use YYYY-MM-DD)")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise BookingValidationError("Invalid date format (use YYYY-MM-DD)")


def parse_time(value: Union[str, time]) -> time:
    """Parse a 24-hour HH:MM or HH:MM:SS time of day"""
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        raise BookingValidationError("Invalid time format (use HH:MM:SS or HH:MM)")

    parts = [int(p) for p in value.strip().split(":")]
    return time(*parts)


def truncate_to_minute(value: time) -> time:
    """Slot identity ignores seconds"""
    return value.replace(second=0, microsecond=0)


def phone_digits(phone: str) -> str:
    return re.sub(r"\D", "", phone)


def validate_phone(phone: Optional[str]) -> str:
    if not phone or not phone.strip():
        raise BookingValidationError("Customer phone is required")
    phone = phone.strip()
    digits = phone_digits(phone)
    if not PHONE_PATTERN.match(phone) or not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        raise BookingValidationError("Invalid phone number format")
    return phone


def validate_email(email: Optional[str]) -> Optional[str]:
    """Return the trimmed email, or None when empty"""
    if email is None or not email.strip():
        return None
    email = email.strip()
    try:
        _check_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise BookingValidationError("Invalid email format")
    return email


def clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def require_reason(reason: Optional[str], action: str) -> str:
    """Cancellation and reschedule always need a non-blank reason"""
    if reason is None or not reason.strip():
        raise BookingValidationError(f"{action} reason is required")
    return reason.strip()
