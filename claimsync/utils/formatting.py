"""Wire-format helpers shared by carrier adapters."""

import re
from datetime import date, datetime, timezone
from typing import Any, Optional, Union

_NON_DIGIT = re.compile(r"\D")
_NON_AMOUNT = re.compile(r"[^0-9.\-]")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_date(value: Union[date, datetime]) -> str:
    """Format a date as YYYY-MM-DD (datetimes are converted to UTC first)."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    return value.isoformat()


def format_datetime(value: datetime) -> str:
    """Format a datetime as ISO-8601 in UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def sanitize_phone(phone: Optional[str]) -> str:
    """Strip everything but digits from a phone number."""
    if not phone:
        return ""
    return _NON_DIGIT.sub("", phone)


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse a monetary amount reported by a carrier.

    Currency symbols, commas and whitespace are ignored. Values that do not
    contain a usable number yield None instead of raising.

    Args:
        value: Raw amount (number, string, or None)

    Returns:
        Parsed float or None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _NON_AMOUNT.sub("", str(value))
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime into an aware UTC datetime.

    Returns None for empty or unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            # Epoch milliseconds
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
