"""Date utility functions."""

import logging
from datetime import date, datetime
from typing import Optional, Union

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]


def to_date(value: Optional[DateLike]) -> Optional[date]:
    """
    Coerce a date, datetime or ISO string to a date.

    Accepts plain ISO dates ("2025-10-17") and ISO timestamps
    ("2025-10-17T00:00:00Z"); the time part is discarded.

    Args:
        value: Value to convert

    Returns:
        The date, or None when the value is empty or unparseable
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        text = str(value).strip()
        if "T" in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except (ValueError, TypeError) as e:
        logger.warning(f"Could not parse date '{value}': {e}")
        return None


def calculate_days_to_expiry(
    expiration_date: DateLike, as_of: Optional[date] = None
) -> Optional[int]:
    """
    Calculate calendar days until expiration.

    Uses calendar days (not trading days), the standard convention for
    options. Expired contracts report 0 rather than a negative count.

    Example: Jan 19 to Jan 23 = 4 calendar days

    Args:
        expiration_date: Expiration as a date or ISO string
        as_of: Reference date (defaults to today)

    Returns:
        Days to expiry (minimum 0), or None if the date is unparseable
    """
    exp = to_date(expiration_date)
    if exp is None:
        return None
    today = as_of or date.today()
    return max(0, (exp - today).days)
