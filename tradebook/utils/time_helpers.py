"""Local-time helpers.

Trades are stored and compared as naive local wall-clock times. Aware
datetimes coming from callers are converted to the journal timezone first,
so a trade entered at 23:30 local time never drifts to the next day.
"""

from datetime import date, datetime
from typing import Optional, Union

import pytz

from tradebook.constants import DEFAULT_TIMEZONE_NAME, STORAGE_DATETIME_FORMAT

DateLike = Union[date, datetime, str]


def get_timezone(name: Optional[str] = None):
    return pytz.timezone(name or DEFAULT_TIMEZONE_NAME)


def now_local(tz_name: Optional[str] = None) -> datetime:
    return datetime.now(get_timezone(tz_name)).replace(tzinfo=None)


def to_local_naive(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Drop the UTC offset of an aware datetime after converting it to local time.

    Naive datetimes are assumed to already be local and are returned as is.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(get_timezone(tz_name)).replace(tzinfo=None)


def format_for_storage(value: Optional[datetime], tz_name: Optional[str] = None) -> Optional[str]:
    """Format a datetime as YYYY-MM-DDTHH:MM:SS without offset, None stays None."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    return to_local_naive(value, tz_name).strftime(STORAGE_DATETIME_FORMAT)


def parse_stored_datetime(value: Optional[str], tz_name: Optional[str] = None) -> Optional[datetime]:
    """Parse a stored local-time string back into a naive datetime.

    Accepts bare dates ("2025-01-03") and full timestamps. A trailing "Z" or
    offset written by an older client is honoured and converted to local time.

    Raises:
        ValueError: If the string cannot be parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_local_naive(value, tz_name)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_local_naive(datetime.fromisoformat(text), tz_name)


def to_day(value: Optional[DateLike], tz_name: Optional[str] = None) -> Optional[date]:
    """Truncate a date, datetime or ISO string to its local calendar day.

    Raises:
        ValueError: If a string cannot be parsed as an ISO date or datetime.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_local_naive(value, tz_name).date()
    if isinstance(value, date):
        return value
    parsed = parse_stored_datetime(value, tz_name)
    return parsed.date() if parsed else None
