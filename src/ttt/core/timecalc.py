"""Pure time helpers - no I/O dependencies."""

import math
import secrets
import string
from datetime import date, datetime, timedelta

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(moment: datetime) -> str:
    """Entry ID from a timestamp plus a random 5-character suffix."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(5))
    return f"{moment.strftime('%Y%m%d-%H%M%S')}-{suffix}"


def format_timestamp(moment: datetime) -> str:
    return moment.isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse a stored ISO 8601 timestamp. Raises TypeError/ValueError on bad input."""
    if not isinstance(value, str):
        raise TypeError(f"timestamp must be a string, got {type(value).__name__}")
    return datetime.fromisoformat(value)


def duration_seconds(start: datetime, end: datetime) -> int:
    """Whole seconds between two timestamps, rounded down."""
    return math.floor((end - start).total_seconds())


def start_of_day(moment: datetime) -> datetime:
    """00:00:00 of the same day, same timezone."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    """23:59:59 of the same day, same timezone."""
    return moment.replace(hour=23, minute=59, second=59, microsecond=0)


def same_day(a: datetime, b: datetime) -> bool:
    return a.date() == b.date()


def days_between(start: date, end: date) -> list[date]:
    """Every calendar day in [start, end], inclusive."""
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def format_duration(seconds: int) -> str:
    """Format seconds as "1h 40m", "45m" or "30s"."""
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}h {m}m"
    if m > 0:
        return f"{m}m"
    return f"{s}s"


def format_elapsed(seconds: int) -> str:
    """Format seconds as "1h 1m 1s", "1m 30s" or "59s"."""
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}h {m}m {s}s"
    if m > 0:
        return f"{m}m {s}s"
    return f"{s}s"


def format_hhmmss(seconds: int) -> str:
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"
