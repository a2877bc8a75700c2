"""Minute arithmetic and human readable durations for pomodoro timers."""
from datetime import datetime, timedelta, timezone
from typing import Optional

from models.errors import InternalError

# Elapsed minutes are stored as 32-bit ints in the historic log
MAX_MINUTES = 2**31 - 1

_MILLISECOND = timedelta(milliseconds=1)
_MILLIS_PER_MINUTE = 60 * 1000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def minutes_between(time_a: Optional[datetime], time_b: Optional[datetime]) -> int:
    """
    Whole minutes between two instants, rounded up.

    Raises:
        InternalError: if either instant is missing or the difference does not fit
    """
    if time_a is None or time_b is None:
        raise InternalError("Instant cannot be null")

    millis = abs(time_a - time_b) // _MILLISECOND
    minutes = -(-millis // _MILLIS_PER_MINUTE)
    if minutes > MAX_MINUTES:
        raise InternalError("Time difference too large")
    return minutes


def minutes_to_display_string(minutes: int) -> str:
    """
    "2 hours 3 mins", pluralising as necessary and omitting hours if not required.
    """
    if minutes < 0:
        raise InternalError("Cannot display a time of less than 0 minutes")
    if minutes == 0:
        return "0 mins"

    hours, minutes = divmod(minutes, 60)
    parts = []
    if hours == 1:
        parts.append("1 hour")
    elif hours > 1:
        parts.append(f"{hours} hours")

    if minutes == 1:
        parts.append("1 min")
    elif minutes > 1:
        parts.append(f"{minutes} mins")
    return " ".join(parts)
