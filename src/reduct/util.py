"""Timestamp helpers.

Reduct Storage addresses records by UNIX time in microseconds.
"""

from datetime import datetime, timezone
from typing import Optional, Union

Timestamp = Union[int, datetime]


def to_microseconds(ts: Optional[Timestamp]) -> Optional[int]:
    """Convert a timestamp to integer microseconds since the UNIX epoch.

    Naive datetimes are interpreted as UTC.

    Args:
        ts: Microsecond integer, datetime, or None

    Returns:
        Microseconds, or None if ts is None

    Raises:
        TypeError: If ts is neither an int nor a datetime
    """
    if ts is None:
        return None
    if isinstance(ts, bool):
        raise TypeError('Timestamp must be an int or datetime, got bool')
    if isinstance(ts, int):
        return ts
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        delta = ts - datetime(1970, 1, 1, tzinfo=timezone.utc)
        return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    raise TypeError(f'Timestamp must be an int or datetime, got {type(ts).__name__}')


def from_microseconds(us: int) -> datetime:
    """Convert microseconds since the UNIX epoch to an aware UTC datetime."""
    return datetime.fromtimestamp(us // 1_000_000, tz=timezone.utc).replace(microsecond=us % 1_000_000)


def now_microseconds() -> int:
    """Current UTC time in microseconds."""
    return to_microseconds(datetime.now(timezone.utc))
