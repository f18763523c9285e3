"""
Time utilities for task submission instants and elapsed-time checks.

Every component that reads the wall clock takes a ``Clock`` callable so tests
can move time forward without sleeping.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_epoch_ms(ts: datetime) -> int:
    """
    Convert a datetime to integer epoch milliseconds.

    Naive datetimes are treated as UTC.
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(ts.timestamp() * 1000)


def from_epoch_ms(epoch_ms: int) -> datetime:
    """
    Convert epoch milliseconds to an aware UTC datetime.

    Raises:
        ValueError: If the value is negative or outside the datetime range
    """
    if epoch_ms < 0:
        raise ValueError(f"Epoch milliseconds must be non-negative, got {epoch_ms}")
    try:
        return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"Epoch milliseconds out of range: {epoch_ms}") from e


def time_elapsed_seconds(start_time: datetime, end_time: Optional[datetime] = None) -> float:
    """
    Calculate elapsed time in seconds between two instants.

    Args:
        start_time: Start timestamp
        end_time: End timestamp, defaults to current wall-clock time

    Returns:
        Elapsed time in seconds (negative if start_time is in the future)
    """
    if end_time is None:
        end_time = utc_now()

    return (end_time - start_time).total_seconds()


def format_timestamp(ts: datetime) -> str:
    """Format a timestamp as ISO8601 for storage and logging."""
    return ts.isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO8601 timestamp written by ``format_timestamp``."""
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts
