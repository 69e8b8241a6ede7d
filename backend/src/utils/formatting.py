"""
Formatting utilities for human-readable output.

Provides functions for:
- CSV timestamps (yyyy-MM-dd HH:mm:ss) in both directions
- Countdown durations (1h 2m 3s, with the hour dropped when zero)
"""

from datetime import datetime, timezone
from typing import Optional


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(value: Optional[datetime]) -> str:
    """
    Format a datetime for CSV export.

    Examples:
        >>> format_timestamp(datetime(2026, 1, 20, 9, 5, 0))
        '2026-01-20 09:05:00'
        >>> format_timestamp(None)
        ''
    """
    if value is None:
        return ""
    return value.strftime(TIMESTAMP_FORMAT)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a timestamp from CSV or form input.

    Accepts ISO-8601 (with or without offset, 'Z' allowed) and
    'yyyy-MM-dd HH:mm:ss'. Aware values are converted to naive UTC.

    Returns:
        The parsed datetime, or None for empty input

    Raises:
        ValueError: If the value is not a recognised timestamp
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    try:
        return datetime.strptime(text, TIMESTAMP_FORMAT)
    except ValueError:
        pass

    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        return to_naive_utc(datetime.fromisoformat(text))
    except ValueError:
        raise ValueError(f"Invalid timestamp: '{value}'")


def format_duration(total_seconds: int) -> str:
    """
    Format a non-negative number of seconds as a countdown.

    The hour component is omitted when it is zero.

    Examples:
        >>> format_duration(150)
        '2m 30s'
        >>> format_duration(3725)
        '1h 2m 5s'
        >>> format_duration(0)
        '0m 0s'
    """
    total_seconds = max(0, int(total_seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    return f"{minutes}m {seconds}s"
