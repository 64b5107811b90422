"""Timestamp parsing and formatting helpers."""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

GITHUB_TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%SZ'

_TIMEFRAME_PATTERN = re.compile(r'^(\d+)([dwmy])$')
_TIMEFRAME_DAYS = {'d': 1, 'w': 7, 'm': 30, 'y': 365}


def ensure_utc(value: datetime) -> datetime:
    """Return an aware datetime in UTC. Naive values are assumed to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO 8601 timestamp ('2024-01-31T12:00:00Z').

    Args:
        value: Timestamp string from the API, or None

    Returns:
        Aware UTC datetime, or None if the value is empty
    """
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value.replace('Z', '+00:00')))


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way GitHub query parameters expect."""
    return ensure_utc(value).strftime(GITHUB_TIMESTAMP_FORMAT)


def parse_date(value: str) -> datetime:
    """Parse a user supplied date (YYYY-MM-DD or full ISO 8601).

    Raises:
        ValueError: If the value is not a recognisable date
    """
    value = value.strip()
    if len(value) == 10:
        return datetime.strptime(value, '%Y-%m-%d').replace(tzinfo=timezone.utc)
    return ensure_utc(datetime.fromisoformat(value.replace('Z', '+00:00')))


def parse_timeframe(value: str) -> timedelta:
    """Parse a relative timeframe such as '1d', '2w', '3m' or '1y'.

    Months count as 30 days and years as 365.

    Raises:
        ValueError: If the timeframe is malformed
    """
    match = _TIMEFRAME_PATTERN.match(value.strip().lower())
    if not match:
        raise ValueError(f"Invalid timeframe '{value}' (expected e.g. 1d, 2w, 1m, 1y)")
    amount, unit = match.groups()
    return timedelta(days=int(amount) * _TIMEFRAME_DAYS[unit])
