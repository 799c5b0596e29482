"""Epoch-millisecond <-> datetime conversions for revision timestamps.

The time zone is always passed in. None means the host's local zone,
resolved at call time.
"""

from __future__ import annotations

import time
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Resolve an IANA zone name; empty or unknown names fall back to local time (None)."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown time zone '{name}', falling back to host local time")
        return None


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def timestamp_to_datetime(timestamp: int, tz: tzinfo | None = None) -> datetime:
    """Convert epoch milliseconds to a datetime in ``tz``.

    With ``tz=None`` the result is a naive datetime in the host's local zone.
    """
    return datetime.fromtimestamp(timestamp / 1000, tz=tz)


def datetime_to_timestamp(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds. Naive values are read as host local time."""
    return round(value.timestamp() * 1000)
