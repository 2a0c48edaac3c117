"""
Timezone utilities for settlement.

All times are stored as naive UTC. A game's calendar date is taken in the
settlement time zone (US Eastern by default), which is also how the ESPN
scoreboard buckets games by date: a 10:30 PM ET kickoff is stored as 03:30 UTC
the next day but belongs to the ET date it was played on.
"""
from datetime import datetime, date, timezone
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Current time as naive UTC (for database storage)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Naive inputs are assumed to already be UTC.

    Example:
        >>> to_naive_utc(datetime(2025, 1, 5, 18, 0, tzinfo=ZoneInfo("America/New_York")))
        datetime.datetime(2025, 1, 5, 23, 0)
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@lru_cache(maxsize=16)
def _zone(tz_name: str) -> ZoneInfo:
    return ZoneInfo(tz_name)


def settlement_date(value: datetime, tz_name: Optional[str] = None) -> date:
    """
    Calendar date of a moment in the settlement time zone.

    Args:
        value: Datetime (naive values are treated as UTC)
        tz_name: IANA zone name (default: settings.SETTLEMENT_TIMEZONE)

    Returns:
        The local calendar date

    Example:
        >>> settlement_date(datetime(2025, 1, 6, 3, 30), "America/New_York")
        datetime.date(2025, 1, 5)
    """
    if tz_name is None:
        from parlay_settlement.core.config import settings
        tz_name = settings.SETTLEMENT_TIMEZONE

    aware = value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value
    return aware.astimezone(_zone(tz_name)).date()
