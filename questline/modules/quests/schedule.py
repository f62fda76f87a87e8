"""
Daily reset schedule.

Engine timestamps are naive UTC. The reset instant is defined as a wall-clock
time (hour:minute) in a configured zone, or the server's local zone when no
zone is configured; these helpers translate between the two.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

TimezoneLike = Union[str, tzinfo, None]


def resolve_timezone(tz: TimezoneLike) -> Optional[tzinfo]:
    """Turn a zone name into a tzinfo; None means server local time."""
    if tz is None or isinstance(tz, tzinfo):
        return tz
    return ZoneInfo(tz)


def _to_utc_naive(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _local_reset(day: date, reset_at: time, zone: Optional[tzinfo]) -> datetime:
    if zone is None:
        # Naive astimezone() resolves the server zone, DST included.
        return datetime.combine(day, reset_at).astimezone()
    return datetime.combine(day, reset_at, tzinfo=zone)


def next_daily_boundary(
    now: datetime,
    reset_hour: int = 0,
    reset_minute: int = 0,
    tz: TimezoneLike = None,
) -> datetime:
    """
    Next reset instant strictly after `now`.

    Args:
        now: Current instant, naive UTC
        reset_hour: Reset hour in the reset zone (0-23)
        reset_minute: Reset minute (0-59)
        tz: Zone name or tzinfo; None for server local time

    Returns:
        The boundary as naive UTC.

    Example:
        >>> next_daily_boundary(datetime(2024, 5, 1, 15, 0), tz="UTC")
        datetime.datetime(2024, 5, 2, 0, 0)
        >>> next_daily_boundary(datetime(2024, 5, 1, 3, 0), reset_hour=4, tz="UTC")
        datetime.datetime(2024, 5, 1, 4, 0)
    """
    zone = resolve_timezone(tz)
    aware_now = now.replace(tzinfo=timezone.utc)
    local_now = aware_now.astimezone(zone) if zone is not None else aware_now.astimezone()

    reset_at = time(reset_hour, reset_minute)
    candidate = _local_reset(local_now.date(), reset_at, zone)
    if candidate <= aware_now:
        candidate = _local_reset(local_now.date() + timedelta(days=1), reset_at, zone)

    return _to_utc_naive(candidate)


def time_until_reset(
    now: datetime,
    reset_hour: int = 0,
    reset_minute: int = 0,
    tz: TimezoneLike = None,
) -> timedelta:
    """Time remaining until the next reset."""
    return next_daily_boundary(now, reset_hour, reset_minute, tz) - now


def format_time_until_reset(remaining: timedelta) -> str:
    """
    Human-readable remaining time.

    Example:
        >>> format_time_until_reset(timedelta(hours=5, minutes=30))
        '5h 30m'
        >>> format_time_until_reset(timedelta(minutes=42, seconds=10))
        '42m'
    """
    total_minutes = max(0, int(remaining.total_seconds()) // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
