"""
Unit tests for the daily reset schedule.
"""

from datetime import datetime, timedelta

import pytest

from questline.modules.quests.schedule import (
    format_time_until_reset,
    next_daily_boundary,
    time_until_reset,
)


class TestNextDailyBoundary:
    def test_midnight_utc_rolls_to_tomorrow(self):
        now = datetime(2025, 1, 15, 12, 0)
        assert next_daily_boundary(now, tz="UTC") == datetime(2025, 1, 16, 0, 0)

    def test_later_today_when_not_yet_passed(self):
        now = datetime(2025, 1, 15, 3, 0)
        assert next_daily_boundary(now, reset_hour=4, tz="UTC") == datetime(2025, 1, 15, 4, 0)

    def test_exact_boundary_resolves_to_next_day(self):
        now = datetime(2025, 1, 15, 4, 30)
        boundary = next_daily_boundary(now, reset_hour=4, reset_minute=30, tz="UTC")
        assert boundary == datetime(2025, 1, 16, 4, 30)

    def test_boundary_always_after_now(self):
        now = datetime(2025, 3, 1, 23, 59, 59)
        assert next_daily_boundary(now, tz="UTC") > now

    def test_named_zone_converted_to_utc(self):
        # Midnight in Tokyo (UTC+9) is 15:00 UTC the previous day.
        now = datetime(2025, 1, 15, 12, 0)
        boundary = next_daily_boundary(now, tz="Asia/Tokyo")
        assert boundary == datetime(2025, 1, 15, 15, 0)

    def test_dst_zone_uses_local_wall_clock(self):
        # New York is UTC-4 in July.
        now = datetime(2025, 7, 1, 12, 0)
        boundary = next_daily_boundary(now, reset_hour=6, tz="America/New_York")
        assert boundary == datetime(2025, 7, 2, 10, 0)

    def test_server_local_time_when_no_zone(self):
        now = datetime(2025, 1, 15, 12, 0)
        boundary = next_daily_boundary(now)
        assert now < boundary <= now + timedelta(days=1, hours=1)


class TestTimeUntilReset:
    def test_remaining_time(self):
        now = datetime(2025, 1, 15, 18, 30)
        assert time_until_reset(now, tz="UTC") == timedelta(hours=5, minutes=30)

    @pytest.mark.parametrize(
        "remaining,expected",
        [
            (timedelta(hours=5, minutes=30), "5h 30m"),
            (timedelta(minutes=42, seconds=10), "42m"),
            (timedelta(hours=1), "1h 0m"),
            (timedelta(seconds=-5), "0m"),
        ],
    )
    def test_format(self, remaining, expected):
        assert format_time_until_reset(remaining) == expected
