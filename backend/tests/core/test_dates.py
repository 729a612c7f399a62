"""Unit tests for reference-zone day boundaries."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from hydraiq.core.dates import (
    day_bounds,
    is_valid_day,
    local_date,
    local_hour,
    reference_zone,
    today,
)

NY = ZoneInfo("America/New_York")


class TestReferenceZone:
    def test_default_is_new_york(self):
        assert reference_zone() == NY

    def test_named(self):
        assert reference_zone("Europe/Berlin") == ZoneInfo("Europe/Berlin")


class TestLocalDate:
    """Tests for local_date and local_hour."""

    def test_evening_drink_stays_on_its_day(self):
        """21:00 in New York is already the next day in UTC."""
        ts = datetime(2025, 6, 4, 1, 0, tzinfo=timezone.utc)
        assert local_date(ts, NY) == "2025-06-03"
        assert local_hour(ts, NY) == 21

    def test_naive_is_utc(self):
        assert local_date(datetime(2025, 6, 4, 1, 0), NY) == "2025-06-03"

    def test_winter_offset(self):
        """EST is UTC-5."""
        ts = datetime(2025, 1, 15, 4, 30, tzinfo=timezone.utc)
        assert local_date(ts, NY) == "2025-01-14"
        assert local_hour(ts, NY) == 23


class TestDayBounds:
    """Tests for day_bounds."""

    def test_summer_day(self):
        start, end = day_bounds("2025-06-03", NY)
        assert start == datetime(2025, 6, 3, 4, 0, tzinfo=timezone.utc)
        assert end == datetime(2025, 6, 4, 4, 0, tzinfo=timezone.utc)

    def test_dst_start_is_23_hours(self):
        start, end = day_bounds("2025-03-09", NY)
        assert (end - start).total_seconds() == 23 * 3600

    def test_bounds_contain_local_day(self):
        start, end = day_bounds("2025-06-03", NY)
        assert local_date(start, NY) == "2025-06-03"
        assert local_date(end, NY) == "2025-06-04"


class TestToday:
    def test_today_in_zone(self):
        now = datetime(2025, 6, 4, 2, 0, tzinfo=timezone.utc)
        assert today(NY, now) == "2025-06-03"


class TestIsValidDay:
    def test_valid(self):
        assert is_valid_day("2025-06-03") is True

    def test_invalid(self):
        assert is_valid_day("2025-13-01") is False
        assert is_valid_day("June 3") is False
        assert is_valid_day("20250603") is False
        assert is_valid_day(None) is False
