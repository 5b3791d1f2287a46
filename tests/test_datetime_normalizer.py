"""Unit tests for DateTimeNormalizer."""
from datetime import datetime, timezone

import pytest

from processor.datetime_normalizer import DateTimeNormalizer, date_from_url, parse_time
from processor.models import DateAmbiguity


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def normalizer():
    """Normalizer whose clock is pinned to 2026-10-18."""
    return DateTimeNormalizer(clock=lambda: utc(2026, 10, 18, 12, 0))


class TestTimedRange:
    """Test cases for the timed-range strategy."""

    def test_full_date_with_range(self, normalizer):
        """Test explicit date with start and end time."""
        result = normalizer.normalize("March 5, 2025 9:00am - 11:00am")

        assert result.start == utc(2025, 3, 5, 9, 0)
        assert result.end == utc(2025, 3, 5, 11, 0)
        assert result.is_all_day is False
        assert result.ambiguities == []

    def test_missing_year_uses_current_year(self, normalizer):
        """Test date without a year resolves to the clock's year."""
        result = normalizer.normalize("March 5 9:00am")

        assert result.start == utc(2026, 3, 5, 9, 0)
        assert result.end is None
        assert DateAmbiguity.DEFAULT_YEAR in result.ambiguities

    def test_missing_year_uses_system_year_by_default(self):
        """Test default clock supplies the current calendar year."""
        result = DateTimeNormalizer().normalize("March 5 9:00am")

        assert result.start.year == datetime.now(timezone.utc).year

    def test_weekday_prefix_and_en_dash(self, normalizer):
        """Test weekday prefix and en-dash separator."""
        result = normalizer.normalize("Wednesday, April 16, 2025, 3:30pm – 5:00pm")

        assert result.start == utc(2025, 4, 16, 15, 30)
        assert result.end == utc(2025, 4, 16, 17, 0)

    def test_noon_and_midnight(self, normalizer):
        """Test 12-hour clock edge cases."""
        noon = normalizer.normalize("June 1, 2025 12:00pm")
        midnight = normalizer.normalize("June 1, 2025 12:00am")

        assert noon.start.hour == 12
        assert midnight.start.hour == 0

    def test_date_from_url_when_text_has_no_date(self, normalizer):
        """Test date inferred from /YYYY/MM/DD/ in the fallback URL."""
        result = normalizer.normalize(
            "6:00pm - 8:00pm",
            fallback_url="https://www.hawaii.edu/calendar/manoa/2025/03/07/41234.html?et_id=41234"
        )

        assert result.start == utc(2025, 3, 7, 18, 0)
        assert result.end == utc(2025, 3, 7, 20, 0)
        assert DateAmbiguity.DATE_FROM_URL in result.ambiguities

    def test_time_without_any_date_is_unresolved(self, normalizer):
        """Test that time parsing is abandoned when the URL has no date."""
        result = normalizer.normalize(
            "6:00pm",
            fallback_url="https://www.hawaii.edu/calendar/manoa/?et_id=41234"
        )

        assert result.start is None
        assert result.end is None
        assert result.is_all_day is False

    def test_end_before_start_kept_on_same_day(self, normalizer):
        """Test no day rollover when end precedes start."""
        result = normalizer.normalize("March 5, 2025 10:00pm - 1:00am")

        assert result.start == utc(2025, 3, 5, 22, 0)
        assert result.end == utc(2025, 3, 5, 1, 0)
        assert DateAmbiguity.SAME_DAY_END in result.ambiguities

    def test_invalid_calendar_date(self, normalizer):
        """Test February 30 does not produce a timestamp."""
        result = normalizer.normalize("February 30, 2025 9:00am")

        assert result.start is None


class TestAllDay:
    """Test cases for the all-day strategy."""

    def test_all_day_text(self, normalizer):
        """Test literal "All day" with a date lacking a year."""
        result = normalizer.normalize("All day March 5")

        assert result.start == utc(2026, 3, 5, 0, 0)
        assert result.end is None
        assert result.is_all_day is True

    def test_all_day_hint(self, normalizer):
        """Test hint flag triggers the all-day branch even with a time present."""
        result = normalizer.normalize("March 5, 2025 9:00am - 5:00pm", all_day_hint=True)

        assert result.start == utc(2025, 3, 5, 0, 0)
        assert result.end is None
        assert result.is_all_day is True


class TestFallbacks:
    """Test cases for date-only fallback and failure."""

    def test_date_only_is_all_day(self, normalizer):
        """Test bare date becomes an all-day event."""
        result = normalizer.normalize("Sept. 12, 2025")

        assert result.start == utc(2025, 9, 12, 0, 0)
        assert result.is_all_day is True

    def test_nothing_parsable(self, normalizer):
        """Test unresolvable text."""
        result = normalizer.normalize("To be announced")

        assert result.start is None
        assert result.end is None
        assert result.is_all_day is False
        assert not result.resolved

    def test_empty_text(self, normalizer):
        """Test empty and None input."""
        assert normalizer.normalize("").start is None
        assert normalizer.normalize(None).start is None

    def test_strategy_order(self, normalizer):
        """Test strategies run in documented order."""
        assert [name for name, _ in normalizer.strategies] == ['all_day', 'timed_range', 'date_only']


class TestHelpers:
    """Test cases for module-level helpers."""

    @pytest.mark.parametrize("text,expected", [
        ("9:00am", (9, 0)),
        ("9:45 PM", (21, 45)),
        ("12:00am", (0, 0)),
        ("12:30pm", (12, 30)),
        ("7:15 p.m.", (19, 15)),
        ("13:00pm", None),
        ("noon", None),
    ])
    def test_parse_time(self, text, expected):
        """Test 12-hour time conversion."""
        assert parse_time(text) == expected

    def test_date_from_url(self):
        """Test URL date extraction."""
        assert date_from_url("https://example.com/2024/12/31/1.html").isoformat() == "2024-12-31"
        assert date_from_url("https://example.com/2024/13/31/1.html") is None
        assert date_from_url(None) is None
