"""Tests for the calendar and date utilities."""

import pytest
from datetime import date, datetime

from finance_tracker.engine.dates import (
    add_days,
    add_months,
    format_iso_date,
    is_same_day,
    month_end,
    month_range,
    month_start,
    parse_iso_date,
    week_dates,
    week_start,
)
from finance_tracker.engine.errors import InvalidDateError


class TestParsing:
    """Tests for boundary date parsing and formatting."""

    def test_parse_iso_string(self):
        assert parse_iso_date("2024-03-05") == date(2024, 3, 5)

    def test_parse_passes_dates_through(self):
        assert parse_iso_date(date(2024, 3, 5)) == date(2024, 3, 5)

    def test_parse_truncates_datetime(self):
        """Test a naive datetime is reduced to its calendar date."""
        assert parse_iso_date(datetime(2024, 3, 5, 23, 59)) == date(2024, 3, 5)

    @pytest.mark.parametrize("value", ["2024-13-01", "2024-02-30", "05/03/2024", ""])
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(InvalidDateError):
            parse_iso_date(value)

    def test_parse_rejects_non_strings(self):
        with pytest.raises(InvalidDateError, match="Expected an ISO date string"):
            parse_iso_date(20240305)

    def test_invalid_date_is_a_value_error(self):
        """Callers catching ValueError still see bad dates."""
        with pytest.raises(ValueError):
            parse_iso_date("not a date")

    def test_format_iso_date(self):
        assert format_iso_date(date(2024, 1, 9)) == "2024-01-09"
        assert format_iso_date(datetime(2024, 1, 9, 8, 30)) == "2024-01-09"

    def test_is_same_day_ignores_time(self):
        assert is_same_day(datetime(2024, 3, 5, 1, 0), date(2024, 3, 5))
        assert not is_same_day(datetime(2024, 3, 6, 0, 0), date(2024, 3, 5))


class TestWeeks:
    """Tests for week boundaries (Monday start)."""

    def test_week_start_midweek(self):
        # Thursday
        assert week_start(date(2024, 3, 7)) == date(2024, 3, 4)

    def test_week_start_monday_is_itself(self):
        assert week_start(date(2024, 3, 4)) == date(2024, 3, 4)

    def test_sunday_maps_to_previous_monday(self):
        assert week_start(date(2024, 3, 10)) == date(2024, 3, 4)

    def test_week_start_truncates_time(self):
        assert week_start(datetime(2024, 3, 7, 18, 45)) == date(2024, 3, 4)

    def test_week_dates(self):
        days = week_dates(date(2024, 2, 26))
        assert len(days) == 7
        assert days[0] == date(2024, 2, 26)
        assert days[3] == date(2024, 2, 29)
        assert days[-1] == date(2024, 3, 3)


class TestMonths:
    """Tests for month boundaries and month arithmetic."""

    def test_month_start_and_end(self):
        assert month_start(date(2024, 4, 17)) == date(2024, 4, 1)
        assert month_end(date(2024, 4, 17)) == date(2024, 4, 30)

    @pytest.mark.parametrize("year,expected", [(2024, 29), (2023, 28), (1900, 28), (2000, 29)])
    def test_month_end_february(self, year, expected):
        assert month_end(date(year, 2, 10)).day == expected

    def test_month_range_is_iso(self):
        assert month_range(date(2024, 2, 10)) == ("2024-02-01", "2024-02-29")

    def test_add_months_clamps_day(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)

    def test_add_months_crosses_year(self):
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)

    def test_add_months_negative(self):
        assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
        assert add_months(date(2024, 1, 15), -1) == date(2023, 12, 15)

    def test_add_months_does_not_mutate_input(self):
        original = date(2024, 1, 31)
        add_months(original, 1)
        assert original == date(2024, 1, 31)

    def test_add_days(self):
        assert add_days(date(2024, 2, 28), 1) == date(2024, 2, 29)
        assert add_days(date(2024, 3, 1), -1) == date(2024, 2, 29)
