"""Tests for the billing period calculator."""

import pytest
from datetime import date

from finance_tracker.engine.errors import InvalidFrequencyError
from finance_tracker.engine.periods import (
    current_period,
    format_period_label,
    is_canonical_period,
)
from finance_tracker.models.records import BillFrequency


class TestCurrentPeriod:
    """Tests for current_period across all frequencies."""

    def test_monthly(self):
        period = current_period("monthly", date(2024, 3, 15))
        assert period.frequency == BillFrequency.MONTHLY
        assert period.start == date(2024, 3, 1)
        assert period.end == date(2024, 3, 31)
        assert period.label == "March 2024"

    def test_monthly_leap_february(self):
        period = current_period(BillFrequency.MONTHLY, "2024-02-10")
        assert period.end == date(2024, 2, 29)

    def test_bimonthly_pairing(self):
        """March 15 and April 30 fall in the same Mar-Apr period."""
        march = current_period("bimonthly", date(2024, 3, 15))
        april = current_period("bimonthly", date(2024, 4, 30))
        assert march.start == date(2024, 3, 1)
        assert march.end == date(2024, 4, 30)
        assert march == april
        assert march.label == "Mar-Apr 2024"

    @pytest.mark.parametrize("month,start_month", [
        (1, 1), (2, 1), (5, 5), (6, 5), (7, 7), (10, 9), (12, 11),
    ])
    def test_bimonthly_pairs(self, month, start_month):
        period = current_period("bimonthly", date(2023, month, 1))
        assert period.start == date(2023, start_month, 1)
        assert period.end.month == start_month + 1

    def test_bimonthly_jan_feb_leap(self):
        period = current_period("bimonthly", date(2024, 1, 20))
        assert (period.start, period.end) == (date(2024, 1, 1), date(2024, 2, 29))

    @pytest.mark.parametrize("month,quarter,start,end", [
        (1, 1, date(2024, 1, 1), date(2024, 3, 31)),
        (5, 2, date(2024, 4, 1), date(2024, 6, 30)),
        (9, 3, date(2024, 7, 1), date(2024, 9, 30)),
        (12, 4, date(2024, 10, 1), date(2024, 12, 31)),
    ])
    def test_quarterly(self, month, quarter, start, end):
        period = current_period("quarterly", date(2024, month, 15))
        assert (period.start, period.end) == (start, end)
        assert period.label == f"Q{quarter} 2024"

    def test_yearly(self):
        period = current_period("yearly", date(2024, 7, 4))
        assert (period.start, period.end) == (date(2024, 1, 1), date(2024, 12, 31))
        assert period.label == "2024"

    def test_idempotent(self):
        """Same inputs always give the same period."""
        first = current_period("quarterly", "2024-05-20")
        second = current_period("quarterly", "2024-05-20")
        assert first == second

    def test_period_ignores_bill_creation(self):
        """Periods are calendar-anchored, whatever day the reference is."""
        assert current_period("monthly", date(2024, 3, 1)) == current_period("monthly", date(2024, 3, 31))


class TestInvalidFrequency:
    """Unknown frequencies fail loudly."""

    def test_unknown_frequency_raises(self):
        with pytest.raises(InvalidFrequencyError) as exc_info:
            current_period("weekly", date(2024, 3, 1))
        assert exc_info.value.frequency == "weekly"

    def test_invalid_frequency_is_value_error(self):
        with pytest.raises(ValueError):
            current_period("", date(2024, 3, 1))


class TestCanonicalPeriods:
    """Tests for period labels and canonical checks."""

    def test_format_period_label(self):
        assert format_period_label("bimonthly", "2024-11-01") == "Nov-Dec 2024"
        assert format_period_label("monthly", "2024-12-01") == "December 2024"

    def test_is_canonical_period(self):
        assert is_canonical_period("monthly", "2024-03-01", "2024-03-31")
        assert is_canonical_period("bimonthly", "2024-03-01", "2024-04-30")

    def test_non_canonical_periods(self):
        # Bimonthly pairs never start on an even month
        assert not is_canonical_period("bimonthly", "2024-02-01", "2024-03-31")
        assert not is_canonical_period("monthly", "2024-03-05", "2024-04-04")
        assert not is_canonical_period("quarterly", "2024-01-01", "2024-03-30")
