"""Tests for the bill payment matcher and trend computation."""

import random
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from finance_tracker.engine.payments import (
    bill_payments,
    bills_with_status,
    find_payment_for_period,
    is_paid_for_period,
    latest_two,
    payment_trend,
    payments_for_bill,
    sort_newest_first,
    trend,
)
from finance_tracker.engine.periods import current_period

from factories import make_bill, make_expense, make_payment


class TestPeriodMatching:
    """Payments match periods by exact equality of the bounds."""

    def test_paid_for_exact_period(self):
        bill = make_bill(uuid4())
        payments = [make_payment(bill, "80", date(2024, 3, 1), date(2024, 3, 31))]
        assert is_paid_for_period(payments, "2024-03-01", "2024-03-31") is True

    def test_overlapping_period_is_not_a_match(self):
        bill = make_bill(uuid4(), "bimonthly")
        payments = [make_payment(bill, "80", date(2024, 3, 1), date(2024, 4, 30))]
        assert is_paid_for_period(payments, date(2024, 3, 1), date(2024, 3, 31)) is False

    def test_no_payments(self):
        assert is_paid_for_period([], "2024-03-01", "2024-03-31") is False

    def test_stable_under_reordering(self):
        bill = make_bill(uuid4())
        payments = [
            make_payment(bill, "80", date(2024, m, 1), current_period("monthly", date(2024, m, 1)).end)
            for m in (1, 2, 3, 4)
        ]
        period = current_period("monthly", date(2024, 3, 20))
        expected = is_paid_for_period(payments, period.start, period.end)
        for seed in range(5):
            shuffled = payments[:]
            random.Random(seed).shuffle(shuffled)
            assert is_paid_for_period(shuffled, period.start, period.end) is expected
        assert expected is True

    def test_find_payment_ignores_plain_expenses(self):
        owner = uuid4()
        bill = make_bill(owner)
        payment = make_payment(bill, "80", date(2024, 3, 1), date(2024, 3, 31))
        plain = make_expense(owner, "5", date(2024, 3, 1))
        assert find_payment_for_period([plain, payment], "2024-03-01", "2024-03-31") is payment
        assert bill_payments([plain, payment]) == [payment]

    def test_payments_for_bill(self):
        owner = uuid4()
        power = make_bill(owner)
        water = make_bill(owner, name="Water")
        p1 = make_payment(power, "80", date(2024, 3, 1), date(2024, 3, 31))
        p2 = make_payment(water, "20", date(2024, 3, 1), date(2024, 3, 31))
        assert payments_for_bill([p1, p2], water.id) == [p2]


class TestTrend:
    """Trend between the two latest payments."""

    def test_trend_up(self):
        """100 in January then 120 in February is up 20%."""
        bill = make_bill(uuid4())
        payments = [
            make_payment(bill, "100", date(2024, 1, 1), date(2024, 1, 31)),
            make_payment(bill, "120", date(2024, 2, 1), date(2024, 2, 29)),
        ]
        latest, previous = latest_two(payments)
        assert latest.amount == Decimal("120")
        assert previous.amount == Decimal("100")
        result = trend(latest, previous)
        assert result.direction == "up"
        assert result.percentage == 20

    def test_trend_uses_period_not_insertion_order(self):
        bill = make_bill(uuid4())
        payments = [
            make_payment(bill, "120", date(2024, 2, 1), date(2024, 2, 29)),
            make_payment(bill, "90", date(2023, 12, 1), date(2023, 12, 31)),
            make_payment(bill, "100", date(2024, 1, 1), date(2024, 1, 31)),
        ]
        assert [p.amount for p in sort_newest_first(payments)] == [
            Decimal("120"), Decimal("100"), Decimal("90"),
        ]
        assert payment_trend(payments).percentage == 20

    def test_trend_down_rounds_half_up(self):
        bill = make_bill(uuid4())
        previous = make_payment(bill, "200", date(2024, 1, 1), date(2024, 1, 31))
        latest = make_payment(bill, "199", date(2024, 2, 1), date(2024, 2, 29))
        result = trend(latest, previous)
        assert result.direction == "down"
        # 0.5% rounds up
        assert result.percentage == 1

    def test_trend_same(self):
        bill = make_bill(uuid4())
        previous = make_payment(bill, "50", date(2024, 1, 1), date(2024, 1, 31))
        latest = make_payment(bill, "50", date(2024, 2, 1), date(2024, 2, 29))
        result = trend(latest, previous)
        assert (result.direction, result.percentage) == ("same", 0)

    def test_single_payment_has_no_trend(self):
        bill = make_bill(uuid4())
        only = make_payment(bill, "50", date(2024, 1, 1), date(2024, 1, 31))
        assert payment_trend([only]) is None
        assert trend(only, None) is None

    @pytest.mark.parametrize("latest_amount,direction,percentage", [
        ("0", "same", 0),
        ("30", "up", None),
    ])
    def test_zero_previous_never_raises(self, latest_amount, direction, percentage):
        bill = make_bill(uuid4())
        previous = make_payment(bill, "0", date(2024, 1, 1), date(2024, 1, 31))
        latest = make_payment(bill, latest_amount, date(2024, 2, 1), date(2024, 2, 29))
        result = trend(latest, previous)
        assert result.direction == direction
        assert result.percentage == percentage


class TestBillsWithStatus:
    """Tests for the combined bill status view."""

    def test_status_for_current_period(self):
        owner = uuid4()
        paid = make_bill(owner, name="Power")
        unpaid = make_bill(owner, "quarterly", name="Internet")
        expenses = [
            make_payment(paid, "100", date(2024, 2, 1), date(2024, 2, 29)),
            make_payment(paid, "120", date(2024, 3, 1), date(2024, 3, 31), paid_on=date(2024, 3, 4)),
            make_expense(owner, "9", date(2024, 3, 4)),
        ]
        statuses = bills_with_status([paid, unpaid], expenses, "2024-03-15")

        power, internet = statuses
        assert power.is_paid is True
        assert power.period.label == "March 2024"
        assert power.latest_payment.amount == Decimal("120")
        assert power.trend.direction == "up"

        assert internet.is_paid is False
        assert internet.period.label == "Q1 2024"
        assert internet.payments == []
        assert internet.trend is None
