"""Tests for the period aggregator."""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from finance_tracker.engine.aggregator import (
    get_daily_items,
    get_daily_total,
    get_income_for_period,
    get_monthly_financial_summary,
    get_spending_for_period,
    get_week_totals,
    records_in_window,
)
from finance_tracker.engine.errors import InvalidDateError
from finance_tracker.models.records import (
    Income,
    OneTimeIncome,
    RecurringIncome,
)

from factories import (
    make_bill,
    make_expense,
    make_lending,
    make_payment,
    make_recurring,
)


@pytest.fixture
def march_records(owner_id):
    """A month of mixed records for one owner."""
    bill = make_bill(owner_id, name="Power", category="Utilities")
    person_id = uuid4()
    return {
        "bill": bill,
        "expenses": [
            make_expense(owner_id, "50", date(2024, 3, 5), category="Food"),
            make_expense(owner_id, "30", date(2024, 3, 20), category="Transport"),
            make_expense(owner_id, "999", date(2024, 4, 1), category="Food"),
            make_recurring(owner_id, "20", day=5, created=datetime(2024, 1, 5)),
            make_recurring(owner_id, "10", day=28, created=datetime(2024, 5, 1), name="Gym"),
            make_payment(bill, "80", date(2024, 3, 1), date(2024, 3, 31), paid_on=date(2024, 3, 3)),
            make_payment(bill, "75", date(2024, 2, 1), date(2024, 2, 29), paid_on=date(2024, 2, 3)),
        ],
        "lending": [
            make_lending(owner_id, person_id, "40", date(2024, 3, 12)),
            make_lending(owner_id, person_id, "-15", date(2024, 3, 25)),
            make_lending(owner_id, person_id, "60", date(2024, 2, 12)),
        ],
    }


class TestSpendingForPeriod:
    """Spending buckets for a window."""

    def test_buckets(self, march_records):
        spending = get_spending_for_period(
            march_records["expenses"],
            march_records["lending"],
            "2024-03-01",
            "2024-03-31",
        )
        totals = spending.totals
        assert totals.one_time == Decimal("80")
        # Both recurring expenses, whatever the window
        assert totals.recurring == Decimal("30")
        assert totals.bills == Decimal("80")
        assert totals.lending == Decimal("40")
        assert totals.total == Decimal("230")

    def test_total_is_sum_of_components(self, march_records):
        for start, end in [
            ("2024-01-01", "2024-12-31"),
            ("2024-03-05", "2024-03-05"),
            ("2023-01-01", "2023-01-31"),
        ]:
            totals = get_spending_for_period(
                march_records["expenses"], march_records["lending"], start, end
            ).totals
            assert totals.total == totals.one_time + totals.recurring + totals.bills + totals.lending

    def test_bill_payment_never_counted_as_one_time(self, march_records):
        spending = get_spending_for_period(
            march_records["expenses"], march_records["lending"], "2024-03-01", "2024-03-31"
        )
        assert all(not e.is_bill_payment for e in spending.one_time_expenses)
        assert [p.amount for p in spending.bill_payments] == [Decimal("80")]

    def test_window_bounds_are_inclusive(self, owner_id):
        expenses = [
            make_expense(owner_id, "1", date(2024, 3, 1)),
            make_expense(owner_id, "2", date(2024, 3, 31)),
        ]
        spending = get_spending_for_period(expenses, [], date(2024, 3, 1), date(2024, 3, 31))
        assert spending.totals.one_time == Decimal("3")

    def test_categories(self, march_records):
        spending = get_spending_for_period(
            march_records["expenses"], march_records["lending"], "2024-03-01", "2024-03-31"
        )
        assert spending.by_category == {
            "Food": Decimal("50"),
            "Transport": Decimal("30"),
            "Subscriptions": Decimal("30"),
            "Utilities": Decimal("80"),
            "Lending": Decimal("40"),
        }

    def test_no_lending_category_without_lending(self, owner_id):
        spending = get_spending_for_period(
            [make_expense(owner_id, "5", date(2024, 3, 2))], [], "2024-03-01", "2024-03-31"
        )
        assert "Lending" not in spending.by_category

    def test_empty_inputs(self):
        spending = get_spending_for_period([], [], "2024-03-01", "2024-03-31")
        assert spending.totals.total == Decimal("0")
        assert spending.by_category == {}

    def test_start_after_end_raises(self):
        with pytest.raises(InvalidDateError):
            get_spending_for_period([], [], "2024-03-31", "2024-03-01")

    def test_malformed_date_raises(self):
        with pytest.raises(InvalidDateError):
            get_spending_for_period([], [], "2024-03-xx", "2024-03-31")


class TestRecordsInWindow:
    """Listing records relevant to a date window."""

    def test_keeps_recurring_and_dated_records(self, owner_id):
        inside = make_expense(owner_id, "5", date(2024, 3, 31))
        outside = make_expense(owner_id, "5", date(2024, 4, 1))
        subscription = make_recurring(owner_id, "12", day=5, created=datetime(2025, 1, 1))

        kept = records_in_window([inside, outside, subscription], "2024-03-01", "2024-03-31")

        assert kept == [inside, subscription]

    def test_inverted_window_raises(self):
        with pytest.raises(InvalidDateError):
            records_in_window([], date(2024, 3, 31), date(2024, 3, 1))


class TestDanglingBillPayments:
    """Payments of deleted bills are skipped and reported."""

    def test_skipped_with_warning(self, march_records):
        orphan_bill = make_bill(march_records["bill"].owner_id, name="Gone")
        orphan = make_payment(orphan_bill, "500", date(2024, 3, 1), date(2024, 3, 31))

        spending = get_spending_for_period(
            march_records["expenses"] + [orphan],
            march_records["lending"],
            "2024-03-01",
            "2024-03-31",
            bills=[march_records["bill"]],
        )

        assert spending.totals.bills == Decimal("80")
        assert len(spending.warnings) == 1
        warning = spending.warnings[0]
        assert warning.record_id == orphan.id
        assert warning.missing_type == "bill"
        assert warning.missing_id == orphan_bill.id

    def test_inactive_bills_still_known(self, march_records):
        bill = march_records["bill"]
        bill.is_active = False
        spending = get_spending_for_period(
            march_records["expenses"], [], "2024-03-01", "2024-03-31", bills=[bill]
        )
        assert spending.totals.bills == Decimal("80")
        assert spending.warnings == []

    def test_dangling_payment_left_out_of_daily_total(self, owner_id):
        orphan = make_payment(make_bill(owner_id), "500", date(2024, 3, 1), date(2024, 3, 31))
        assert get_daily_total([orphan], [], "2024-03-01", bills=[]) == Decimal("0")
        assert get_daily_total([orphan], [], "2024-03-01") == Decimal("500")


class TestIncomeForPeriod:
    """Income buckets for a window."""

    def test_breakdown(self, owner_id, march_records):
        income = Income(owner_id=owner_id, salary=Decimal("3000"), savings=Decimal("500"))
        additional = [
            RecurringIncome(
                owner_id=owner_id, name="Flat", amount=Decimal("400"),
                source="Rental", day_of_month=1,
            ),
            OneTimeIncome(
                owner_id=owner_id, name="Gig", amount=Decimal("250"),
                source="Freelance", date=date(2024, 3, 9),
            ),
            OneTimeIncome(
                owner_id=owner_id, name="Old gig", amount=Decimal("100"),
                source="Freelance", date=date(2024, 2, 9),
            ),
        ]

        breakdown = get_income_for_period(
            income, additional, march_records["lending"], "2024-03-01", "2024-03-31"
        )

        assert breakdown.base_salary == Decimal("3000")
        assert breakdown.savings == Decimal("500")
        assert breakdown.totals.recurring == Decimal("400")
        assert breakdown.totals.one_time == Decimal("250")
        assert breakdown.totals.lending_repaid == Decimal("15")
        assert breakdown.totals.total == Decimal("3665")

    def test_missing_income_record_defaults_to_zero(self):
        breakdown = get_income_for_period(None, [], [], "2024-03-01", "2024-03-31")
        assert breakdown.base_salary == Decimal("0")
        assert breakdown.savings == Decimal("0")
        assert breakdown.totals.total == Decimal("0")


class TestMonthlySummary:
    """remaining and net balance."""

    def test_summary(self, owner_id, march_records):
        income = Income(owner_id=owner_id, salary=Decimal("3000"), savings=Decimal("500"))
        summary = get_monthly_financial_summary(
            march_records["expenses"],
            [],
            march_records["lending"],
            income,
            "2024-03-01",
            "2024-03-31",
        )
        # income 3000 + 15 repaid, spending 230
        assert summary.income.totals.total == Decimal("3015")
        assert summary.spending.totals.total == Decimal("230")
        assert summary.remaining == Decimal("2785")
        assert summary.net_balance == Decimal("2285")

    def test_negative_remaining_is_allowed(self, owner_id):
        summary = get_monthly_financial_summary(
            [make_expense(owner_id, "100", date(2024, 3, 2))], [], [], None,
            "2024-03-01", "2024-03-31",
        )
        assert summary.remaining == Decimal("-100")
        assert summary.net_balance == Decimal("-100")


class TestDailyTotals:
    """Calendar cells resolve recurring occurrences per day."""

    def test_weekly_calendar_scenario(self, owner_id):
        """50 one-time plus a 20 subscription on its day is 70."""
        expenses = [
            make_expense(owner_id, "50", date(2024, 3, 5)),
            make_recurring(owner_id, "20", day=5, created=datetime(2024, 1, 5)),
        ]
        assert get_daily_total(expenses, [], "2024-03-05") == Decimal("70")

    def test_daily_items_include_bill_payments_and_lending(self, owner_id):
        bill = make_bill(owner_id)
        payment = make_payment(bill, "80", date(2024, 3, 1), date(2024, 3, 31), paid_on=date(2024, 3, 3))
        lent = make_lending(owner_id, uuid4(), "40", date(2024, 3, 3))
        repaid = make_lending(owner_id, uuid4(), "-40", date(2024, 3, 3))

        items = get_daily_items([payment], [lent, repaid], "2024-03-03", bills=[bill])

        assert [item.kind for item in items] == ["expense", "lending"]
        assert sum(item.amount for item in items) == Decimal("120")

    def test_recurring_not_shown_on_other_days(self, owner_id):
        expenses = [make_recurring(owner_id, "20", day=5, created=datetime(2024, 1, 5))]
        assert get_daily_total(expenses, [], "2024-03-06") == Decimal("0")

    def test_week_totals(self, owner_id):
        expenses = [
            make_expense(owner_id, "50", date(2024, 3, 5)),
            make_expense(owner_id, "12", date(2024, 3, 10)),
            make_expense(owner_id, "99", date(2024, 3, 11)),
            make_recurring(owner_id, "20", day=5, created=datetime(2024, 1, 5)),
        ]

        week = get_week_totals(expenses, [], "2024-03-04")

        assert [d.date for d in week.days] == [date(2024, 3, d) for d in range(4, 11)]
        assert week.days[1].total == Decimal("70")
        assert week.days[6].total == Decimal("12")
        assert week.total == Decimal("82")

    def test_week_day_totals_match_single_day_queries(self, owner_id):
        expenses = [
            make_recurring(owner_id, "20", day=6, created=datetime(2024, 3, 4, 12, 0)),
            make_expense(owner_id, "8", date(2024, 3, 7)),
        ]
        week = get_week_totals(expenses, [], date(2024, 3, 4))
        for day in week.days:
            assert day.total == get_daily_total(expenses, [], day.date)
        # Creation day and the 6th
        assert week.days[0].total == Decimal("20")
        assert week.days[2].total == Decimal("20")
