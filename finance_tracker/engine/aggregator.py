"""
Period Aggregator (Financial Summary Engine)

Builds the income/spending breakdown of an owner for a [start, end]
window, the monthly summary, and the per-day totals shown in the week
calendar.

DESIGN DECISION: Recurring expenses and recurring income are steady-state
monthly figures. Period breakdowns include ALL of them whatever the window.
Only the per-day calendar view resolves individual occurrences (see
occurrences.py).

Spending buckets, each expense landing in exactly one:
    one-time   - one-time expenses WITHOUT a bill link, dated in the window
    recurring  - every recurring expense, under "Subscriptions"
    bills      - one-time expenses WITH a bill link, dated in the window
    lending    - lending records with amount > 0 in the window, under "Lending"

A bill payment is never counted as a one-time expense as well.

When the owner's bills are supplied, a bill payment whose bill no longer
exists is skipped and reported as a DataIntegrityWarning. Aggregation
carries on.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from finance_tracker.engine.categories import LENDING_CATEGORY, SUBSCRIPTIONS_CATEGORY
from finance_tracker.engine.dates import DateLike, parse_iso_date, week_dates
from finance_tracker.engine.errors import InvalidDateError
from finance_tracker.engine.occurrences import is_active_on
from finance_tracker.models.records import (
    Bill,
    Income,
    LendingRecord,
    OneTimeExpense,
    OneTimeIncome,
    RecurringExpense,
    RecurringIncome,
)
from finance_tracker.models.summary import (
    ZERO,
    DataIntegrityWarning,
    DayTotal,
    IncomeBreakdown,
    IncomeTotals,
    LendingOut,
    MonthlyFinancialSummary,
    OneTimeSpending,
    RecurringOccurrence,
    SpendingBreakdown,
    SpendingItem,
    SpendingTotals,
    WeekTotals,
)


logger = structlog.get_logger(__name__)


def _window(start_date: DateLike, end_date: DateLike) -> tuple[date, date]:
    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date)
    if end < start:
        raise InvalidDateError(
            f"Period end {end.isoformat()} is before start {start.isoformat()}"
        )
    return start, end


def _total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def records_in_window(records: Iterable, start_date: DateLike, end_date: DateLike) -> list:
    """
    Expense or additional-income records relevant to [start_date, end_date].

    Every recurring definition is kept, whatever its own dates; whether it
    actually occurs in the window is decided when aggregating. One-time
    records are kept when their date is inside the window.
    """
    start, end = _window(start_date, end_date)
    return [
        r for r in records
        if isinstance(r, (RecurringExpense, RecurringIncome)) or start <= r.date <= end
    ]


def _drop_dangling_payments(
    payments: list[OneTimeExpense],
    bills: Optional[Iterable[Bill]],
) -> tuple[list[OneTimeExpense], list[DataIntegrityWarning]]:
    """Split bill payments into those with a known bill and warnings for the rest."""
    if bills is None:
        return payments, []

    known = {bill.id for bill in bills}
    kept = []
    warnings = []
    for payment in payments:
        bill_id = payment.bill_payment.bill_id
        if bill_id in known:
            kept.append(payment)
            continue
        logger.warning(
            "dangling_bill_reference",
            expense_id=str(payment.id),
            bill_id=str(bill_id),
            owner_id=str(payment.owner_id),
        )
        warnings.append(DataIntegrityWarning(
            record_type="expense",
            record_id=payment.id,
            missing_type="bill",
            missing_id=bill_id,
            message=f"Bill payment {payment.id} references missing bill {bill_id}; skipped",
        ))
    return kept, warnings


# =============================================================================
# SPENDING
# =============================================================================

def get_spending_for_period(
    expenses: Iterable,
    lending: Iterable[LendingRecord],
    start_date: DateLike,
    end_date: DateLike,
    bills: Optional[Iterable[Bill]] = None,
) -> SpendingBreakdown:
    """
    Spending breakdown for [start_date, end_date], both inclusive.

    Args:
        expenses: All of the owner's expenses
        lending: All of the owner's lending records
        start_date: First day of the window
        end_date: Last day of the window
        bills: The owner's bills (active or not). When given, payments of
            unknown bills are skipped with a warning.
    """
    start, end = _window(start_date, end_date)
    expenses = list(expenses)

    one_time = [
        e for e in expenses
        if isinstance(e, OneTimeExpense)
        and e.bill_payment is None
        and start <= e.date <= end
    ]
    recurring = [e for e in expenses if isinstance(e, RecurringExpense)]
    payments = [
        e for e in expenses
        if isinstance(e, OneTimeExpense)
        and e.bill_payment is not None
        and start <= e.date <= end
    ]
    payments, warnings = _drop_dangling_payments(payments, bills)
    lending_out = [
        rec for rec in lending
        if rec.amount > 0 and start <= rec.date <= end
    ]

    totals = SpendingTotals(
        one_time=_total(e.amount for e in one_time),
        recurring=_total(e.amount for e in recurring),
        bills=_total(e.amount for e in payments),
        lending=_total(rec.amount for rec in lending_out),
    )
    totals.total = totals.one_time + totals.recurring + totals.bills + totals.lending

    by_category: dict[str, Decimal] = {}
    for expense in one_time:
        by_category[expense.category] = by_category.get(expense.category, ZERO) + expense.amount
    for expense in recurring:
        by_category[SUBSCRIPTIONS_CATEGORY] = (
            by_category.get(SUBSCRIPTIONS_CATEGORY, ZERO) + expense.amount
        )
    for expense in payments:
        by_category[expense.category] = by_category.get(expense.category, ZERO) + expense.amount
    if totals.lending > 0:
        by_category[LENDING_CATEGORY] = totals.lending

    return SpendingBreakdown(
        start_date=start,
        end_date=end,
        one_time_expenses=one_time,
        recurring_expenses=recurring,
        bill_payments=payments,
        lending_out=lending_out,
        totals=totals,
        by_category=by_category,
        warnings=warnings,
    )


# =============================================================================
# INCOME
# =============================================================================

def get_income_for_period(
    income: Optional[Income],
    additional_income: Iterable,
    lending: Iterable[LendingRecord],
    start_date: DateLike,
    end_date: DateLike,
) -> IncomeBreakdown:
    """
    Income breakdown for [start_date, end_date].

    A missing Income record means salary and savings of 0.
    """
    start, end = _window(start_date, end_date)
    additional_income = list(additional_income)

    base_salary = income.salary if income else ZERO
    savings = income.savings if income else ZERO

    recurring = [i for i in additional_income if isinstance(i, RecurringIncome)]
    one_time = [
        i for i in additional_income
        if isinstance(i, OneTimeIncome) and start <= i.date <= end
    ]
    repayments = [
        rec for rec in lending
        if rec.amount < 0 and start <= rec.date <= end
    ]

    totals = IncomeTotals(
        salary=base_salary,
        recurring=_total(i.amount for i in recurring),
        one_time=_total(i.amount for i in one_time),
        lending_repaid=abs(_total(rec.amount for rec in repayments)),
    )
    totals.total = totals.salary + totals.recurring + totals.one_time + totals.lending_repaid

    return IncomeBreakdown(
        start_date=start,
        end_date=end,
        base_salary=base_salary,
        savings=savings,
        recurring_income=recurring,
        one_time_income=one_time,
        lending_repayments=repayments,
        totals=totals,
    )


def get_monthly_financial_summary(
    expenses: Iterable,
    additional_income: Iterable,
    lending: Iterable[LendingRecord],
    income: Optional[Income],
    start_date: DateLike,
    end_date: DateLike,
    bills: Optional[Iterable[Bill]] = None,
) -> MonthlyFinancialSummary:
    """
    Income against spending for the window.

    remaining = income total - spending total
    net_balance = remaining - savings goal
    """
    lending = list(lending)
    spending = get_spending_for_period(expenses, lending, start_date, end_date, bills)
    earned = get_income_for_period(income, additional_income, lending, start_date, end_date)

    remaining = earned.totals.total - spending.totals.total
    return MonthlyFinancialSummary(
        spending=spending,
        income=earned,
        remaining=remaining,
        net_balance=remaining - earned.savings,
    )


# =============================================================================
# CALENDAR
# =============================================================================

def get_daily_items(
    expenses: Iterable,
    lending: Iterable[LendingRecord],
    on: DateLike,
    bills: Optional[Iterable[Bill]] = None,
) -> list[SpendingItem]:
    """
    Everything spent on one date.

    One-time expenses (bill payments included) dated on the day, recurring
    expenses active on the day, and money lent out on the day.
    """
    day = parse_iso_date(on)
    expenses = list(expenses)

    dated = [e for e in expenses if isinstance(e, OneTimeExpense) and e.date == day]
    plain = [e for e in dated if e.bill_payment is None]
    payments, _ = _drop_dangling_payments(
        [e for e in dated if e.bill_payment is not None],
        bills,
    )

    items: list[SpendingItem] = [OneTimeSpending(expense=e) for e in plain + payments]
    for expense in expenses:
        if isinstance(expense, RecurringExpense) and is_active_on(expense, day):
            items.append(RecurringOccurrence(expense=expense, on=day))
    for record in lending:
        if record.amount > 0 and record.date == day:
            items.append(LendingOut(record=record))
    return items


def get_daily_total(
    expenses: Iterable,
    lending: Iterable[LendingRecord],
    on: DateLike,
    bills: Optional[Iterable[Bill]] = None,
) -> Decimal:
    """Total spent on one date."""
    return _total(item.amount for item in get_daily_items(expenses, lending, on, bills))


def get_week_totals(
    expenses: Iterable,
    lending: Iterable[LendingRecord],
    week_start: DateLike,
    bills: Optional[Iterable[Bill]] = None,
) -> WeekTotals:
    """Daily totals for the 7 days from week_start, each computed on its own."""
    start = parse_iso_date(week_start)
    expenses = list(expenses)
    lending = list(lending)
    bills = list(bills) if bills is not None else None

    days = []
    for day in week_dates(start):
        items = get_daily_items(expenses, lending, day, bills)
        days.append(DayTotal(
            date=day,
            total=_total(item.amount for item in items),
            items=items,
        ))
    return WeekTotals(week_start=start, days=days)
