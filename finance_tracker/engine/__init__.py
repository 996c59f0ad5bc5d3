"""
Calculation Engine Package

Pure, synchronous functions over stored records: calendar arithmetic,
billing periods, recurring occurrences, payment matching, deadlines and
period aggregation. Nothing here performs I/O or keeps state.
"""

from finance_tracker.engine.aggregator import (
    get_daily_items,
    get_daily_total,
    get_income_for_period,
    get_monthly_financial_summary,
    get_spending_for_period,
    get_week_totals,
    records_in_window,
)
from finance_tracker.engine.dates import (
    add_days,
    add_months,
    format_iso_date,
    month_end,
    month_range,
    month_start,
    parse_iso_date,
    week_dates,
    week_start,
)
from finance_tracker.engine.deadlines import (
    DEFAULT_REMINDER_DAYS,
    days_until_deadline,
    deadline_date,
    should_warn,
    upcoming_deadlines,
)
from finance_tracker.engine.errors import (
    FinanceTrackerError,
    InvalidDateError,
    InvalidFrequencyError,
)
from finance_tracker.engine.lending import person_balances, person_summaries
from finance_tracker.engine.occurrences import (
    active_definitions_on,
    is_active_on,
    occurrences_between,
)
from finance_tracker.engine.payments import (
    bills_with_status,
    is_paid_for_period,
    latest_two,
    payment_trend,
    payments_for_bill,
    trend,
)
from finance_tracker.engine.periods import (
    current_period,
    format_period_label,
    is_canonical_period,
)

__all__ = [
    # Aggregation
    "get_daily_items",
    "get_daily_total",
    "get_income_for_period",
    "get_monthly_financial_summary",
    "get_spending_for_period",
    "get_week_totals",
    "records_in_window",
    # Dates
    "add_days",
    "add_months",
    "format_iso_date",
    "month_end",
    "month_range",
    "month_start",
    "parse_iso_date",
    "week_dates",
    "week_start",
    # Deadlines
    "DEFAULT_REMINDER_DAYS",
    "days_until_deadline",
    "deadline_date",
    "should_warn",
    "upcoming_deadlines",
    # Errors
    "FinanceTrackerError",
    "InvalidDateError",
    "InvalidFrequencyError",
    # Lending
    "person_balances",
    "person_summaries",
    # Occurrences
    "active_definitions_on",
    "is_active_on",
    "occurrences_between",
    # Payments
    "bills_with_status",
    "is_paid_for_period",
    "latest_two",
    "payment_trend",
    "payments_for_bill",
    "trend",
    # Periods
    "current_period",
    "format_period_label",
    "is_canonical_period",
]
