"""
Deadline and Reminder Calculator

A bill's deadline is deadline_day of the first month of its current
period, clamped to that month's length. A warning surfaces once the
deadline is within the bill's reminder lead (3 days unless the bill says
otherwise) and stays while the bill remains unpaid, overdue included.

Bills without a deadline_day never get a deadline; none is invented.
"""

import math
from datetime import date, datetime, time
from typing import Iterable, Union

from finance_tracker.engine.dates import DateLike, days_in_month, parse_iso_date
from finance_tracker.engine.payments import bill_payments, is_paid_for_period
from finance_tracker.engine.periods import current_period
from finance_tracker.models.records import Bill
from finance_tracker.models.summary import DeadlineWarning


DEFAULT_REMINDER_DAYS = 3

SECONDS_PER_DAY = 24 * 60 * 60


def deadline_date(period_start: DateLike, deadline_day: int) -> date:
    """deadline_day within period_start's month, clamped to the month's length."""
    start = parse_iso_date(period_start)
    day = min(deadline_day, days_in_month(start.year, start.month))
    return start.replace(day=day)


def days_until_deadline(deadline: DateLike, today: Union[date, datetime, str]) -> int:
    """
    Whole days from today until the deadline, rounded up.

    Negative means overdue. A datetime `today` counts the partial day, so
    10:00 the day before a deadline is still 1 day away.
    """
    due = parse_iso_date(deadline)
    if isinstance(today, datetime):
        now = today.astimezone().replace(tzinfo=None) if today.tzinfo else today
        delta = datetime.combine(due, time()) - now
        return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)
    return (due - parse_iso_date(today)).days


def should_warn(days_until: int, reminder_lead_days: int) -> bool:
    """True when the deadline is within the lead window or already passed."""
    return days_until <= reminder_lead_days


def reminder_lead(bill: Bill, default: int = DEFAULT_REMINDER_DAYS) -> int:
    if bill.reminder_days_before is None:
        return default
    return bill.reminder_days_before


def upcoming_deadlines(
    bills: Iterable[Bill],
    expenses: Iterable,
    today: Union[date, datetime, str],
    default_reminder_days: int = DEFAULT_REMINDER_DAYS,
) -> list[DeadlineWarning]:
    """
    Unpaid active bills due soon or overdue, most urgent first.

    Args:
        bills: The owner's bills; inactive ones and ones without a
            deadline day are skipped
        expenses: The owner's expenses (bill payments are picked out)
        today: Reference date for the current period
        default_reminder_days: Lead used by bills without their own

    Returns:
        Warnings sorted ascending by days_until_deadline
    """
    payments = bill_payments(expenses)
    warnings = []

    for bill in bills:
        if not bill.is_active or bill.deadline_day is None:
            continue

        period = current_period(bill.frequency, today)
        own_payments = [p for p in payments if p.bill_payment.bill_id == bill.id]
        if is_paid_for_period(own_payments, period.start, period.end):
            continue

        due = deadline_date(period.start, bill.deadline_day)
        days_left = days_until_deadline(due, today)

        if should_warn(days_left, reminder_lead(bill, default_reminder_days)):
            warnings.append(DeadlineWarning(
                bill=bill,
                period=period,
                deadline_date=due,
                days_until_deadline=days_left,
            ))

    warnings.sort(key=lambda w: w.days_until_deadline)
    return warnings
