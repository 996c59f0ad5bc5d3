"""
Bill Payment Matcher

Bill payments are one-time expenses carrying a BillPaymentLink. This
module finds them, decides whether a bill is paid for a period and
computes the trend between a bill's two latest payments.

Period matching is exact: the stored period bounds must equal the queried
bounds. Periods are canonical (see periods.py), so nothing is fuzzy-matched.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional
from uuid import UUID

from finance_tracker.engine.dates import DateLike, parse_iso_date
from finance_tracker.engine.periods import current_period
from finance_tracker.models.records import Bill, OneTimeExpense
from finance_tracker.models.summary import BillWithStatus, PaymentTrend


def bill_payments(expenses: Iterable) -> list[OneTimeExpense]:
    """The expenses that are bill payments."""
    return [
        e for e in expenses
        if isinstance(e, OneTimeExpense) and e.bill_payment is not None
    ]


def payments_for_bill(expenses: Iterable, bill_id: UUID) -> list[OneTimeExpense]:
    return [p for p in bill_payments(expenses) if p.bill_payment.bill_id == bill_id]


def find_payment_for_period(
    payments: Iterable[OneTimeExpense],
    period_start: DateLike,
    period_end: DateLike,
) -> Optional[OneTimeExpense]:
    """The payment covering exactly [period_start, period_end], if any."""
    start = parse_iso_date(period_start)
    end = parse_iso_date(period_end)
    for payment in bill_payments(payments):
        link = payment.bill_payment
        if link.period_start == start and link.period_end == end:
            return payment
    return None


def is_paid_for_period(
    payments: Iterable[OneTimeExpense],
    period_start: DateLike,
    period_end: DateLike,
) -> bool:
    """True iff any payment's period bounds equal the queried period."""
    return find_payment_for_period(payments, period_start, period_end) is not None


def sort_newest_first(payments: Iterable[OneTimeExpense]) -> list[OneTimeExpense]:
    """Payments ordered by period start, most recent first."""
    return sorted(
        bill_payments(payments),
        key=lambda p: p.bill_payment.period_start,
        reverse=True,
    )


def latest_two(
    payments: Iterable[OneTimeExpense],
) -> tuple[Optional[OneTimeExpense], Optional[OneTimeExpense]]:
    """(latest, previous) by period start; either may be None."""
    ordered = sort_newest_first(payments)
    latest = ordered[0] if ordered else None
    previous = ordered[1] if len(ordered) > 1 else None
    return latest, previous


def trend(
    latest: Optional[OneTimeExpense],
    previous: Optional[OneTimeExpense],
) -> Optional[PaymentTrend]:
    """
    Direction and size of the change from previous to latest.

    Returns None unless both payments exist. A zero previous amount never
    raises: two zeros are "same" at 0%, otherwise the direction is kept
    and the percentage is None.
    """
    if latest is None or previous is None:
        return None

    diff = latest.amount - previous.amount
    if diff > 0:
        direction = "up"
    elif diff < 0:
        direction = "down"
    else:
        direction = "same"

    if previous.amount == 0:
        return PaymentTrend(
            direction=direction,
            percentage=0 if direction == "same" else None,
        )

    ratio = abs(diff) / previous.amount * 100
    percentage = int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return PaymentTrend(direction=direction, percentage=percentage)


def payment_trend(payments: Iterable[OneTimeExpense]) -> Optional[PaymentTrend]:
    """Trend between the two most recent payments of one bill."""
    return trend(*latest_two(payments))


def bills_with_status(
    bills: Iterable[Bill],
    expenses: Iterable,
    today: DateLike,
) -> list[BillWithStatus]:
    """
    Each bill with its current period, paid flag, payment history and trend.

    Payments referencing bills not in `bills` are ignored here.
    """
    reference = parse_iso_date(today)
    by_bill: dict[UUID, list[OneTimeExpense]] = {}
    for payment in bill_payments(expenses):
        by_bill.setdefault(payment.bill_payment.bill_id, []).append(payment)

    result = []
    for bill in bills:
        payments = sort_newest_first(by_bill.get(bill.id, []))
        period = current_period(bill.frequency, reference)
        result.append(BillWithStatus(
            bill=bill,
            period=period,
            is_paid=is_paid_for_period(payments, period.start, period.end),
            payments=payments,
            trend=payment_trend(payments),
        ))
    return result
