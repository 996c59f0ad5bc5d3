"""
Billing Period Calculator

Maps a bill frequency and a reference date to the canonical billing
period containing that date. Periods follow calendar boundaries:

    monthly    - the reference month
    bimonthly  - fixed pairs Jan-Feb, Mar-Apr, May-Jun, Jul-Aug, Sep-Oct, Nov-Dec
    quarterly  - Q1..Q4
    yearly     - Jan 1 to Dec 31

Because periods are canonical, two payments for "the same period" always
carry identical start/end dates and can be matched by equality.
"""

from datetime import date
from typing import Union

from finance_tracker.engine.dates import DateLike, days_in_month, parse_iso_date
from finance_tracker.engine.errors import InvalidFrequencyError
from finance_tracker.models.records import BillFrequency
from finance_tracker.models.summary import BillingPeriod


def coerce_frequency(frequency: Union[BillFrequency, str]) -> BillFrequency:
    """
    Resolve a frequency literal.

    Raises:
        InvalidFrequencyError: For anything outside the four supported values
    """
    if isinstance(frequency, BillFrequency):
        return frequency
    try:
        return BillFrequency(frequency)
    except ValueError:
        raise InvalidFrequencyError(frequency) from None


def _span(year: int, first_month: int, months: int) -> tuple[date, date]:
    """First day of first_month to the last day of the months-th month."""
    last_month = first_month + months - 1
    return (
        date(year, first_month, 1),
        date(year, last_month, days_in_month(year, last_month)),
    )


def current_period(
    frequency: Union[BillFrequency, str],
    reference_date: DateLike,
) -> BillingPeriod:
    """
    Billing period of the given frequency that contains reference_date.

    Raises:
        InvalidFrequencyError: If the frequency is not supported. No default
            period is ever guessed.
        InvalidDateError: If reference_date is malformed
    """
    freq = coerce_frequency(frequency)
    ref = parse_iso_date(reference_date)
    year = ref.year
    # Zero-based month index keeps the pair/quarter arithmetic simple
    month_index = ref.month - 1

    if freq is BillFrequency.MONTHLY:
        start, end = _span(year, ref.month, 1)
        label = start.strftime("%B %Y")
    elif freq is BillFrequency.BIMONTHLY:
        pair_start = (month_index // 2) * 2 + 1
        start, end = _span(year, pair_start, 2)
        label = f"{start.strftime('%b')}-{end.strftime('%b')} {year}"
    elif freq is BillFrequency.QUARTERLY:
        quarter = month_index // 3
        start, end = _span(year, quarter * 3 + 1, 3)
        label = f"Q{quarter + 1} {year}"
    elif freq is BillFrequency.YEARLY:
        start, end = _span(year, 1, 12)
        label = str(year)
    else:
        raise InvalidFrequencyError(frequency)

    return BillingPeriod(frequency=freq, start=start, end=end, label=label)


def format_period_label(
    frequency: Union[BillFrequency, str],
    period_start: DateLike,
) -> str:
    """Display label for the period starting at period_start."""
    return current_period(frequency, period_start).label


def is_canonical_period(
    frequency: Union[BillFrequency, str],
    period_start: DateLike,
    period_end: DateLike,
) -> bool:
    """True if (period_start, period_end) is exactly one period of this frequency."""
    start = parse_iso_date(period_start)
    period = current_period(frequency, start)
    return period.start == start and period.end == parse_iso_date(period_end)

