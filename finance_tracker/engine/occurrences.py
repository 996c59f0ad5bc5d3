"""
Recurring-Occurrence Resolver

Decides whether a recurring expense or recurring income "occurs" on a
calendar date. A definition is active on a date when either rule holds:

1. First occurrence: the date is the day the definition was created,
   whatever its day_of_month. Users see it immediately.
2. Recurring day: the date's day equals day_of_month and the date is not
   before the definition started:
     - any month after the creation month counts;
     - in the creation month it counts only if the creation day is on or
       before day_of_month and the date is on or after the creation date.

A definition is never active before its creation date and never twice on
the same date. When created on day_of_month itself, the creation month has
exactly one occurrence. When created earlier in the month, that month has
two: the creation day and day_of_month. Dates whose day does not exist in
a month (day_of_month=31 in April) simply never match.

Each (definition, date) pair is evaluated independently.
"""

from datetime import date
from typing import Iterable, TypeVar, Union

from finance_tracker.engine.dates import DateLike, parse_iso_date, to_local_date
from finance_tracker.models.records import RecurringExpense, RecurringIncome


RecurringDefinition = Union[RecurringExpense, RecurringIncome]
D = TypeVar("D", RecurringExpense, RecurringIncome)


def is_active_on(definition: RecurringDefinition, target_date: DateLike) -> bool:
    """True if the recurring definition produces an occurrence on target_date."""
    target = parse_iso_date(target_date)
    created = to_local_date(definition.created_at)

    if target == created:
        return True

    if target.day != definition.day_of_month:
        return False

    target_month = (target.year, target.month)
    created_month = (created.year, created.month)

    if target_month > created_month:
        return True
    if target_month == created_month:
        return created.day <= definition.day_of_month and target >= created
    return False


def active_definitions_on(definitions: Iterable[D], target_date: DateLike) -> list[D]:
    """The definitions active on target_date, in input order."""
    target = parse_iso_date(target_date)
    return [d for d in definitions if is_active_on(d, target)]


def occurrences_between(
    definition: RecurringDefinition,
    start_date: DateLike,
    end_date: DateLike,
) -> list[date]:
    """Every date in [start_date, end_date] on which the definition is active."""
    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date)
    return [
        date.fromordinal(ordinal)
        for ordinal in range(start.toordinal(), end.toordinal() + 1)
        if is_active_on(definition, date.fromordinal(ordinal))
    ]
