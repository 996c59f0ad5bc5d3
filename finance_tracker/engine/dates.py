"""
Calendar and Date Utilities

Pure date arithmetic used by every other engine module: week and month
boundaries, overflow-safe month addition and ISO formatting.

Dates cross the package boundary as ISO "YYYY-MM-DD" strings.
parse_iso_date() is the single place where they are turned into date
objects, and it fails loudly on anything malformed.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Union

from finance_tracker.engine.errors import InvalidDateError


DateLike = Union[date, datetime, str]


def to_local_date(value: Union[date, datetime]) -> date:
    """
    Calendar date of a date or datetime in local time.

    Timezone-aware datetimes are converted to the local zone first;
    naive ones are taken as already local.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def parse_iso_date(value: DateLike) -> date:
    """
    Turn a boundary value into a date.

    Accepts date, datetime (reduced to its local calendar date) or an
    ISO "YYYY-MM-DD" string.

    Raises:
        InvalidDateError: If the value cannot be interpreted as a date
    """
    if isinstance(value, (date, datetime)):
        return to_local_date(value)
    if not isinstance(value, str):
        raise InvalidDateError(
            f"Expected an ISO date string, got {type(value).__name__}"
        )
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise InvalidDateError(
            f"Invalid date {value!r}: expected YYYY-MM-DD"
        ) from None


def format_iso_date(value: Union[date, datetime]) -> str:
    """Format as YYYY-MM-DD using local time."""
    return to_local_date(value).isoformat()


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def week_start(value: Union[date, datetime]) -> date:
    """
    Monday of the week containing the date.

    Sunday belongs to the week that started the previous Monday.
    """
    day = to_local_date(value)
    return day - timedelta(days=day.weekday())


def week_dates(start: date) -> list[date]:
    """The 7 consecutive dates starting at start."""
    return [start + timedelta(days=i) for i in range(7)]


def month_start(value: Union[date, datetime]) -> date:
    day = to_local_date(value)
    return day.replace(day=1)


def month_end(value: Union[date, datetime]) -> date:
    day = to_local_date(value)
    return day.replace(day=days_in_month(day.year, day.month))


def month_range(value: Union[date, datetime]) -> tuple[str, str]:
    """ISO start and end of the month containing the date."""
    return (
        format_iso_date(month_start(value)),
        format_iso_date(month_end(value)),
    )


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def add_months(value: date, months: int) -> date:
    """
    Add calendar months, clamping the day to the target month's length.

    Jan 31 + 1 month is Feb 28 (Feb 29 in leap years).
    """
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(value.day, days_in_month(year, month))
    return value.replace(year=year, month=month, day=day)


def is_same_day(first: Union[date, datetime], second: Union[date, datetime]) -> bool:
    return to_local_date(first) == to_local_date(second)
