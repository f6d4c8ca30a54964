"""Calendar-agnostic date comparison and arithmetic.

Every month length, week length and day count is obtained from the calendar
adapter; nothing here knows how long a month is.
"""

from __future__ import annotations

from almanac.domain.calendar import CalendarAdapter, TimeComponents
from almanac.domain.models import Date


def compare_days(a: Date, b: Date) -> int:
    """Compare by (year, month, day), ignoring time of day."""
    ka, kb = a.day_key(), b.day_key()
    return (ka > kb) - (ka < kb)


def is_same_day(a: Date, b: Date) -> bool:
    return a.day_key() == b.day_key()


def later_day(a: Date, b: Date) -> Date:
    return a if compare_days(a, b) >= 0 else b


def earlier_day(a: Date, b: Date) -> Date:
    return a if compare_days(a, b) <= 0 else b


def _day_start(value: Date) -> TimeComponents:
    return TimeComponents(year=value.year, month=value.month, day=value.day)


def days_between(calendar: CalendarAdapter, a: Date, b: Date) -> int:
    """Signed number of whole days from ``a`` to ``b``.

    Both dates are taken at the start of their day so a time of day never
    shortens the count.
    """
    delta = calendar.date_to_seconds(_day_start(b)) - calendar.date_to_seconds(
        _day_start(a)
    )
    return delta // calendar.seconds_per_day()


def months_between(calendar: CalendarAdapter, a: Date, b: Date) -> int:
    return (b.year - a.year) * calendar.months_per_year() + (b.month - a.month)


def day_of_week(calendar: CalendarAdapter, value: Date) -> int:
    seconds = calendar.date_to_seconds(_day_start(value))
    return calendar.seconds_to_components(seconds).day_of_week or 0


def day_of_year(calendar: CalendarAdapter, value: Date) -> int:
    """1-based position of ``value`` within its year."""
    return (
        sum(calendar.days_in_month(m, value.year) for m in range(value.month))
        + value.day
    )


def add_days(calendar: CalendarAdapter, value: Date, days: int) -> Date:
    seconds = calendar.date_to_seconds(_day_start(value))
    shifted = calendar.seconds_to_components(seconds + days * calendar.seconds_per_day())
    return Date(
        year=shifted.year,
        month=shifted.month,
        day=shifted.day,
        hour=value.hour,
        minute=value.minute,
    )


def add_months(calendar: CalendarAdapter, value: Date, months: int) -> Date:
    """Shift by whole months, clamping the day to the target month's length."""
    per_year = calendar.months_per_year()
    years, month = divmod(value.month + months, per_year)
    year = value.year + years
    day = min(value.day, calendar.days_in_month(month, year))
    return value.model_copy(update={"year": year, "month": month, "day": day})


def add_years(calendar: CalendarAdapter, value: Date, years: int) -> Date:
    year = value.year + years
    day = min(value.day, calendar.days_in_month(value.month, year))
    return value.model_copy(update={"year": year, "day": day})


def is_valid_date(calendar: CalendarAdapter, value: Date) -> bool:
    """True when ``value`` names a real day and time of day on ``calendar``."""
    if not 0 <= value.month < calendar.months_per_year():
        return False
    components = TimeComponents.from_date(value)
    try:
        if value.day > calendar.days_in_month(value.month, value.year):
            return False
        back = calendar.seconds_to_components(calendar.date_to_seconds(components))
    except ValueError:
        return False
    return (back.year, back.month, back.day, back.hour, back.minute) == (
        components.year,
        components.month,
        components.day,
        components.hour,
        components.minute,
    )
