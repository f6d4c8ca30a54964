"""Deterministic pseudo-random scoring for "random occurrence" events.

The score is a linear-congruential mix evaluated in IEEE double precision and
truncated to 32 bits between rounds, so the same ``(seed, year, day)`` gives
the same score in any process and in any implementation using the same
arithmetic.
"""

from __future__ import annotations

import logging

from almanac.domain.calendar import CalendarAdapter
from almanac.domain.models import CheckInterval, Date, RandomConfig, RecurrenceDescriptor
from almanac.services.dates import (
    add_days,
    compare_days,
    day_of_week,
    day_of_year,
    earlier_day,
)

logger = logging.getLogger(__name__)

_MULTIPLIER = 1103515245
_INCREMENT = 12345
_YEAR_SALT = 31337
_DAY_SALT = 7919
_MODULUS = 0x7FFFFFFF
_UINT32 = 0x100000000


def _uint32(value: float | int) -> int:
    return int(value) % _UINT32


def score(seed: int, year: int, day_of_year: int) -> float:
    """Return a reproducible score in ``[0, 100)``."""
    mixed = abs(seed) or 1
    mixed = _uint32(float(mixed) * _MULTIPLIER + _INCREMENT) % _MODULUS
    mixed = _uint32(mixed + year * _YEAR_SALT) % _MODULUS
    mixed = _uint32(float(mixed) * _MULTIPLIER + day_of_year * _DAY_SALT) % _MODULUS
    return (mixed % 10000) / 100


def matches_random(
    calendar: CalendarAdapter, config: RandomConfig, target: Date, start_date: Date
) -> bool:
    if config.probability <= 0:
        return False
    if config.probability >= 100:
        return True

    if config.check_interval is CheckInterval.WEEKLY:
        if day_of_week(calendar, start_date) != day_of_week(calendar, target):
            return False
    elif config.check_interval is CheckInterval.MONTHLY:
        if start_date.day != target.day:
            return False

    value = score(config.seed, target.year, day_of_year(calendar, target))
    return value < config.probability


# ---------------------------------------------------------------------------
# Precomputed occurrence cache
# ---------------------------------------------------------------------------


def year_end(calendar: CalendarAdapter, year: int) -> Date:
    last_month = calendar.months_per_year() - 1
    return Date(
        year=year, month=last_month, day=calendar.days_in_month(last_month, year)
    )


def in_final_week(calendar: CalendarAdapter, today: Date) -> bool:
    """True when ``today`` falls in the last week of its year."""
    last_month = calendar.months_per_year() - 1
    if today.month != last_month:
        return False
    remaining = calendar.days_in_month(last_month, today.year) - today.day
    return remaining < calendar.week_length()


def generate_random_occurrences(
    calendar: CalendarAdapter,
    descriptor: RecurrenceDescriptor,
    target_year: int,
    *,
    limit: int = 500,
    max_iterations: int = 50_000,
) -> list[Date]:
    """Precompute random occurrences from the start date to the end of ``target_year``.

    Stops early at ``repeat_end_date``, after ``limit`` occurrences or after
    ``max_iterations`` days, whichever comes first.
    """
    config = descriptor.random_config
    if config is None or config.probability <= 0:
        return []
    start = descriptor.start_date
    if start.year > target_year:
        return []

    last = year_end(calendar, target_year)
    if descriptor.repeat_end_date is not None:
        last = earlier_day(last, descriptor.repeat_end_date)

    found: list[Date] = []
    current = Date(year=start.year, month=start.month, day=start.day)
    for _ in range(max_iterations):
        if compare_days(current, last) > 0:
            break
        if matches_random(calendar, config, current, start):
            found.append(current)
            if len(found) >= limit:
                logger.debug("Random cache hit its limit of %d dates", limit)
                break
        current = add_days(calendar, current, 1)
    else:
        logger.debug("Random cache stopped after %d days", max_iterations)
    return found


def needs_random_regeneration(
    calendar: CalendarAdapter, cached_year: int | None, today: Date
) -> bool:
    """Return True when a cache built through ``cached_year`` is stale for ``today``."""
    if cached_year is None:
        return True
    if cached_year < today.year:
        return True
    if in_final_week(calendar, today):
        return cached_year <= today.year
    return False


def cache_target_year(calendar: CalendarAdapter, today: Date) -> int:
    """Year a fresh cache should cover: next year once the current one is ending."""
    return today.year + 1 if in_final_week(calendar, today) else today.year
