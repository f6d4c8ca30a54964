"""Recurrence evaluation: does an event occur on a date, and on which dates.

``RecurrenceEngine`` is the single entry point.  It answers three questions
for a :class:`RecurrenceDescriptor`:

* ``occurs_on``: the single-date decision procedure,
* ``occurrences_in_range``: bounded enumeration over a date range,
* ``ordinal_up_to``: the 1-based occurrence count used by ``max_occurrences``.

Enumeration is defined as "every day in the range for which ``occurs_on``
holds, truncated to the cap".  Daily, weekly, monthly and yearly rules skip
straight between stride points instead of testing every day, but every
candidate still goes through ``occurs_on`` so both routes agree.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterator
from enum import Enum
from typing import assert_never

from almanac.config import EngineSettings
from almanac.domain.calendar import CalendarAdapter, TimeComponents
from almanac.domain.models import Date, MoonCondition, RecurrenceDescriptor, RepeatKind
from almanac.services import linked
from almanac.services.dates import (
    add_days,
    add_months,
    add_years,
    compare_days,
    day_of_week,
    days_between,
    is_same_day,
    later_day,
    months_between,
)
from almanac.services.ranges import matches_range_pattern
from almanac.services.seeded import matches_random

logger = logging.getLogger(__name__)

# Adapters signal impossible components with ValueError (CalendarError) or a
# lookup failure.
_ADAPTER_ERRORS = (ValueError, IndexError, KeyError)

_STRIDE_KINDS = frozenset(
    {RepeatKind.DAILY, RepeatKind.WEEKLY, RepeatKind.MONTHLY, RepeatKind.YEARLY}
)


class _Match(Enum):
    MISS = "miss"
    # Matched, still subject to the max_occurrences gate.
    HIT = "hit"
    # Matched unconditionally (the start date itself, or a day of the
    # initial multi-day span).
    FIXED = "fixed"


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


class RecurrenceEngine:
    """Evaluate recurrence descriptors against a calendar.

    ``store`` is only needed for linked events.  A missing ``calendar`` makes
    every query answer "never".
    """

    def __init__(
        self,
        calendar: CalendarAdapter | None,
        store: linked.DescriptorSource | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        self.calendar = calendar
        self.store = store
        self.settings = settings or EngineSettings()

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    def occurs_on(
        self,
        descriptor: RecurrenceDescriptor,
        target: Date,
        *,
        trail: tuple[str, ...] = (),
    ) -> bool:
        if self.calendar is None:
            logger.debug("No calendar configured; %s never matches", target)
            return False
        try:
            if descriptor.linked_event is not None:
                return linked.occurs_on(self, descriptor, target, trail)
            match = self._match(descriptor, target)
            if match is _Match.HIT:
                return self._within_limit(descriptor, target, trail)
            return match is _Match.FIXED
        except _ADAPTER_ERRORS as exc:
            logger.warning("Calendar rejected %s: %s", target, exc)
            return False

    def occurrences_in_range(
        self,
        descriptor: RecurrenceDescriptor,
        range_start: Date,
        range_end: Date,
        cap: int | None = None,
        *,
        trail: tuple[str, ...] = (),
    ) -> list[Date]:
        if self.calendar is None:
            logger.debug("No calendar configured; no occurrences")
            return []
        if cap is None:
            cap = self.settings.default_cap
        if cap <= 0 or compare_days(range_start, range_end) > 0:
            return []
        try:
            return self._enumerate(descriptor, range_start, range_end, cap, trail)
        except _ADAPTER_ERRORS as exc:
            logger.warning(
                "Calendar rejected range %s..%s: %s", range_start, range_end, exc
            )
            return []

    def ordinal_up_to(
        self,
        descriptor: RecurrenceDescriptor,
        target: Date,
        *,
        trail: tuple[str, ...] = (),
    ) -> int:
        """Return how many occurrences fall on or before ``target``.

        The start date counts as occurrence 1.  Stride kinds use closed-form
        arithmetic; everything else is counted by enumeration.
        """
        if self.calendar is None:
            return 0
        try:
            return self._ordinal(descriptor, target, trail)
        except _ADAPTER_ERRORS as exc:
            logger.warning("Calendar rejected %s: %s", target, exc)
            return 0

    # ------------------------------------------------------------------
    # Single-date evaluation
    # ------------------------------------------------------------------

    def _match(self, descriptor: RecurrenceDescriptor, target: Date) -> _Match:
        """Evaluate ``target`` without the occurrence-limit gate."""
        kind = descriptor.repeat
        start = descriptor.start_date

        if kind is RepeatKind.RANDOM:
            if descriptor.random_config is None:
                return _Match.MISS
            if not linked.within_bounds(descriptor, target):
                return _Match.MISS
            if descriptor.cached_random_occurrences:
                hit = any(
                    is_same_day(cached, target)
                    for cached in descriptor.cached_random_occurrences
                )
            else:
                hit = matches_random(
                    self.calendar, descriptor.random_config, target, start
                )
            return _Match.HIT if hit else _Match.MISS

        if kind is RepeatKind.MOON:
            if not descriptor.moon_conditions:
                return _Match.MISS
            if not linked.within_bounds(descriptor, target):
                return _Match.MISS
            if self._matches_moon(descriptor.moon_conditions, target):
                return _Match.HIT
            return _Match.MISS

        if descriptor.moon_conditions and not self._matches_moon(
            descriptor.moon_conditions, target
        ):
            return _Match.MISS

        if kind is RepeatKind.NEVER:
            return _Match.FIXED if is_same_day(start, target) else _Match.MISS

        if not linked.within_bounds(descriptor, target):
            return _Match.MISS

        if descriptor.spans_days() and compare_days(target, descriptor.end_date) <= 0:
            return _Match.FIXED

        interval = descriptor.repeat_interval
        if kind is RepeatKind.DAILY:
            delta = days_between(self.calendar, start, target)
            hit = delta >= 0 and delta % interval == 0
        elif kind is RepeatKind.WEEKLY:
            hit = self._matches_weekly(start, target, interval)
        elif kind is RepeatKind.MONTHLY:
            delta = months_between(self.calendar, start, target)
            hit = (
                delta >= 0
                and delta % interval == 0
                and target.day == self._clamped_day(start, target)
            )
        elif kind is RepeatKind.YEARLY:
            delta = target.year - start.year
            hit = (
                delta >= 0
                and delta % interval == 0
                and target.month == start.month
                and target.day == self._clamped_day(start, target)
            )
        elif kind is RepeatKind.RANGE:
            hit = descriptor.range_pattern is not None and matches_range_pattern(
                descriptor.range_pattern, target
            )
        else:
            assert_never(kind)
        return _Match.HIT if hit else _Match.MISS

    def _matches_weekly(self, start: Date, target: Date, interval: int) -> bool:
        delta = days_between(self.calendar, start, target)
        if delta < 0:
            return False
        if day_of_week(self.calendar, start) != day_of_week(self.calendar, target):
            return False
        weeks = delta // self.calendar.week_length()
        return weeks % interval == 0

    def _clamped_day(self, start: Date, target: Date) -> int:
        return min(start.day, self.calendar.days_in_month(target.month, target.year))

    def _matches_moon(self, conditions: list[MoonCondition], target: Date) -> bool:
        day_start = TimeComponents(year=target.year, month=target.month, day=target.day)
        midday = (
            self.calendar.date_to_seconds(day_start)
            + self.calendar.seconds_per_day() // 2
        )
        components = self.calendar.seconds_to_components(midday)
        for condition in conditions:
            phase = self.calendar.moon_phase(condition.moon_index, components)
            if phase is None:
                continue
            if condition.contains(phase.position):
                return True
        return False

    def _within_limit(
        self,
        descriptor: RecurrenceDescriptor,
        target: Date,
        trail: tuple[str, ...],
    ) -> bool:
        limit = descriptor.max_occurrences
        if limit <= 0:
            return True
        return self._ordinal(descriptor, target, trail) <= limit

    # ------------------------------------------------------------------
    # Occurrence counting
    # ------------------------------------------------------------------

    def _ordinal(
        self,
        descriptor: RecurrenceDescriptor,
        target: Date,
        trail: tuple[str, ...],
    ) -> int:
        start = descriptor.start_date
        interval = descriptor.repeat_interval
        kind = descriptor.repeat

        if compare_days(target, start) < 0:
            return 0
        if descriptor.linked_event is None:
            if kind is RepeatKind.DAILY:
                return days_between(self.calendar, start, target) // interval + 1
            if kind is RepeatKind.WEEKLY:
                weeks = (
                    days_between(self.calendar, start, target)
                    // self.calendar.week_length()
                )
                return weeks // interval + 1
            if kind is RepeatKind.MONTHLY:
                return months_between(self.calendar, start, target) // interval + 1
            if kind is RepeatKind.YEARLY:
                return (target.year - start.year) // interval + 1
            if kind is RepeatKind.RANDOM and descriptor.random_config is None:
                return 0
            if kind is RepeatKind.RANDOM and descriptor.cached_random_occurrences:
                return sum(
                    1
                    for cached in _cached_days(descriptor)
                    if compare_days(cached, target) <= 0
                )

        unlimited = descriptor.model_copy(update={"max_occurrences": 0})
        counted = self._enumerate(
            unlimited, start, target, self.settings.count_ceiling, trail
        )
        return len(counted)

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def _enumerate(
        self,
        descriptor: RecurrenceDescriptor,
        range_start: Date,
        range_end: Date,
        cap: int,
        trail: tuple[str, ...],
    ) -> list[Date]:
        if descriptor.linked_event is not None:
            return linked.occurrences_in_range(
                self, descriptor, range_start, range_end, cap, trail
            )

        kind = descriptor.repeat
        start = descriptor.start_date

        if kind is RepeatKind.NEVER:
            in_range = (
                compare_days(start, range_start) >= 0
                and compare_days(start, range_end) <= 0
            )
            if in_range and self._match(descriptor, start) is not _Match.MISS:
                return [start]
            return []

        if kind is RepeatKind.RANDOM:
            if descriptor.random_config is None:
                return []
            if descriptor.cached_random_occurrences:
                return self._from_cache(descriptor, range_start, range_end, cap)

        if kind in _STRIDE_KINDS:
            return self._stride(descriptor, range_start, range_end, cap, trail)

        ceiling = (
            self.settings.random_iteration_ceiling
            if kind is RepeatKind.RANDOM
            else self.settings.iteration_ceiling
        )
        return self._scan(descriptor, range_start, range_end, cap, ceiling)

    def _from_cache(
        self,
        descriptor: RecurrenceDescriptor,
        range_start: Date,
        range_end: Date,
        cap: int,
    ) -> list[Date]:
        cached = _cached_days(descriptor)
        if descriptor.max_occurrences > 0:
            cached = cached[: descriptor.max_occurrences]
        occurrences = []
        for day in cached:
            if compare_days(day, range_start) < 0 or compare_days(day, range_end) > 0:
                continue
            if not linked.within_bounds(descriptor, day):
                continue
            occurrences.append(day.with_time_of(descriptor.start_date))
            if len(occurrences) >= cap:
                break
        return occurrences

    def _scan(
        self,
        descriptor: RecurrenceDescriptor,
        range_start: Date,
        range_end: Date,
        cap: int,
        ceiling: int,
    ) -> list[Date]:
        """Test every day from the later of start date and range start.

        With an occurrence limit the walk begins at the start date instead
        and keeps a running count, which is what the ordinal of each day
        would be.
        """
        limit = descriptor.max_occurrences
        start = descriptor.start_date
        current = start if limit > 0 else later_day(start, range_start)
        current = Date(year=current.year, month=current.month, day=current.day)

        occurrences: list[Date] = []
        seen = 0
        for _ in range(ceiling):
            if compare_days(current, range_end) > 0:
                break
            match = self._match(descriptor, current)
            if match is not _Match.MISS:
                seen += 1
                permitted = limit <= 0 or match is _Match.FIXED or seen <= limit
                if permitted and compare_days(current, range_start) >= 0:
                    occurrences.append(current.with_time_of(start))
                    if len(occurrences) >= cap:
                        break
            if limit > 0 and seen >= limit and not self._may_span(descriptor, current):
                break
            current = add_days(self.calendar, current, 1)
        else:
            logger.debug(
                "Stopped %s scan after %d days at %s", descriptor.repeat, ceiling, current
            )
        return occurrences

    @staticmethod
    def _may_span(descriptor: RecurrenceDescriptor, current: Date) -> bool:
        """True while later days could still fall inside the initial span."""
        return descriptor.spans_days() and compare_days(current, descriptor.end_date) < 0

    def _stride(
        self,
        descriptor: RecurrenceDescriptor,
        range_start: Date,
        range_end: Date,
        cap: int,
        trail: tuple[str, ...],
    ) -> list[Date]:
        first = later_day(descriptor.start_date, range_start)
        candidates = heapq.merge(
            self._span_days(descriptor, first, range_end),
            self._stride_points(descriptor, first, range_end),
            key=Date.day_key,
        )

        occurrences: list[Date] = []
        previous = None
        for candidate in candidates:
            key = candidate.day_key()
            if key == previous:
                continue
            previous = key
            if self.occurs_on(descriptor, candidate, trail=trail):
                occurrences.append(candidate.with_time_of(descriptor.start_date))
                if len(occurrences) >= cap:
                    break
        return occurrences

    def _span_days(
        self, descriptor: RecurrenceDescriptor, first: Date, last: Date
    ) -> Iterator[Date]:
        if not descriptor.spans_days():
            return
        if compare_days(descriptor.end_date, last) < 0:
            last = descriptor.end_date
        current = first
        for _ in range(self.settings.iteration_ceiling):
            if compare_days(current, last) > 0:
                return
            yield current
            current = add_days(self.calendar, current, 1)

    def _stride_points(
        self, descriptor: RecurrenceDescriptor, first: Date, last: Date
    ) -> Iterator[Date]:
        """Yield the rule's stride points between ``first`` and ``last``.

        Point ``k`` is computed from the start date directly (never from the
        previous point) so month-end clamping cannot drift, and its ordinal
        is ``k + 1``.
        """
        calendar = self.calendar
        start = descriptor.start_date
        interval = descriptor.repeat_interval
        kind = descriptor.repeat

        if kind is RepeatKind.DAILY or kind is RepeatKind.WEEKLY:
            step = interval
            if kind is RepeatKind.WEEKLY:
                step *= calendar.week_length()
            k = _ceil_div(days_between(calendar, start, first), step)

            def point(n: int) -> Date:
                return add_days(calendar, start, n * step)

        elif kind is RepeatKind.MONTHLY:
            k = _ceil_div(months_between(calendar, start, first), interval)

            def point(n: int) -> Date:
                return add_months(calendar, start, n * interval)

        else:
            k = _ceil_div(first.year - start.year, interval)

            def point(n: int) -> Date:
                return add_years(calendar, start, n * interval)

        k = max(k, 0)
        limit = descriptor.max_occurrences
        repeat_end = descriptor.repeat_end_date
        for _ in range(self.settings.iteration_ceiling):
            if limit > 0 and k + 1 > limit:
                return
            candidate = point(k)
            if compare_days(candidate, last) > 0:
                return
            if repeat_end is not None and compare_days(candidate, repeat_end) > 0:
                return
            if compare_days(candidate, first) >= 0:
                yield candidate
            k += 1


def _cached_days(descriptor: RecurrenceDescriptor) -> list[Date]:
    """Cached random dates, one per day, in chronological order."""
    unique = {day.day_key(): day for day in descriptor.cached_random_occurrences or []}
    return [unique[key] for key in sorted(unique)]
