"""Resolution of events defined as a day offset from another event.

Chains are followed hop by hop.  The ids already visited travel with the
call as a ``trail``; revisiting one, or going deeper than the engine's
``max_link_depth``, fails closed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from almanac.domain.models import Date, RecurrenceDescriptor
from almanac.services.dates import add_days, compare_days, earlier_day, later_day

if TYPE_CHECKING:
    from almanac.services.recurrence import RecurrenceEngine

logger = logging.getLogger(__name__)


class DescriptorSource(Protocol):
    def get_descriptor(self, event_id: str) -> RecurrenceDescriptor | None: ...


def within_bounds(descriptor: RecurrenceDescriptor, target: Date) -> bool:
    if compare_days(target, descriptor.start_date) < 0:
        return False
    end = descriptor.repeat_end_date
    return end is None or compare_days(target, end) <= 0


def _follow(
    engine: RecurrenceEngine,
    descriptor: RecurrenceDescriptor,
    trail: tuple[str, ...],
) -> tuple[RecurrenceDescriptor, tuple[str, ...]] | None:
    event_id = descriptor.linked_event.event_id
    if event_id in trail:
        logger.debug("Link cycle through %s (trail %s)", event_id, trail)
        return None
    if len(trail) >= engine.settings.max_link_depth:
        logger.debug("Link chain deeper than %d at %s", len(trail), event_id)
        return None
    if engine.store is None:
        logger.debug("No event store to resolve link to %s", event_id)
        return None
    linked = engine.store.get_descriptor(event_id)
    if linked is None:
        logger.debug("Linked event %s not found", event_id)
        return None
    return linked, trail + (event_id,)


def occurs_on(
    engine: RecurrenceEngine,
    descriptor: RecurrenceDescriptor,
    target: Date,
    trail: tuple[str, ...],
) -> bool:
    if not within_bounds(descriptor, target):
        return False
    followed = _follow(engine, descriptor, trail)
    if followed is None:
        return False
    linked, trail = followed
    source = add_days(engine.calendar, target, -descriptor.linked_event.offset_days)
    return engine.occurs_on(linked, source, trail=trail)


def occurrences_in_range(
    engine: RecurrenceEngine,
    descriptor: RecurrenceDescriptor,
    range_start: Date,
    range_end: Date,
    cap: int,
    trail: tuple[str, ...],
) -> list[Date]:
    # Narrow to this event's own bounds first so the cap is spent on dates
    # that survive the final filter.
    first = later_day(range_start, descriptor.start_date)
    last = range_end
    if descriptor.repeat_end_date is not None:
        last = earlier_day(last, descriptor.repeat_end_date)
    if compare_days(first, last) > 0:
        return []

    followed = _follow(engine, descriptor, trail)
    if followed is None:
        return []
    linked, trail = followed

    offset = descriptor.linked_event.offset_days
    calendar = engine.calendar
    found = engine.occurrences_in_range(
        linked,
        add_days(calendar, first, -offset),
        add_days(calendar, last, -offset),
        cap,
        trail=trail,
    )

    occurrences: list[Date] = []
    for occurrence in found:
        shifted = add_days(calendar, occurrence, offset)
        if not within_bounds(descriptor, shifted):
            continue
        if compare_days(shifted, range_start) < 0 or compare_days(shifted, range_end) > 0:
            continue
        occurrences.append(shifted.with_time_of(descriptor.start_date))
        if len(occurrences) >= cap:
            break
    return occurrences
