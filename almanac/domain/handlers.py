"""Domain event handlers: keep random occurrence caches fresh."""

from __future__ import annotations

import logging

from almanac.config import EngineSettings
from almanac.domain.bus import EventBus
from almanac.domain.calendar import CalendarAdapter
from almanac.domain.events import (
    DateAdvanced,
    EventRemoved,
    EventSaved,
    RandomCacheRefreshed,
)
from almanac.domain.models import Date, RepeatKind, StoredEvent
from almanac.repos.memory import EventStore
from almanac.services.seeded import (
    cache_target_year,
    generate_random_occurrences,
    needs_random_regeneration,
)

logger = logging.getLogger(__name__)


def _uses_random_cache(event: StoredEvent) -> bool:
    descriptor = event.descriptor
    return (
        descriptor.repeat is RepeatKind.RANDOM
        and descriptor.random_config is not None
        and descriptor.linked_event is None
    )


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the store."""

    def __init__(
        self,
        bus: EventBus,
        store: EventStore,
        calendar: CalendarAdapter,
        settings: EngineSettings | None = None,
    ) -> None:
        self.bus = bus
        self.store = store
        self.calendar = calendar
        self.settings = settings or EngineSettings()
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(EventSaved, self.on_event_saved)
        self.bus.subscribe(EventRemoved, self.on_event_removed)
        self.bus.subscribe(DateAdvanced, self.on_date_advanced)

    def stale_random_events(self, today: Date) -> list[StoredEvent]:
        """Random events whose cache no longer covers ``today``."""
        return [
            event
            for event in self.store.list_all()
            if _uses_random_cache(event)
            and needs_random_regeneration(
                self.calendar, event.random_cache_year, today
            )
        ]

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_event_saved(self, event: EventSaved) -> None:
        stored = self.store.get(event.event_id)
        if stored is None or not _uses_random_cache(stored):
            return
        today = event.current_date or stored.descriptor.start_date
        self._refresh(stored, cache_target_year(self.calendar, today))

    def on_event_removed(self, event: EventRemoved) -> None:
        for dependent_id in event.dependent_ids:
            logger.warning(
                "Event %s is linked to removed event %s and will no longer occur",
                dependent_id,
                event.event_id,
            )

    def on_date_advanced(self, event: DateAdvanced) -> None:
        year = cache_target_year(self.calendar, event.current_date)
        for stored in self.stale_random_events(event.current_date):
            self._refresh(stored, year)

    def _refresh(self, stored: StoredEvent, year: int) -> None:
        descriptor = stored.descriptor.model_copy(
            update={"cached_random_occurrences": None}
        )
        occurrences = generate_random_occurrences(
            self.calendar,
            descriptor,
            year,
            limit=self.settings.random_cache_limit,
            max_iterations=self.settings.random_cache_iterations,
        )
        self.store.set_random_cache(stored.id, occurrences, year)
        logger.info(
            "Cached %d random occurrences of %s through year %d",
            len(occurrences),
            stored.id,
            year,
        )
        self.bus.publish(
            RandomCacheRefreshed(
                event_id=stored.id, year=year, occurrence_count=len(occurrences)
            )
        )
