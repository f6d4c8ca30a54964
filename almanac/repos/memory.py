"""In-memory event store."""

from __future__ import annotations

import logging

from almanac.domain.models import Date, RecurrenceDescriptor, StoredEvent

logger = logging.getLogger(__name__)


class EventStore:
    """Dict-backed store for StoredEvent instances, keyed by id.

    Also serves as the descriptor lookup the engine uses to resolve linked
    events.
    """

    def __init__(self) -> None:
        self._store: dict[str, StoredEvent] = {}

    def add(self, event: StoredEvent) -> None:
        self._store[event.id] = event
        logger.info("Stored event %s (%s)", event.id, event.name)

    def get(self, event_id: str) -> StoredEvent | None:
        return self._store.get(event_id)

    def get_descriptor(self, event_id: str) -> RecurrenceDescriptor | None:
        event = self._store.get(event_id)
        return event.descriptor if event is not None else None

    def list_all(self) -> list[StoredEvent]:
        return list(self._store.values())

    def list_visible(self) -> list[StoredEvent]:
        return [e for e in self._store.values() if e.visible]

    def linked_to(self, event_id: str) -> list[StoredEvent]:
        """Return events whose occurrences are derived from ``event_id``."""
        return [
            e
            for e in self._store.values()
            if e.descriptor.linked_event is not None
            and e.descriptor.linked_event.event_id == event_id
        ]

    def update_descriptor(
        self, event_id: str, descriptor: RecurrenceDescriptor
    ) -> StoredEvent | None:
        event = self._store.get(event_id)
        if event is None:
            return None
        event.descriptor = descriptor
        return event

    def set_random_cache(
        self, event_id: str, occurrences: list[Date], year: int
    ) -> StoredEvent | None:
        event = self._store.get(event_id)
        if event is None:
            return None
        event.descriptor = event.descriptor.model_copy(
            update={"cached_random_occurrences": occurrences}
        )
        event.random_cache_year = year
        return event

    def delete(self, event_id: str) -> StoredEvent | None:
        return self._store.pop(event_id, None)
