"""
Event Store

Owns the authoritative, insertion-ordered collection of events. All reads and
writes go through a single asyncio.Lock, so the foreground path and both
background schedulers see each store operation as one atomic step.
"""

import asyncio
import logging
import uuid
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from kalender.core.errors import EventNotFoundError
from kalender.core.models import (
    CalendarEvent,
    EventFields,
    FilterCriteria,
    StoreState,
    month_start,
)

logger = logging.getLogger(__name__)

FieldsInput = Union[EventFields, Dict[str, Any]]


class EventStore:
    """
    In-memory event store keyed by stable event id

    Events are immutable, so ``snapshot()`` hands out a fresh list of the
    current instances. A concurrent writer can replace an event in the store
    but never change one that a reader is already holding.
    """

    def __init__(
        self,
        events: Optional[Iterable[CalendarEvent]] = None,
        display_month: Optional[date] = None,
    ):
        self._events: Dict[str, CalendarEvent] = {}
        for event in events or []:
            self._events[event.id] = event
        self._display_month = month_start(display_month or date.today())
        self._criteria = FilterCriteria()
        self._lock = asyncio.Lock()

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    async def add(self, fields: FieldsInput) -> str:
        """Validate and append an event, returning its new id"""
        validated = EventFields.parse(fields)
        async with self._lock:
            event_id = self._new_id()
            while event_id in self._events:
                event_id = self._new_id()
            self._events[event_id] = CalendarEvent(id=event_id, **validated.field_values())
        logger.debug(f"Added event {event_id}: {validated.title}")
        return event_id

    async def extend(self, batch: Iterable[FieldsInput]) -> List[str]:
        """Append several events in one store operation"""
        validated = [EventFields.parse(fields) for fields in batch]
        ids: List[str] = []
        async with self._lock:
            for fields in validated:
                event_id = self._new_id()
                while event_id in self._events:
                    event_id = self._new_id()
                self._events[event_id] = CalendarEvent(id=event_id, **fields.field_values())
                ids.append(event_id)
        logger.debug(f"Appended {len(ids)} events")
        return ids

    async def update(self, event_id: str, fields: FieldsInput) -> CalendarEvent:
        """
        Replace an event's fields, keeping its id and position.

        A dict is merged onto the current fields; an EventFields replaces them
        all. The reminder flag survives unless the timestamp changes, in which
        case the event is re-armed.
        """
        async with self._lock:
            current = self._events.get(event_id)
            if current is None:
                raise EventNotFoundError(event_id)

            if isinstance(fields, EventFields):
                validated = EventFields.parse(fields)
            else:
                validated = EventFields.parse({**current.field_values(), **fields})

            notified = current.notified and validated.timestamp == current.timestamp
            updated = CalendarEvent(id=event_id, notified=notified, **validated.field_values())
            self._events[event_id] = updated

        if current.notified and not notified:
            logger.debug(f"Event {event_id} rescheduled, reminder re-armed")
        return updated

    async def delete(self, event_id: str) -> CalendarEvent:
        async with self._lock:
            try:
                return self._events.pop(event_id)
            except KeyError:
                raise EventNotFoundError(event_id) from None

    async def get(self, event_id: str) -> CalendarEvent:
        async with self._lock:
            event = self._events.get(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    async def contains(self, event_id: str) -> bool:
        async with self._lock:
            return event_id in self._events

    async def snapshot(self) -> List[CalendarEvent]:
        """Ordered copy of the current events, safe to iterate at leisure"""
        async with self._lock:
            return list(self._events.values())

    async def count(self) -> int:
        async with self._lock:
            return len(self._events)

    async def mark_notified(self, event_id: str, expected_timestamp: Optional[datetime] = None) -> bool:
        """
        Flip an event's reminder flag from false to true.

        Returns True only for the call that performed the flip. If
        ``expected_timestamp`` is given and the event has since been moved,
        nothing changes and False is returned.
        """
        async with self._lock:
            event = self._events.get(event_id)
            if event is None or event.notified:
                return False
            if expected_timestamp is not None and event.timestamp != expected_timestamp:
                return False
            self._events[event_id] = event.model_copy(update={"notified": True})
            return True

    async def set_display_month(self, value: date) -> date:
        async with self._lock:
            self._display_month = month_start(value)
            return self._display_month

    async def get_display_month(self) -> date:
        async with self._lock:
            return self._display_month

    async def set_criteria(self, criteria: FilterCriteria) -> None:
        async with self._lock:
            self._criteria = criteria

    async def get_criteria(self) -> FilterCriteria:
        async with self._lock:
            return self._criteria

    async def export_state(self) -> StoreState:
        """Snapshot of everything that gets persisted"""
        async with self._lock:
            return StoreState(
                display_month=self._display_month,
                events=list(self._events.values()),
            )

    async def replace_all(self, state: StoreState) -> None:
        """Swap in a loaded state wholesale"""
        async with self._lock:
            self._events = {event.id: event for event in state.events}
            self._display_month = month_start(state.display_month)
        logger.debug(f"Store replaced with {len(state.events)} events")
