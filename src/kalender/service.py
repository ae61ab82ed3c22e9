"""
Calendar service

The interface a front end (GUI, CLI) talks to. It owns the event store, the
persistence adapter and both background schedulers, and ties their lifecycle
to ``start()``/``shutdown()``.
"""

import asyncio
import inspect
import logging
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from kalender.config import CalendarConfig
from kalender.core import csv_codec
from kalender.core.errors import KalenderError
from kalender.core.filters import apply_filters, events_by_day
from kalender.core.models import CalendarEvent, EventFields, FilterCriteria
from kalender.core.store import EventStore
from kalender.persistence.base import EventPersistenceAdapter
from kalender.persistence.factory import create_adapter
from kalender.scheduling.autosave import AutosaveScheduler
from kalender.scheduling.notifications import NotificationScheduler, NotifyCallback

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], Union[None, Awaitable[None]]]


class CalendarService:
    """
    Collaborator-facing calendar API

    Features:
    - CRUD by stable event id
    - Filtered, time-sorted views computed on demand
    - Save/load through a pluggable persistence adapter
    - CSV export and lenient CSV import
    - Reminder notifications and autosave running in the background
    """

    def __init__(
        self,
        config: Optional[CalendarConfig] = None,
        adapter: Optional[EventPersistenceAdapter] = None,
        store: Optional[EventStore] = None,
        on_notify: Optional[NotifyCallback] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config or CalendarConfig()
        self.adapter = adapter or create_adapter(self.config)
        self.store = store or EventStore()
        self.clock = clock

        self.notification_scheduler = NotificationScheduler(
            self.store,
            listeners=[on_notify] if on_notify else None,
            interval=self.config.notification_interval,
            lead_time=timedelta(minutes=self.config.reminder_lead_minutes),
            initial_delay=self.config.notification_initial_delay,
            clock=clock,
        )
        self.autosave_scheduler = AutosaveScheduler(
            self.store,
            self.adapter,
            interval=self.config.autosave_interval,
            initial_delay=self.config.autosave_initial_delay,
            prepare=self._ensure_adapter,
        )

        self._change_listeners: List[ChangeCallback] = []
        self._adapter_ready = False
        self.running = False

    # Lifecycle

    async def start(self, run_schedulers: bool = True) -> bool:
        """Load saved events and start the schedulers. Returns the load result."""
        loaded = await self.load()
        if run_schedulers:
            await self.notification_scheduler.start()
            await self.autosave_scheduler.start()
        self.running = True
        return loaded

    async def shutdown(self, save: bool = True) -> None:
        """Stop both schedulers, then write a final save unless told not to"""
        logger.info("Shutting down calendar service")
        await asyncio.gather(
            self.notification_scheduler.stop(),
            self.autosave_scheduler.stop(),
        )
        self.running = False

        try:
            if save:
                await self.save()
        finally:
            if self._adapter_ready:
                await self.adapter.shutdown()
                self._adapter_ready = False

    async def __aenter__(self) -> "CalendarService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    async def _ensure_adapter(self) -> None:
        if not self._adapter_ready:
            await self.adapter.initialize()
            self._adapter_ready = True

    # Listeners

    def add_change_listener(self, listener: ChangeCallback) -> None:
        """Called with a reason string after every change to the event list"""
        self._change_listeners.append(listener)

    def add_notification_listener(self, listener: NotifyCallback) -> None:
        self.notification_scheduler.add_listener(listener)

    async def _emit_change(self, reason: str) -> None:
        for listener in list(self._change_listeners):
            try:
                result = listener(reason)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Change listener failed after {reason}: {e}")

    # CRUD

    async def add_event(self, fields: Union[EventFields, Dict[str, Any]]) -> str:
        """Add an event and return its id. Raises ValidationError."""
        if not isinstance(fields, EventFields):
            fields = {
                "category": self.config.default_category,
                "priority": self.config.default_priority,
                **fields,
            }
        event_id = await self.store.add(fields)
        await self._emit_change("add")
        return event_id

    async def update_event(self, event_id: str, fields: Union[EventFields, Dict[str, Any]]) -> CalendarEvent:
        """Replace or patch an event's fields. Raises EventNotFoundError, ValidationError."""
        event = await self.store.update(event_id, fields)
        await self._emit_change("update")
        return event

    async def delete_event(self, event_id: str) -> CalendarEvent:
        """Remove an event. Raises EventNotFoundError."""
        event = await self.store.delete(event_id)
        await self._emit_change("delete")
        return event

    async def get_event(self, event_id: str) -> CalendarEvent:
        return await self.store.get(event_id)

    async def has_event(self, event_id: str) -> bool:
        return await self.store.contains(event_id)

    # Views

    async def list_all(self) -> List[CalendarEvent]:
        """All events in insertion order"""
        return await self.store.snapshot()

    async def list_filtered(self, criteria: Optional[FilterCriteria] = None) -> List[CalendarEvent]:
        """Filtered, time-sorted view; uses the stored criteria when none are given"""
        if criteria is None:
            criteria = await self.store.get_criteria()
        snapshot = await self.store.snapshot()
        return apply_filters(snapshot, criteria, now=self.clock())

    async def set_filters(self, criteria: FilterCriteria) -> List[CalendarEvent]:
        await self.store.set_criteria(criteria)
        return await self.list_filtered(criteria)

    async def get_filters(self) -> FilterCriteria:
        return await self.store.get_criteria()

    async def set_display_month(self, value: date) -> date:
        return await self.store.set_display_month(value)

    async def get_display_month(self) -> date:
        return await self.store.get_display_month()

    async def month_overview(self, month: Optional[date] = None) -> Dict[date, List[CalendarEvent]]:
        """Events of a month grouped by day; defaults to the display month"""
        if month is None:
            month = await self.store.get_display_month()
        return events_by_day(await self.store.snapshot(), month)

    # Persistence

    async def save(self) -> None:
        """Persist the store now. Raises StorageError."""
        await self._ensure_adapter()
        state = await self.store.export_state()
        await self.adapter.save(state)
        logger.info(f"Saved {len(state.events)} events to {self.adapter.location}")

    async def load(self) -> bool:
        """
        Replace the in-memory events with the saved ones.

        Never raises. If the saved data cannot be read, the error is logged,
        the current in-memory events are kept and False is returned.
        """
        try:
            await self._ensure_adapter()
            state = await self.adapter.load()
        except KalenderError as e:
            kept = await self.store.count()
            logger.error(f"Could not load events from {self.adapter.location}: {e}; keeping {kept} events in memory")
            return False

        await self.store.replace_all(state)
        await self._emit_change("load")
        return True

    async def export_csv(self, path: str) -> int:
        """Write all events as CSV. Raises StorageError."""
        return await csv_codec.export_csv(path, await self.store.snapshot())

    async def import_csv(self, path: str) -> int:
        """
        Append the events of a CSV file and return how many were imported.

        Raises StorageError only when the file cannot be read at all; bad
        lines are logged and skipped.
        """
        result = await csv_codec.import_csv(path)
        ids = await self.store.extend(result.events)
        await self._emit_change("import")
        logger.info(f"Imported {len(ids)} events from {path}")
        return len(ids)
