"""
Reminder notifications

Every tick scans a store snapshot for events that start this minute or within
the look-ahead window and fires one reminder per event. The store's
check-and-set on the ``notified`` flag guarantees a flag flips at most once,
even when ticks overlap with edits; delivery happens after the flip.
"""

import inspect
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from kalender.core.models import CalendarEvent
from kalender.core.store import EventStore
from kalender.scheduling.periodic import PeriodicTask

logger = logging.getLogger(__name__)

NotifyCallback = Callable[[CalendarEvent], Union[None, Awaitable[None]]]

DEFAULT_LEAD_TIME = timedelta(minutes=5)


def find_due_events(
    events: Iterable[CalendarEvent],
    now: datetime,
    lead_time: timedelta = DEFAULT_LEAD_TIME,
) -> List[CalendarEvent]:
    """
    Events starting in the current minute, or strictly inside (now, now + lead_time).

    The ``notified`` flag is not considered here.
    """
    now_minute = now.replace(second=0, microsecond=0)
    window_end = now + lead_time
    return [
        event for event in events
        if event.timestamp.replace(second=0, microsecond=0) == now_minute
        or now < event.timestamp < window_end
    ]


def describe_reminder(event: CalendarEvent) -> str:
    """Reminder text for the display collaborator"""
    return "\n".join([
        event.title,
        f"Time: {event.timestamp.strftime('%H:%M')}",
        f"Date: {event.timestamp.strftime('%Y-%m-%d')}",
    ])


class NotificationScheduler(PeriodicTask):
    """Periodic reminder scan over the event store"""

    def __init__(
        self,
        store: EventStore,
        listeners: Optional[Iterable[NotifyCallback]] = None,
        interval: float = 30.0,
        lead_time: timedelta = DEFAULT_LEAD_TIME,
        initial_delay: float = 0.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__("notification-scheduler", interval, initial_delay)
        self.store = store
        self.lead_time = lead_time
        self.clock = clock
        self._listeners: List[NotifyCallback] = list(listeners or [])

    def add_listener(self, listener: NotifyCallback) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: NotifyCallback) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def tick(self) -> List[CalendarEvent]:
        """Flag and deliver reminders; returns the events flagged by this tick"""
        now = self.clock()
        snapshot = await self.store.snapshot()
        candidates = [e for e in find_due_events(snapshot, now, self.lead_time) if not e.notified]

        reminded: List[CalendarEvent] = []
        for event in candidates:
            if not await self.store.mark_notified(event.id, event.timestamp):
                continue
            flagged = event.model_copy(update={"notified": True})
            reminded.append(flagged)
            await self._deliver(flagged)

        if reminded:
            logger.info(f"Sent {len(reminded)} reminder(s)")
        else:
            logger.debug(f"No reminders due at {now:%Y-%m-%d %H:%M:%S}")
        return reminded

    async def _deliver(self, event: CalendarEvent) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Reminder delivery failed for event {event.id}: {e}")
