"""Filter engine: pure functions from an event snapshot to an ordered view."""

import calendar
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from kalender.core.models import CalendarEvent, FilterCriteria, month_start


def matches_search(event: CalendarEvent, search_text: str) -> bool:
    """Case-insensitive substring match against title and description"""
    if not search_text:
        return True
    needle = search_text.lower()
    return needle in event.title.lower() or needle in event.description.lower()


def apply_filters(
    events: Iterable[CalendarEvent],
    criteria: Optional[FilterCriteria] = None,
    now: Optional[datetime] = None,
) -> List[CalendarEvent]:
    """
    Filter and sort a snapshot for display.

    Date bounds are inclusive and compare dates only. Past events are those
    whose full timestamp is strictly before ``now``. The result is sorted by
    timestamp; events with equal timestamps keep their snapshot order.
    """
    criteria = criteria or FilterCriteria()
    if now is None:
        now = datetime.now()
    category = criteria.category.lower() if criteria.category else None

    selected = []
    for event in events:
        if not matches_search(event, criteria.search_text):
            continue
        if criteria.start_date is not None and event.event_date < criteria.start_date:
            continue
        if criteria.end_date is not None and event.event_date > criteria.end_date:
            continue
        if not criteria.show_past_events and event.timestamp < now:
            continue
        if category is not None and event.category.lower() != category:
            continue
        selected.append(event)

    return sorted(selected, key=lambda event: event.timestamp)


def events_on_day(events: Iterable[CalendarEvent], day: date) -> List[CalendarEvent]:
    return sorted((e for e in events if e.event_date == day), key=lambda e: e.timestamp)


def events_by_day(events: Iterable[CalendarEvent], month: date) -> Dict[date, List[CalendarEvent]]:
    """Group the events of one month by day, each day sorted by time"""
    first = month_start(month)
    last = first.replace(day=calendar.monthrange(first.year, first.month)[1])

    grouped: Dict[date, List[CalendarEvent]] = defaultdict(list)
    for event in events:
        if first <= event.event_date <= last:
            grouped[event.event_date].append(event)

    return {day: sorted(grouped[day], key=lambda e: e.timestamp) for day in sorted(grouped)}


def format_event_count(count: int) -> str:
    if count == 0:
        return "No events"
    return f"{count} event" + ("" if count == 1 else "s")
