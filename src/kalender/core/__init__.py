"""
Kalender core: models, errors, the event store, filtering and the CSV codec
"""

from kalender.core.errors import (
    CorruptStoreError,
    CSVRowError,
    ErrorCode,
    EventNotFoundError,
    KalenderError,
    StorageError,
    ValidationError,
)
from kalender.core.filters import apply_filters, events_by_day, events_on_day, format_event_count
from kalender.core.models import (
    CalendarEvent,
    EventFields,
    FilterCriteria,
    STANDARD_CATEGORIES,
    PriorityLevel,
    StoreState,
    category_color,
    category_color_index,
    priority_level,
)
from kalender.core.store import EventStore

__all__ = [
    "CalendarEvent",
    "EventFields",
    "FilterCriteria",
    "PriorityLevel",
    "StoreState",
    "EventStore",
    "apply_filters",
    "events_by_day",
    "events_on_day",
    "format_event_count",
    "STANDARD_CATEGORIES",
    "category_color",
    "category_color_index",
    "priority_level",
    "ErrorCode",
    "KalenderError",
    "ValidationError",
    "EventNotFoundError",
    "StorageError",
    "CorruptStoreError",
    "CSVRowError",
]
