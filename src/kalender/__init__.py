"""Kalender - personal event calendar with reminders, autosave and CSV exchange"""

__version__ = "0.1.0"

from kalender.config import CalendarConfig
from kalender.core.models import CalendarEvent, EventFields, FilterCriteria
from kalender.service import CalendarService

__all__ = [
    "CalendarConfig",
    "CalendarEvent",
    "EventFields",
    "FilterCriteria",
    "CalendarService",
]
