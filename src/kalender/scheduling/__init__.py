"""
Background schedulers: reminder notifications and autosave
"""

from kalender.scheduling.autosave import AutosaveScheduler
from kalender.scheduling.notifications import (
    NotificationScheduler,
    describe_reminder,
    find_due_events,
)
from kalender.scheduling.periodic import PeriodicTask

__all__ = [
    "PeriodicTask",
    "NotificationScheduler",
    "AutosaveScheduler",
    "find_due_events",
    "describe_reminder",
]
