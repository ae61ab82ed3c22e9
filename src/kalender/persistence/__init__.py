"""
Persistence backends for the event store
"""

from kalender.persistence.base import EventPersistenceAdapter
from kalender.persistence.factory import create_adapter
from kalender.persistence.json_file import JSONFileAdapter
from kalender.persistence.memory import InMemoryEventAdapter
from kalender.persistence.sqlite import SQLiteEventAdapter

__all__ = [
    "EventPersistenceAdapter",
    "JSONFileAdapter",
    "SQLiteEventAdapter",
    "InMemoryEventAdapter",
    "create_adapter",
]
