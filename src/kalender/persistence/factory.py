"""Create the persistence adapter selected by configuration."""

from kalender.config import CalendarConfig
from kalender.persistence.base import EventPersistenceAdapter
from kalender.persistence.json_file import JSONFileAdapter
from kalender.persistence.memory import InMemoryEventAdapter
from kalender.persistence.sqlite import SQLiteEventAdapter


def create_adapter(config: CalendarConfig) -> EventPersistenceAdapter:
    backend = config.storage_backend.lower()
    if backend == "json":
        return JSONFileAdapter(config.store_path)
    if backend == "sqlite":
        return SQLiteEventAdapter(config.store_path)
    if backend == "memory":
        return InMemoryEventAdapter()
    raise ValueError(f"Unknown storage backend: {config.storage_backend}")
