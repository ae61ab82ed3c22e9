"""
Persistence adapter interface for the event store

Backends save and load a whole StoreState at once. A missing store is not an
error: ``load`` returns an empty state. A store that exists but cannot be
decoded raises CorruptStoreError, so callers never mistake it for "empty".
"""

from abc import ABC, abstractmethod

from kalender.core.models import StoreState


class EventPersistenceAdapter(ABC):
    """Abstract interface for store persistence backends"""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (open connections, create directories)"""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Release backend resources"""
        pass

    @abstractmethod
    async def save(self, state: StoreState) -> None:
        """Overwrite the persisted state. Raises StorageError on failure."""
        pass

    @abstractmethod
    async def load(self) -> StoreState:
        """Read the persisted state, or an empty one if nothing was saved yet"""
        pass

    @abstractmethod
    async def exists(self) -> bool:
        """Whether anything has been persisted"""
        pass

    @property
    def location(self) -> str:
        """Human-readable description of where data lives"""
        return type(self).__name__
