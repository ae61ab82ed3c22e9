"""In-memory persistence adapter, for tests and embedding."""

import logging
from typing import Optional

from kalender.core.errors import StorageError
from kalender.core.models import StoreState
from kalender.persistence.base import EventPersistenceAdapter

logger = logging.getLogger(__name__)


class InMemoryEventAdapter(EventPersistenceAdapter):
    """Keeps the last saved state as a JSON document in memory"""

    def __init__(self, initial: Optional[StoreState] = None):
        self._payload: Optional[str] = initial.model_dump_json() if initial else None
        self.save_count = 0
        self.fail_saves = False

    @property
    def location(self) -> str:
        return "memory"

    async def initialize(self) -> None:
        logger.info("In-memory store adapter initialized")

    async def shutdown(self) -> None:
        logger.info("In-memory store adapter shut down")

    async def exists(self) -> bool:
        return self._payload is not None

    async def save(self, state: StoreState) -> None:
        if self.fail_saves:
            raise StorageError("In-memory save disabled", path="memory")
        self._payload = state.model_dump_json()
        self.save_count += 1

    async def load(self) -> StoreState:
        if self._payload is None:
            return StoreState()
        return StoreState.model_validate_json(self._payload)
