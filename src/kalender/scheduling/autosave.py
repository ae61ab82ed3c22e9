"""Autosave: persist the whole store at a fixed interval."""

import logging
from typing import Awaitable, Callable, Optional

from kalender.core.store import EventStore
from kalender.persistence.base import EventPersistenceAdapter
from kalender.scheduling.periodic import PeriodicTask

logger = logging.getLogger(__name__)


class AutosaveScheduler(PeriodicTask):
    """
    Saves unconditionally on every tick, whether or not anything changed

    ``prepare`` runs before each save and must leave the adapter ready to
    write; the service passes its lazy adapter initialization here, so an
    adapter that failed to open at startup is retried instead of used.
    """

    def __init__(
        self,
        store: EventStore,
        adapter: EventPersistenceAdapter,
        interval: float = 300.0,
        initial_delay: float = 300.0,
        prepare: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        super().__init__("autosave-scheduler", interval, initial_delay)
        self.store = store
        self.adapter = adapter
        self.prepare = prepare

    async def tick(self) -> int:
        if self.prepare:
            await self.prepare()
        state = await self.store.export_state()
        await self.adapter.save(state)
        logger.debug(f"Autosaved {len(state.events)} events to {self.adapter.location}")
        return len(state.events)
