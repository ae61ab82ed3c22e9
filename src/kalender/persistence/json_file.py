"""
JSON file persistence backend

The default backend. Saves go to a temporary sibling file that then replaces
the store file, so a reader or a crash never sees a half-written store.
"""

import asyncio
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from pydantic import ValidationError as PydanticValidationError

from kalender.core.errors import CorruptStoreError, StorageError
from kalender.core.models import StoreState
from kalender.persistence.base import EventPersistenceAdapter

logger = logging.getLogger(__name__)


class JSONFileAdapter(EventPersistenceAdapter):
    """Stores the full event list as one JSON document"""

    def __init__(self, path: str = "calendar_events.json", indent: Optional[int] = 2):
        self.path = Path(path)
        self.indent = indent
        self._write_lock = asyncio.Lock()

    @property
    def location(self) -> str:
        return str(self.path)

    async def initialize(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create directory for {self.path}: {e}", path=str(self.path), cause=e) from e
        logger.info(f"JSON store adapter initialized: {self.path}")

    async def shutdown(self) -> None:
        # Wait for a save in progress to finish
        async with self._write_lock:
            pass

    async def exists(self) -> bool:
        return await aiofiles.os.path.exists(self.path)

    async def save(self, state: StoreState) -> None:
        payload = state.model_dump_json(indent=self.indent)
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        async with self._write_lock:
            try:
                async with aiofiles.open(tmp_path, mode="w", encoding="utf-8") as handle:
                    await handle.write(payload)
                    await handle.flush()
                await aiofiles.os.replace(tmp_path, self.path)
            except OSError as e:
                logger.error(f"Failed to save store to {self.path}: {e}")
                raise StorageError(f"Cannot write store file {self.path}: {e}", path=str(self.path), cause=e) from e

        logger.debug(f"Saved {len(state.events)} events to {self.path}")

    async def load(self) -> StoreState:
        if not await self.exists():
            logger.info(f"No store file at {self.path}, starting empty")
            return StoreState()

        try:
            async with aiofiles.open(self.path, mode="r", encoding="utf-8") as handle:
                payload = await handle.read()
        except UnicodeDecodeError as e:
            raise await self._corrupt(e) from e
        except OSError as e:
            raise StorageError(f"Cannot read store file {self.path}: {e}", path=str(self.path), cause=e) from e

        try:
            state = StoreState.model_validate_json(payload)
        except (PydanticValidationError, json.JSONDecodeError, ValueError) as e:
            raise await self._corrupt(e) from e

        logger.info(f"Loaded {len(state.events)} events from {self.path}")
        return state

    async def _corrupt(self, cause: Exception) -> CorruptStoreError:
        """Move the unreadable file aside so the next save cannot overwrite it"""
        stamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            await aiofiles.os.replace(self.path, backup)
        except OSError as e:
            logger.error(f"Could not move corrupt store file {self.path} aside: {e}")
            backup = None

        logger.error(f"Store file {self.path} is unreadable: {cause}")
        return CorruptStoreError(str(self.path), backup_path=str(backup) if backup else None, cause=cause)
