"""
SQLite persistence backend

Alternative to the JSON file for users who prefer a database file. Each save
rewrites the whole event table inside one transaction.
"""

import asyncio
import logging
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import aiosqlite
from pydantic import ValidationError as PydanticValidationError

from kalender.core.errors import CorruptStoreError, StorageError
from kalender.core.models import CalendarEvent, StoreState
from kalender.persistence.base import EventPersistenceAdapter

logger = logging.getLogger(__name__)


class SQLiteEventAdapter(EventPersistenceAdapter):
    """SQLite-based persistence for the event store"""

    def __init__(self, db_path: str = "calendar_events.db"):
        """
        Initialize SQLite adapter

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self.db: Optional[aiosqlite.Connection] = None
        self._initialized = False
        self._write_lock = asyncio.Lock()

    @property
    def location(self) -> str:
        return self.db_path

    async def initialize(self) -> None:
        """Open the database and create tables"""
        if self._initialized:
            return

        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.db = await aiosqlite.connect(self.db_path)
            self.db.row_factory = aiosqlite.Row
            await self._create_tables()
            await self.db.commit()
            self._initialized = True
            logger.info(f"SQLite store adapter initialized: {self.db_path}")
        except sqlite3.DatabaseError as e:
            logger.error(f"Failed to initialize SQLite adapter: {e}")
            await self._close()
            raise CorruptStoreError(self.db_path, cause=e) from e
        except OSError as e:
            logger.error(f"Failed to initialize SQLite adapter: {e}")
            await self._close()
            raise StorageError(f"Cannot open database {self.db_path}: {e}", path=self.db_path, cause=e) from e

    async def shutdown(self) -> None:
        """Close SQLite connection"""
        async with self._write_lock:
            await self._close()
        logger.info("SQLite store adapter shut down")

    async def _close(self) -> None:
        if self.db:
            await self.db.close()
            self.db = None
        self._initialized = False

    async def _create_tables(self) -> None:
        await self.db.execute("""
            CREATE TABLE IF NOT EXISTS events (
                position INTEGER NOT NULL,
                event_id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                timestamp TEXT NOT NULL,
                location TEXT NOT NULL DEFAULT '',
                category TEXT NOT NULL,
                priority INTEGER NOT NULL,
                notified INTEGER NOT NULL DEFAULT 0
            )
        """)

        await self.db.execute("""
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)

        await self.db.execute("""
            CREATE INDEX IF NOT EXISTS idx_events_position ON events(position)
        """)

    def _require_db(self) -> aiosqlite.Connection:
        if not self.db:
            raise RuntimeError("SQLite adapter not initialized")
        return self.db

    async def exists(self) -> bool:
        db = self._require_db()
        async with db.execute("SELECT value FROM meta WHERE key = 'version'") as cursor:
            return await cursor.fetchone() is not None

    async def save(self, state: StoreState) -> None:
        db = self._require_db()
        rows = [
            (
                position,
                event.id,
                event.title,
                event.description,
                event.timestamp.isoformat(),
                event.location,
                event.category,
                event.priority,
                int(event.notified),
            )
            for position, event in enumerate(state.events)
        ]

        async with self._write_lock:
            try:
                await db.execute("DELETE FROM events")
                await db.executemany(
                    """
                    INSERT INTO events
                    (position, event_id, title, description, timestamp, location, category, priority, notified)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
                await db.executemany(
                    "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                    [
                        ("version", str(state.version)),
                        ("display_month", state.display_month.isoformat()),
                    ],
                )
                await db.commit()
            except (sqlite3.Error, OSError) as e:
                await db.rollback()
                logger.error(f"Failed to save store to {self.db_path}: {e}")
                raise StorageError(f"Cannot write database {self.db_path}: {e}", path=self.db_path, cause=e) from e

        logger.debug(f"Saved {len(rows)} events to {self.db_path}")

    async def load(self) -> StoreState:
        db = self._require_db()
        try:
            if not await self.exists():
                logger.info(f"No saved events in {self.db_path}, starting empty")
                return StoreState()

            async with db.execute("SELECT key, value FROM meta") as cursor:
                meta = {row["key"]: row["value"] for row in await cursor.fetchall()}

            async with db.execute("SELECT * FROM events ORDER BY position") as cursor:
                rows = await cursor.fetchall()

            state = StoreState(
                version=int(meta.get("version", 1)),
                display_month=date.fromisoformat(meta["display_month"]) if "display_month" in meta else date.today(),
                events=[
                    CalendarEvent(
                        id=row["event_id"],
                        title=row["title"],
                        description=row["description"],
                        timestamp=datetime.fromisoformat(row["timestamp"]),
                        location=row["location"],
                        category=row["category"],
                        priority=row["priority"],
                        notified=bool(row["notified"]),
                    )
                    for row in rows
                ],
            )
        except (sqlite3.DatabaseError, PydanticValidationError, ValueError, KeyError) as e:
            logger.error(f"Database {self.db_path} is unreadable: {e}")
            raise CorruptStoreError(self.db_path, cause=e) from e

        logger.info(f"Loaded {len(state.events)} events from {self.db_path}")
        return state
