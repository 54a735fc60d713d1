"""
The bot's one aiosqlite connection.

Guild settings and events are small, so everything goes through a single
connection opened at startup. Writes are serialised by an asyncio lock:
the compare-and-set updates on guild_events rely on one write transaction
running at a time. Reads share the connection without locking.

    async with db_connection.read() as conn:
        ...

    async with db_connection.transaction() as conn:
        ...  # committed on exit, rolled back on exception
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from lootgoblin.util.logger import get_logger

logger = get_logger("database_connection")

# WAL lets reads run during a write; foreign keys make child rows cascade
_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
)


class ConnectionManager:
    """Owns the connection shared by every repository and service."""

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()
        self.path: Path | None = None

    async def open(self, path: Path) -> None:
        """Connect to ``path`` (creating its directory) and apply the pragmas."""
        if self._conn is not None:
            logger.warning("[DB CONNECTION] Already open on %s, ignoring open(%s)", self.path, path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(path)
        self._conn.row_factory = aiosqlite.Row
        for pragma in _PRAGMAS:
            await self._conn.execute(pragma)
        await self._conn.commit()

        self.path = path
        logger.info("[DB CONNECTION] Opened %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL into the database file and close."""
        if self._conn is None:
            return

        try:
            await self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        except aiosqlite.Error:
            logger.exception("[DB CONNECTION] WAL checkpoint failed for %s", self.path)
        finally:
            await self._conn.close()
            self._conn = None
            logger.info("[DB CONNECTION] Closed %s", self.path)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        Raises:
            RuntimeError: If ``open()`` has not been awaited yet.
        """
        if self._conn is None:
            raise RuntimeError("Database connection is not open; initialize the database first.")
        return self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """One write transaction at a time."""
        conn = self.connection
        async with self._write_lock:
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        yield self.connection


# Global instance
db_connection = ConnectionManager()
