"""
Database initialization and lifecycle for SQLite.

The Database class coordinates opening the shared connection and creating
the schema. Reads and writes themselves go through the repositories, using
the ConnectionManager this class opens:
- connection: single long-lived aiosqlite connection with serialised writes
- schema: table/index/trigger creation and version tracking
"""

from __future__ import annotations

from pathlib import Path

from lootgoblin.configuration.app_configuration import app_config
from lootgoblin.database.db_connection import ConnectionManager, db_connection
from lootgoblin.database.db_schema import SchemaManager
from lootgoblin.util.logger import get_logger

logger = get_logger("database")


class Database:
    """
    Central coordinator for the database lifecycle.

    Lifecycle:
        1. Call initialize() at program startup
        2. Use the repositories/services for database operations
        3. Call shutdown() at program end
    """

    def __init__(self, db_path: Path | None = None, connection: ConnectionManager = db_connection):
        """
        Args:
            db_path: Path to the SQLite database file (defaults to the configured path)
            connection: Connection manager to open; the module singleton by default
        """
        self.db_path = db_path if db_path is not None else app_config.database_path
        self.connection = connection
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> bool:
        """
        Open the connection and create the schema.

        Returns:
            True if initialization succeeded, False otherwise
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self.connection.open(self.db_path)
            async with self.connection.transaction() as conn:
                await SchemaManager.initialize_schema(conn)

            self._initialized = True
            logger.info("[DATABASE] Database initialized at %s", self.db_path)
            return True

        except Exception as e:
            logger.error("[DATABASE] Database initialization failed: %s", e)
            return False

    async def shutdown(self) -> None:
        """Close the connection. Safe to call more than once."""
        if not self._initialized:
            return

        await self.connection.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")


# Global Database instance
database = Database()


def get_db() -> Database:
    """Return the global Database instance."""
    return database
