"""
Database schema initialization.

Handles creation of tables, indexes and triggers, plus schema version tracking.
"""

import aiosqlite
from lootgoblin.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates and versions the LootGoblin database schema."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all database tables, indexes and triggers if missing.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._create_triggers(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized (version %d)", SCHEMA_VERSION)

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guild_settings (
                guild_id INTEGER PRIMARY KEY,
                event_channel_id INTEGER,
                loot_channel_id INTEGER,
                event_organizer_role_id INTEGER,
                event_participant_role_id INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # participant_channels is a JSON array of {"channel_id": ...} objects
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guild_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                message_id INTEGER,
                origin_channel_id INTEGER,
                name TEXT NOT NULL CHECK (length(name) <= 256),
                description TEXT CHECK (description IS NULL OR length(description) <= 2048),
                minimum_participant_minutes INTEGER CHECK (minimum_participant_minutes IS NULL OR minimum_participant_minutes >= 0),
                maximum_participants INTEGER CHECK (maximum_participants IS NULL OR maximum_participants >= 1),
                current_state TEXT NOT NULL,
                created_at TEXT NOT NULL,
                created_by INTEGER NOT NULL,
                started_at TEXT,
                started_by INTEGER,
                completed_at TEXT,
                completed_by INTEGER,
                participant_channels TEXT NOT NULL DEFAULT '[]'
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS event_participants (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                total_participation_seconds INTEGER NOT NULL DEFAULT 0,
                excluded_from_loot INTEGER NOT NULL DEFAULT 0,
                FOREIGN KEY (event_id) REFERENCES guild_events(id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS participant_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_id INTEGER NOT NULL,
                event_participant_id INTEGER,
                user_id INTEGER NOT NULL,
                channel_id INTEGER NOT NULL,
                started_at TEXT NOT NULL,
                ended_at TEXT,
                FOREIGN KEY (event_id) REFERENCES guild_events(id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS loot_piles (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_id INTEGER NOT NULL,
                message_id INTEGER,
                origin_channel_id INTEGER,
                name TEXT NOT NULL CHECK (length(name) <= 256),
                description TEXT CHECK (description IS NULL OR length(description) <= 2048),
                current_status TEXT NOT NULL,
                loot_type TEXT NOT NULL,
                roll_type TEXT NOT NULL,
                created_at TEXT NOT NULL,
                created_by INTEGER NOT NULL,
                completed_at TEXT,
                completed_by INTEGER,
                FOREIGN KEY (event_id) REFERENCES guild_events(id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        """Create indexes for the lookups the services perform."""
        await db.execute("CREATE INDEX IF NOT EXISTS idx_guild_events_guild ON guild_events(guild_id, created_at DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_guild_events_state ON guild_events(guild_id, current_state)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_event_participants_event ON event_participants(event_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_participant_sessions_event ON participant_sessions(event_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_loot_piles_event ON loot_piles(event_id)")

    @staticmethod
    async def _create_triggers(db: aiosqlite.Connection) -> None:
        """Create triggers for automatic timestamp updates."""
        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS update_guild_settings_timestamp
            AFTER UPDATE ON guild_settings
            FOR EACH ROW
            BEGIN
                UPDATE guild_settings SET updated_at = CURRENT_TIMESTAMP
                WHERE guild_id = NEW.guild_id;
            END
        """)

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        """Record the schema version."""
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
