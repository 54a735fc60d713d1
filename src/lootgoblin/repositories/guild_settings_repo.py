"""
Repository for the guild_settings table.

Handles only the guild_settings table; no caching or business rules.
"""

from __future__ import annotations

from typing import Optional

import aiosqlite

from lootgoblin.datatypes.discord_datatypes import ChannelID, GuildID, RoleID, Snowflake, db_value, optional_db_id
from lootgoblin.datatypes.guild_settings import GuildSettings
from lootgoblin.util.logger import get_logger

logger = get_logger("guild_settings_repo")

# Columns a single-field upsert may touch
SETTINGS_COLUMNS = frozenset({
    "event_channel_id",
    "loot_channel_id",
    "event_organizer_role_id",
    "event_participant_role_id",
})


def _row_to_settings(row: aiosqlite.Row) -> GuildSettings:
    return GuildSettings(
        guild_id=GuildID.from_db(row["guild_id"]),
        event_channel_id=optional_db_id(ChannelID, row["event_channel_id"]),
        loot_channel_id=optional_db_id(ChannelID, row["loot_channel_id"]),
        event_organizer_role_id=optional_db_id(RoleID, row["event_organizer_role_id"]),
        event_participant_role_id=optional_db_id(RoleID, row["event_participant_role_id"]),
    )


class GuildSettingsRepository:
    """CRUD for the guild_settings table only."""

    async def get(
        self, conn: aiosqlite.Connection, guild_id: GuildID
    ) -> Optional[GuildSettings]:
        """Fetch a single guild's settings row, or None when the guild has none."""
        async with conn.execute(
            """
            SELECT guild_id, event_channel_id, loot_channel_id,
                   event_organizer_role_id, event_participant_role_id
            FROM guild_settings
            WHERE guild_id = ?
            """,
            (guild_id.to_db(),),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None
        return _row_to_settings(row)

    async def upsert_field(
        self, conn: aiosqlite.Connection, guild_id: GuildID, column: str, value: Optional[Snowflake]
    ) -> None:
        """Set one column, creating the guild row first if it does not exist."""
        if column not in SETTINGS_COLUMNS:
            raise ValueError(f"Unknown guild settings column: {column}")

        await conn.execute(
            f"""
            INSERT INTO guild_settings (guild_id, {column}) VALUES (?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET {column} = excluded.{column}
            """,
            (guild_id.to_db(), db_value(value)),
        )
