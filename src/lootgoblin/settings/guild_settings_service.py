"""
GuildSettingsService: per-guild channel and role configuration.

Responsibilities:
- Read a guild's settings (an all-empty default when the guild has no row yet)
- Set or clear the loot/event channels and organizer/participant roles,
  creating the guild row on first write
- Evict the guild's entry from the shared settings cache after every write,
  so the next permission check reloads it

All raw DB access is delegated to GuildSettingsRepository.
"""

from __future__ import annotations

from typing import Optional, Union

from lootgoblin.database.db_cache import SettingsCache, guild_settings_cache_key, settings_cache
from lootgoblin.database.db_connection import ConnectionManager, db_connection
from lootgoblin.database.db_errors import StorageError
from lootgoblin.datatypes.discord_datatypes import ChannelID, GuildID, RoleID, optional_id
from lootgoblin.datatypes.guild_settings import GuildSettings
from lootgoblin.datatypes.operation_result import OperationResult
from lootgoblin.repositories.guild_settings_repo import GuildSettingsRepository
from lootgoblin.util.logger import get_logger

logger = get_logger("guild_settings_service")

SnowflakeLike = Union[int, ChannelID, RoleID]


class GuildSettingsService:
    """
    Reads and writes guild settings.

    Writes only invalidate the cache; reads never populate it (the permission
    gate does that lazily).
    """

    def __init__(
        self,
        connection: ConnectionManager = db_connection,
        cache: SettingsCache = settings_cache,
    ) -> None:
        self._connection = connection
        self._cache = cache
        self._repo = GuildSettingsRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch(self, guild_id: GuildID) -> Optional[GuildSettings]:
        """
        Load a guild's persisted settings.

        Returns None if the guild has no settings row.

        Raises:
            StorageError: If the database read fails.
        """
        guild_id = GuildID(guild_id)
        try:
            async with self._connection.read() as conn:
                return await self._repo.get(conn, guild_id)
        except Exception as exc:
            logger.exception("[GUILD SETTINGS SERVICE] Failed to load guild %s", guild_id)
            raise StorageError(f"Failed to load settings for guild {guild_id}") from exc

    async def get(self, guild_id: GuildID) -> GuildSettings:
        """
        Retrieve settings for a guild, returning defaults if it has none.

        Raises:
            StorageError: If the database read fails.
        """
        guild_id = GuildID(guild_id)
        settings = await self.fetch(guild_id)
        return settings if settings is not None else GuildSettings(guild_id=guild_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def set_loot_channel(
        self, guild_id: GuildID, channel_id: Optional[SnowflakeLike]
    ) -> OperationResult[GuildSettings]:
        """Set the loot channel, or clear it with None."""
        return await self._set_field(guild_id, "loot_channel_id", optional_id(ChannelID, channel_id))

    async def set_event_channel(
        self, guild_id: GuildID, channel_id: Optional[SnowflakeLike]
    ) -> OperationResult[GuildSettings]:
        """Set the event channel, or clear it with None."""
        return await self._set_field(guild_id, "event_channel_id", optional_id(ChannelID, channel_id))

    async def set_organizer_role(
        self, guild_id: GuildID, role_id: Optional[SnowflakeLike]
    ) -> OperationResult[GuildSettings]:
        """Set the role required to organize events, or clear it with None."""
        return await self._set_field(guild_id, "event_organizer_role_id", optional_id(RoleID, role_id))

    async def set_participant_role(
        self, guild_id: GuildID, role_id: Optional[SnowflakeLike]
    ) -> OperationResult[GuildSettings]:
        """Set the role required to participate in events, or clear it with None."""
        return await self._set_field(guild_id, "event_participant_role_id", optional_id(RoleID, role_id))

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    async def _set_field(self, guild_id: GuildID, column: str, value) -> OperationResult[GuildSettings]:
        """
        Upsert one column inside a write transaction, then invalidate the cache.

        Raises:
            StorageError: If the write fails; the cache is left untouched.
        """
        guild_id = GuildID(guild_id)

        try:
            async with self._connection.transaction() as conn:
                await self._repo.upsert_field(conn, guild_id, column, value)
                settings = await self._repo.get(conn, guild_id)
        except Exception as exc:
            logger.exception(
                "[GUILD SETTINGS SERVICE] Failed to persist %s for guild %s", column, guild_id
            )
            raise StorageError(
                "Database update failed while saving guild settings. Please try again."
            ) from exc

        self._cache.invalidate(guild_settings_cache_key(guild_id))
        logger.info(
            "[GUILD SETTINGS SERVICE] Guild %s %s set to %s", guild_id, column, value
        )
        return OperationResult.success(settings)


# Global instance
guild_settings_service = GuildSettingsService()
