"""
Role-based permission checks for guild commands.

The gate answers one question: may a member with these roles run a command
that requires the role a selector picks out of the guild's settings? Settings
are read through the shared TTL cache and loaded on a miss.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable, Optional

from lootgoblin.database.db_cache import SettingsCache, guild_settings_cache_key, settings_cache
from lootgoblin.datatypes.discord_datatypes import GuildID, RoleID
from lootgoblin.datatypes.guild_settings import GuildSettings, RoleRequirement, RoleSelector
from lootgoblin.datatypes.operation_result import OperationResult, OperationStatus
from lootgoblin.settings.guild_settings_service import guild_settings_service
from lootgoblin.util.logger import get_logger

logger = get_logger("permission_gate")

SettingsLoader = Callable[[GuildID], Awaitable[Optional[GuildSettings]]]


class PermissionGate:
    """Checks a member's roles against the role configured for a guild."""

    def __init__(
        self,
        cache: SettingsCache = settings_cache,
        loader: Optional[SettingsLoader] = None,
    ) -> None:
        """
        Args:
            cache: Cache shared with the settings service
            loader: Coroutine returning a guild's settings; defaults to the
                settings service, which always returns a value
        """
        self._cache = cache
        self._loader = loader

    async def _load(self, guild_id: GuildID) -> Optional[GuildSettings]:
        if self._loader is not None:
            return await self._loader(guild_id)
        return await guild_settings_service.get(guild_id)

    async def get_settings(self, guild_id: GuildID) -> Optional[GuildSettings]:
        """Return cached settings for a guild, loading and caching them on a miss."""
        cache_key = guild_settings_cache_key(guild_id)
        settings = self._cache.get(cache_key)
        if settings is not None:
            return settings

        # Not cached if a settings write invalidated the key during the load
        token = self._cache.token(cache_key)
        settings = await self._load(guild_id)
        self._cache.set(cache_key, settings, token)
        return settings

    async def check_role(
        self,
        guild_id: Optional[GuildID],
        member_role_ids: Iterable[RoleID],
        role_selector: RoleSelector,
        role_name: str,
    ) -> OperationResult[None]:
        """
        Decide whether a member may run a role-restricted command.

        Raises:
            StorageError: If the settings could not be loaded.
        """
        if guild_id is None:
            return OperationResult.fail(OperationStatus.UNAUTHORIZED, "Guild could not be found.")

        guild_id = GuildID(guild_id)
        settings = await self.get_settings(guild_id)
        if settings is None:
            logger.warning("[PERMISSION GATE] No settings available for guild %s", guild_id)
            return OperationResult.fail(OperationStatus.UNAUTHORIZED, "Guild settings not found.")

        required = role_selector(settings)
        if required is None:
            return OperationResult.success()

        if required in {RoleID(role_id) for role_id in member_role_ids}:
            return OperationResult.success()

        logger.debug(
            "[PERMISSION GATE] Denied %s in guild %s: missing role %s", role_name, guild_id, required
        )
        return OperationResult.fail(
            OperationStatus.UNAUTHORIZED,
            f"You must have the {role_name} role to use this command.",
        )

    async def check(
        self,
        guild_id: Optional[GuildID],
        member_role_ids: Iterable[RoleID],
        requirement: RoleRequirement,
    ) -> OperationResult[None]:
        """Shorthand for check_role with a bundled selector and role name."""
        return await self.check_role(guild_id, member_role_ids, requirement.selector, requirement.role_name)


# Global instance
permission_gate = PermissionGate()
