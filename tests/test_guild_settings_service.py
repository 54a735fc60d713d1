"""
Tests for GuildSettingsService: defaults, upserts, cache invalidation and
storage failures.
"""

import pytest

from lootgoblin.database.db_cache import guild_settings_cache_key
from lootgoblin.database.db_errors import StorageError
from lootgoblin.datatypes.discord_datatypes import SNOWFLAKE_MAX, ChannelID, GuildID, RoleID
from lootgoblin.datatypes.guild_settings import GuildSettings
from lootgoblin.datatypes.operation_result import OperationStatus
from lootgoblin.settings.guild_settings_service import GuildSettingsService

GUILD = GuildID(1001)


@pytest.fixture
def service(connection, settings_cache):
    return GuildSettingsService(connection=connection, cache=settings_cache)


@pytest.mark.asyncio
async def test_get_unknown_guild_returns_defaults(service):
    settings = await service.get(GUILD)

    assert settings == GuildSettings(guild_id=GUILD)
    assert await service.fetch(GUILD) is None


@pytest.mark.asyncio
async def test_set_loot_channel_creates_row(service):
    result = await service.set_loot_channel(GUILD, 555)

    assert result.is_success
    assert result.value.loot_channel_id == ChannelID(555)
    assert result.value.event_channel_id is None

    stored = await service.fetch(GUILD)
    assert stored.loot_channel_id == ChannelID(555)


@pytest.mark.asyncio
async def test_setters_update_only_their_field(service):
    await service.set_event_channel(GUILD, ChannelID(10))
    await service.set_organizer_role(GUILD, RoleID(20))
    await service.set_participant_role(GUILD, RoleID(30))
    await service.set_loot_channel(GUILD, ChannelID(40))

    settings = await service.get(GUILD)
    assert settings.event_channel_id == ChannelID(10)
    assert settings.event_organizer_role_id == RoleID(20)
    assert settings.event_participant_role_id == RoleID(30)
    assert settings.loot_channel_id == ChannelID(40)


@pytest.mark.asyncio
async def test_setting_none_clears_field(service):
    await service.set_organizer_role(GUILD, RoleID(20))
    result = await service.set_organizer_role(GUILD, None)

    assert result.is_success
    assert result.value.event_organizer_role_id is None
    assert (await service.get(GUILD)).event_organizer_role_id is None


@pytest.mark.asyncio
async def test_guilds_are_isolated(service):
    await service.set_organizer_role(GUILD, RoleID(20))

    other = await service.get(GuildID(2002))
    assert other.event_organizer_role_id is None


@pytest.mark.asyncio
async def test_write_invalidates_cache_entry(service, settings_cache):
    key = guild_settings_cache_key(GUILD)
    settings_cache.set(key, GuildSettings(guild_id=GUILD))
    settings_cache.set(guild_settings_cache_key(2002), GuildSettings(guild_id=GuildID(2002)))

    await service.set_organizer_role(GUILD, RoleID(99))

    assert settings_cache.get(key) is None
    assert settings_cache.get(guild_settings_cache_key(2002)) is not None


@pytest.mark.asyncio
async def test_failed_write_raises_and_keeps_cache(service, settings_cache, monkeypatch):
    key = guild_settings_cache_key(GUILD)
    cached = GuildSettings(guild_id=GUILD)
    settings_cache.set(key, cached)

    async def broken_upsert(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(service._repo, "upsert_field", broken_upsert)

    with pytest.raises(StorageError) as excinfo:
        await service.set_event_channel(GUILD, ChannelID(10))

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert settings_cache.get(key) is cached


@pytest.mark.asyncio
async def test_read_failure_raises_storage_error(settings_cache):
    from lootgoblin.database.db_connection import ConnectionManager

    service = GuildSettingsService(connection=ConnectionManager(), cache=settings_cache)
    with pytest.raises(StorageError):
        await service.get(GUILD)


@pytest.mark.asyncio
async def test_success_result_status(service):
    result = await service.set_participant_role(GUILD, RoleID(1))
    assert result.status is OperationStatus.SUCCESS


@pytest.mark.asyncio
async def test_ids_above_signed_range_are_stored(service):
    guild = GuildID(2 ** 63)

    result = await service.set_event_channel(guild, ChannelID(SNOWFLAKE_MAX))
    await service.set_organizer_role(guild, RoleID(2 ** 63 + 5))

    assert result.is_success
    stored = await service.fetch(guild)
    assert stored.guild_id == guild
    assert stored.event_channel_id == ChannelID(SNOWFLAKE_MAX)
    assert stored.event_organizer_role_id == RoleID(2 ** 63 + 5)
    assert await service.fetch(GuildID(0)) is None
