"""Repository layer for LootGoblin database access."""
from lootgoblin.repositories.guild_settings_repo import GuildSettingsRepository
from lootgoblin.repositories.guild_events_repo import GuildEventsRepository
from lootgoblin.repositories.event_records_repo import EventRecordsRepository

__all__ = [
    "GuildSettingsRepository",
    "GuildEventsRepository",
    "EventRecordsRepository",
]
