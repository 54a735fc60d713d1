"""
Embeds for guild events and guild settings.
"""

import datetime
from typing import List

import discord

from lootgoblin.datatypes.event_datatypes import EventStatus, GuildEvent
from lootgoblin.datatypes.guild_settings import GuildSettings

EVENT_STATUS_COLORS: dict[EventStatus, discord.Color] = {
    EventStatus.CREATED: discord.Color.from_rgb(0, 180, 255),
    EventStatus.ACTIVE: discord.Color.from_rgb(0, 200, 150),
    EventStatus.COMPLETED: discord.Color.from_rgb(200, 150, 0),
    EventStatus.CANCELLED: discord.Color.from_rgb(200, 0, 0),
}
DEFAULT_STATUS_COLOR = discord.Color.from_rgb(100, 100, 100)

EVENT_STATUS_EMOJIS: dict[EventStatus, str] = {
    EventStatus.CREATED: "🗓️",
    EventStatus.ACTIVE: "▶️",
    EventStatus.PAUSED: "⏸️",
    EventStatus.COMPLETED: "🏁",
    EventStatus.CANCELLED: "🚫",
}

NO_DESCRIPTION = "_No description provided._"


def status_color(status: EventStatus) -> discord.Color:
    return EVENT_STATUS_COLORS.get(status, DEFAULT_STATUS_COLOR)


def build_event_embed(event: GuildEvent) -> discord.Embed:
    """Create the embed an event is published and refreshed as."""
    embed = discord.Embed(
        title=event.name,
        description=event.description or NO_DESCRIPTION,
        color=status_color(event.current_state),
        timestamp=event.created_at,
    )
    embed.add_field(
        name="Status",
        value=f"{EVENT_STATUS_EMOJIS.get(event.current_state, '')} {event.current_state}".strip(),
        inline=True,
    )
    embed.add_field(name="Created By", value=event.created_by.mention, inline=True)
    embed.add_field(
        name="Minimum Time",
        value="None" if event.minimum_participant_minutes is None else f"{event.minimum_participant_minutes} minutes",
        inline=True,
    )
    embed.add_field(
        name="Max Participants",
        value="Unlimited" if event.maximum_participants is None else str(event.maximum_participants),
        inline=True,
    )
    if event.started_at is not None:
        embed.add_field(name="Started", value=discord.utils.format_dt(event.started_at, "R"), inline=True)
    if event.completed_at is not None:
        embed.add_field(name="Completed", value=discord.utils.format_dt(event.completed_at, "R"), inline=True)
    embed.set_footer(text=f"Event ID: {event.id}")
    return embed


def build_event_list_embed(events: List[GuildEvent]) -> discord.Embed:
    """Summarize a guild's events, one line each."""
    lines = [
        f"{EVENT_STATUS_EMOJIS.get(event.current_state, '•')} **#{event.id}** {event.name} — {event.current_state}"
        for event in events
    ]
    embed = discord.Embed(
        title="Events",
        description="\n".join(lines) or "No events found.",
        color=discord.Color.blurple(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    return embed


def build_settings_embed(settings: GuildSettings) -> discord.Embed:
    """Create an embed summarizing a guild's channels and roles."""

    def describe(value, fallback: str) -> str:
        return fallback if value is None else value.mention

    embed = discord.Embed(
        title="LootGoblin Settings",
        description="Use `/admin channel` and `/admin role` to change these values.",
        color=discord.Color.blurple(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(name="Event Channel", value=describe(settings.event_channel_id, "Current channel"), inline=True)
    embed.add_field(name="Loot Channel", value=describe(settings.loot_channel_id, "Current channel"), inline=True)
    embed.add_field(name="​", value="​", inline=True)
    embed.add_field(
        name="Organizer Role", value=describe(settings.event_organizer_role_id, "Anyone"), inline=True
    )
    embed.add_field(
        name="Participant Role", value=describe(settings.event_participant_role_id, "Anyone"), inline=True
    )
    embed.set_footer(text="Only administrators can change these settings.")
    return embed
