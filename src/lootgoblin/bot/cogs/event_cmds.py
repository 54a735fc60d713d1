"""
Event cog: create events and drive them through their lifecycle.

Every /event command requires the guild's organizer role (anyone may
organize when no role is configured). Responses are ephemeral; the public
event embed is posted on creation and refreshed after each transition.
"""
from typing import Awaitable, Callable

import discord
from discord import Option
from discord.ext import commands

from lootgoblin.bot.bot_helper import (
    check_requirement,
    ensure_guild_context,
    require_guild_id,
    storage_failure,
)
from lootgoblin.database.db_errors import StorageError
from lootgoblin.datatypes.discord_datatypes import ChannelID, UserID
from lootgoblin.datatypes.event_datatypes import EventStatus, GuildEvent
from lootgoblin.datatypes.guild_settings import EVENT_ORGANIZER
from lootgoblin.datatypes.operation_result import OperationResult
from lootgoblin.events.guild_event_service import GuildEventService, guild_event_service
from lootgoblin.settings.guild_settings_service import GuildSettingsService, guild_settings_service
from lootgoblin.settings.permission_gate import PermissionGate, permission_gate
from lootgoblin.ui.event_embed import build_event_embed, build_event_list_embed
from lootgoblin.util.logger import get_logger

logger = get_logger("event_commands")

EventTransitionCall = Callable[..., Awaitable[OperationResult[GuildEvent]]]

EVENT_STATUS_CHOICES = [discord.OptionChoice(name=str(status), value=status.value) for status in EventStatus]


class EventCog(commands.Cog):
    """Slash commands for organizing guild events."""

    event = discord.SlashCommandGroup("event", "Manage events for your guild")
    channel = event.create_subgroup("channel", "Manage event participant channels")

    def __init__(
        self,
        bot: discord.Bot,
        event_service: GuildEventService = guild_event_service,
        settings_service: GuildSettingsService = guild_settings_service,
        gate: PermissionGate = permission_gate,
    ):
        self.bot = bot
        self.event_service = event_service
        self.settings_service = settings_service
        self.gate = gate
        logger.info("[EVENT CMDS] Event cog loaded")

    async def _check_permissions(self, ctx: discord.ApplicationContext) -> bool:
        if not await ensure_guild_context(ctx):
            return False
        return await check_requirement(ctx, EVENT_ORGANIZER, self.gate)

    async def _resolve_channel(self, guild: discord.Guild, channel_id: ChannelID):
        channel = guild.get_channel(channel_id.to_int()) if guild else None
        if channel is None:
            channel = await self.bot.fetch_channel(channel_id.to_int())
        return channel

    async def _refresh_event_message(self, ctx: discord.ApplicationContext, event: GuildEvent) -> None:
        """Re-render the posted event embed; failures are logged only."""
        if not event.is_published:
            return
        try:
            channel = await self._resolve_channel(ctx.guild, event.origin_channel_id)
            if not hasattr(channel, "fetch_message"):
                logger.warning(
                    "[EVENT CMDS] Channel %s of event %s does not hold messages", event.origin_channel_id, event.id
                )
                return
            message = await channel.fetch_message(event.message_id.to_int())
            await message.edit(embed=build_event_embed(event))
        except discord.DiscordException as exc:
            logger.warning("[EVENT CMDS] Could not refresh message for event %s: %s", event.id, exc)

    async def _handle_transition(
        self,
        ctx: discord.ApplicationContext,
        event_id: int,
        action: EventTransitionCall,
        verb: str,
    ) -> None:
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        guild_id = require_guild_id(ctx)
        try:
            result = await action(event_id, UserID(ctx.author.id), guild_id=guild_id)
        except StorageError as exc:
            result = storage_failure(exc)

        if not result.is_success:
            await ctx.send_followup(f"❌ {result.message}", ephemeral=True)
            return

        await ctx.send_followup(f"✅ Event **{result.value.name}** has been {verb}.", ephemeral=True)
        await self._refresh_event_message(ctx, result.value)

    @event.command(name="create", description="Create a new event")
    async def create_event(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Name of the event", max_length=256),  # type: ignore
        description: Option(str, "What the event is about", required=False, default=None),  # type: ignore
        min_minutes: Option(int, "Minimum participation time in minutes", required=False, default=None),  # type: ignore
        max_participants: Option(int, "Maximum number of participants", required=False, default=None),  # type: ignore
    ) -> None:
        """Create an event and post its embed to the configured event channel."""
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        guild_id = require_guild_id(ctx)
        try:
            result = await self.event_service.create_event(
                guild_id, UserID(ctx.author.id), name, description, min_minutes, max_participants
            )
            if not result.is_success:
                await ctx.send_followup(f"❌ {result.message}", ephemeral=True)
                return

            event = result.value
            settings = await self.settings_service.get(guild_id)
        except StorageError as exc:
            await ctx.send_followup(f"❌ {storage_failure(exc).message}", ephemeral=True)
            return

        try:
            if settings.event_channel_id is not None:
                target = await self._resolve_channel(ctx.guild, settings.event_channel_id)
            else:
                target = ctx.channel
            if not hasattr(target, "send"):
                raise discord.ClientException(f"Channel {target.id} does not hold messages")
            message = await target.send(embed=build_event_embed(event))
        except discord.DiscordException as exc:
            logger.warning("[EVENT CMDS] Could not post event %s: %s", event.id, exc)
            await ctx.send_followup(
                f"✅ Event **{event.name}** ({event.id}) created, but its message could not be posted.",
                ephemeral=True,
            )
            return

        try:
            await self.event_service.set_event_message(event.id, message.id, target.id, guild_id=guild_id)
        except StorageError as exc:
            await ctx.send_followup(f"❌ {storage_failure(exc).message}", ephemeral=True)
            return

        await ctx.send_followup(
            f"✅ Event **{event.name}** ({event.id}) created in {ChannelID(target.id).mention}! "
            f"[Jump to message]({message.jump_url})",
            ephemeral=True,
        )

    @event.command(name="start", description="Start an existing event")
    async def start_event(self, ctx: discord.ApplicationContext, event_id: Option(int, "Event ID")) -> None:  # type: ignore
        await self._handle_transition(ctx, event_id, self.event_service.start_event, "started")

    @event.command(name="pause", description="Pause an active event")
    async def pause_event(self, ctx: discord.ApplicationContext, event_id: Option(int, "Event ID")) -> None:  # type: ignore
        await self._handle_transition(ctx, event_id, self.event_service.pause_event, "paused")

    @event.command(name="resume", description="Resume a paused event")
    async def resume_event(self, ctx: discord.ApplicationContext, event_id: Option(int, "Event ID")) -> None:  # type: ignore
        await self._handle_transition(ctx, event_id, self.event_service.resume_event, "resumed")

    @event.command(name="complete", description="Complete an active event")
    async def complete_event(self, ctx: discord.ApplicationContext, event_id: Option(int, "Event ID")) -> None:  # type: ignore
        await self._handle_transition(ctx, event_id, self.event_service.complete_event, "completed")

    @event.command(name="cancel", description="Cancel an event")
    async def cancel_event(self, ctx: discord.ApplicationContext, event_id: Option(int, "Event ID")) -> None:  # type: ignore
        await self._handle_transition(ctx, event_id, self.event_service.cancel_event, "cancelled")

    @event.command(name="list", description="List this server's events")
    async def list_events(
        self,
        ctx: discord.ApplicationContext,
        status: Option(str, "Only show events in this state", choices=EVENT_STATUS_CHOICES, required=False, default=None),  # type: ignore
    ) -> None:
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        try:
            events = await self.event_service.list_events(
                require_guild_id(ctx), None if status is None else EventStatus.from_name(status)
            )
        except StorageError as exc:
            await ctx.send_followup(f"❌ {storage_failure(exc).message}", ephemeral=True)
            return
        await ctx.send_followup(embed=build_event_list_embed(events), ephemeral=True)

    @channel.command(name="add", description="Add a channel to the event's participant list")
    async def add_channel(
        self,
        ctx: discord.ApplicationContext,
        event_id: Option(int, "Event ID"),  # type: ignore
        channel: Option(discord.abc.GuildChannel, "Channel whose members take part"),  # type: ignore
    ) -> None:
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        channel_id = ChannelID(channel.id)
        try:
            result = await self.event_service.add_participant_channel(
                event_id, channel_id, guild_id=require_guild_id(ctx)
            )
        except StorageError as exc:
            result = storage_failure(exc)

        if result.is_success:
            content = f"✅ Channel {channel_id.mention} added to event **{result.value.name}**."
        else:
            content = f"❌ {result.message}"
        await ctx.send_followup(content, ephemeral=True)

    @channel.command(name="remove", description="Remove a channel from the event's participant list")
    async def remove_channel(
        self,
        ctx: discord.ApplicationContext,
        event_id: Option(int, "Event ID"),  # type: ignore
        channel: Option(discord.abc.GuildChannel, "Channel to stop tracking"),  # type: ignore
    ) -> None:
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        channel_id = ChannelID(channel.id)
        try:
            result = await self.event_service.remove_participant_channel(
                event_id, channel_id, guild_id=require_guild_id(ctx)
            )
        except StorageError as exc:
            result = storage_failure(exc)

        if result.is_success:
            content = f"✅ Channel {channel_id.mention} removed from event **{result.value.name}**."
        else:
            content = f"❌ {result.message}"
        await ctx.send_followup(content, ephemeral=True)

    @channel.command(name="list", description="Show all participant channels for the event")
    async def list_channels(self, ctx: discord.ApplicationContext, event_id: Option(int, "Event ID")) -> None:  # type: ignore
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        try:
            channels = await self.event_service.get_participant_channels(event_id, guild_id=require_guild_id(ctx))
        except StorageError as exc:
            await ctx.send_followup(f"❌ {storage_failure(exc).message}", ephemeral=True)
            return

        if channels:
            lines = "\n".join(f"• {channel.channel_id.mention}" for channel in channels)
            content = f"📋 **Participant Channels:**\n{lines}"
        else:
            content = "No channels configured for this event."
        await ctx.send_followup(content, ephemeral=True)


def setup(bot):
    bot.add_cog(EventCog(bot))
