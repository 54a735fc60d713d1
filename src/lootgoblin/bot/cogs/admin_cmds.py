"""
Admin cog: per-guild channel and role configuration.

Commands (Administrator only, ephemeral responses):
- /admin settings: show the current settings
- /admin channel loot|event [channel]: set or clear a destination channel
- /admin role organizer|participant [role]: set or clear a required role
"""
from typing import Awaitable, Callable, Optional

import discord
from discord import Option
from discord.ext import commands

from lootgoblin.bot.bot_helper import ensure_guild_context, format_result, is_administrator, storage_failure
from lootgoblin.database.db_errors import StorageError
from lootgoblin.datatypes.discord_datatypes import GuildID
from lootgoblin.datatypes.guild_settings import GuildSettings
from lootgoblin.datatypes.operation_result import OperationResult
from lootgoblin.settings.guild_settings_service import GuildSettingsService, guild_settings_service
from lootgoblin.ui.event_embed import build_settings_embed
from lootgoblin.util.logger import get_logger

logger = get_logger("admin_commands")

SettingsWrite = Callable[[GuildID, Optional[int]], Awaitable[OperationResult[GuildSettings]]]


class AdminCog(commands.Cog):
    """Guild configuration commands for administrators."""

    admin = discord.SlashCommandGroup(
        "admin",
        "Configure LootGoblin for this server",
        default_member_permissions=discord.Permissions(administrator=True),
    )
    channel = admin.create_subgroup("channel", "Choose where LootGoblin posts")
    role = admin.create_subgroup("role", "Choose who may organize and join events")

    def __init__(self, bot: discord.Bot, settings_service: GuildSettingsService = guild_settings_service):
        self.bot = bot
        self.settings_service = settings_service
        logger.info("[ADMIN CMDS] Admin cog loaded")

    async def _check_permissions(self, ctx: discord.ApplicationContext) -> bool:
        if not await ensure_guild_context(ctx):
            return False
        if not is_administrator(ctx.author):
            await ctx.respond("You need the Administrator permission.", ephemeral=True)
            return False
        return True

    async def _apply(
        self,
        ctx: discord.ApplicationContext,
        write: SettingsWrite,
        value,
        set_message: str,
        cleared_message: str,
    ) -> None:
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        guild_id = GuildID(ctx.guild_id)
        try:
            result = await write(guild_id, None if value is None else value.id)
        except StorageError as exc:
            result = storage_failure(exc)

        message = cleared_message if value is None else set_message
        await ctx.send_followup(format_result(result, message), ephemeral=True)

    @admin.command(name="settings", description="Show this server's LootGoblin settings")
    async def show_settings(self, ctx: discord.ApplicationContext) -> None:
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        try:
            settings = await self.settings_service.get(GuildID(ctx.guild_id))
        except StorageError as exc:
            await ctx.send_followup(f"❌ {storage_failure(exc).message}", ephemeral=True)
            return
        await ctx.send_followup(embed=build_settings_embed(settings), ephemeral=True)

    @channel.command(name="loot", description="Set the channel loot piles are posted in")
    async def set_loot_channel(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(
            discord.abc.GuildChannel,
            "Text or forum channel; leave empty to use the current channel",
            channel_types=[discord.ChannelType.text, discord.ChannelType.forum],
            required=False,
            default=None,
        ),  # type: ignore
    ) -> None:
        await self._apply(
            ctx,
            self.settings_service.set_loot_channel,
            channel,
            f"Loot channel set to {getattr(channel, 'mention', '')}.",
            "Loot channel cleared. Loot will be posted in the current channel.",
        )

    @channel.command(name="event", description="Set the channel events are posted in")
    async def set_event_channel(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(
            discord.TextChannel,
            "Text channel; leave empty to use the current channel",
            required=False,
            default=None,
        ),  # type: ignore
    ) -> None:
        await self._apply(
            ctx,
            self.settings_service.set_event_channel,
            channel,
            f"Event channel set to {getattr(channel, 'mention', '')}.",
            "Event channel cleared. Events will be posted in the current channel.",
        )

    @role.command(name="organizer", description="Set the role required to organize events")
    async def set_organizer_role(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "Leave empty to let anyone organize", required=False, default=None),  # type: ignore
    ) -> None:
        await self._apply(
            ctx,
            self.settings_service.set_organizer_role,
            role,
            f"Organizer role set to {getattr(role, 'mention', '')}.",
            "Organizer role cleared. Anyone can organize events.",
        )

    @role.command(name="participant", description="Set the role required to take part in events")
    async def set_participant_role(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "Leave empty to let anyone take part", required=False, default=None),  # type: ignore
    ) -> None:
        await self._apply(
            ctx,
            self.settings_service.set_participant_role,
            role,
            f"Participant role set to {getattr(role, 'mention', '')}.",
            "Participant role cleared. Anyone can take part in events.",
        )


def setup(bot):
    bot.add_cog(AdminCog(bot))
