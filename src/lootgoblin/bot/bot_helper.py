"""
Bot Helper Functions
===================

Shared plumbing for the slash-command cogs: guild context checks, the
organizer permission gate, and rendering OperationResults back to the user.
"""
from typing import List, Optional

import discord

from lootgoblin.database.db_errors import StorageError, format_user_friendly_error
from lootgoblin.datatypes.discord_datatypes import GuildID, RoleID, UserID
from lootgoblin.datatypes.guild_settings import RoleRequirement
from lootgoblin.datatypes.operation_result import OperationResult, OperationStatus
from lootgoblin.settings.permission_gate import PermissionGate, permission_gate
from lootgoblin.util.logger import get_logger

logger = get_logger("bot_helper")

GUILD_ONLY_MESSAGE = "This command can only be used in a server."


def require_guild_id(ctx: discord.ApplicationContext) -> GuildID:
    """Return the guild a command was issued in.

    Raises:
        RuntimeError: If the command was issued outside a guild.
    """
    if not ctx.guild_id:
        raise RuntimeError("Command requires a guild context")
    return GuildID(ctx.guild_id)


def member_role_ids(member) -> List[RoleID]:
    """Return the role ids of a guild member; empty for plain users."""
    return [RoleID(role.id) for role in getattr(member, "roles", None) or []]


def is_administrator(member) -> bool:
    permissions = getattr(member, "guild_permissions", None)
    return bool(permissions and permissions.administrator)


def storage_failure(error: StorageError) -> OperationResult:
    """Convert a storage exception into the failed result shown to users."""
    return OperationResult.fail(OperationStatus.FAILED, format_user_friendly_error(error))


def format_result(result: OperationResult, success_message: str) -> str:
    if result.is_success:
        return f"✅ {success_message}"
    return f"❌ {result.message}"


async def ensure_guild_context(ctx: discord.ApplicationContext) -> bool:
    if not ctx.guild_id:
        await ctx.respond(GUILD_ONLY_MESSAGE, ephemeral=True)
        return False
    return True


async def check_requirement(
    ctx: discord.ApplicationContext,
    requirement: RoleRequirement,
    gate: Optional[PermissionGate] = None,
) -> bool:
    """Run the permission gate for the invoking member, replying when denied."""
    gate = gate or permission_gate
    try:
        result = await gate.check(
            GuildID(ctx.guild_id) if ctx.guild_id else None,
            member_role_ids(ctx.author),
            requirement,
        )
    except StorageError as exc:
        result = storage_failure(exc)

    if result.is_success:
        return True

    logger.debug(
        "[BOT HELPER] %s denied %s: %s", UserID(ctx.author.id), requirement.role_name, result.message
    )
    await ctx.respond(f"❌ {result.message}", ephemeral=True)
    return False
