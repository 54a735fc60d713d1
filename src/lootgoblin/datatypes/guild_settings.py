"""
Per-guild configuration values and the role selectors used by permission checks.

Database schema:
- guild_settings table with columns: guild_id, event_channel_id, loot_channel_id,
  event_organizer_role_id, event_participant_role_id
"""
from dataclasses import dataclass
from typing import Callable, Optional

from lootgoblin.datatypes.discord_datatypes import ChannelID, GuildID, RoleID


@dataclass(slots=True)
class GuildSettings:
    """Persistent per-guild configuration values.

    A missing channel means "use the channel the command was issued in"; a
    missing role means "no restriction".
    """

    guild_id: GuildID
    event_channel_id: Optional[ChannelID] = None
    loot_channel_id: Optional[ChannelID] = None
    event_organizer_role_id: Optional[RoleID] = None
    event_participant_role_id: Optional[RoleID] = None


RoleSelector = Callable[[GuildSettings], Optional[RoleID]]


def organizer_role(settings: GuildSettings) -> Optional[RoleID]:
    return settings.event_organizer_role_id


def participant_role(settings: GuildSettings) -> Optional[RoleID]:
    return settings.event_participant_role_id


@dataclass(frozen=True, slots=True)
class RoleRequirement:
    """A role selector paired with the role name shown when a member lacks it."""

    selector: RoleSelector
    role_name: str


EVENT_ORGANIZER = RoleRequirement(organizer_role, "Event Organizer")
EVENT_PARTICIPANT = RoleRequirement(participant_role, "Event Participant")
