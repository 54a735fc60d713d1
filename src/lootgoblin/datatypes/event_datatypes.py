"""
Event lifecycle states and data structures for guild events.

This module defines the EventStatus enum, the transition table that governs
how an event moves between states, and the dataclasses for a GuildEvent and
the child records it owns (participants, sessions and loot piles).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, NamedTuple, Optional

from lootgoblin.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID

EVENT_NAME_MAX_LENGTH = 256
EVENT_DESCRIPTION_MAX_LENGTH = 2048


class EventStatus(Enum):
    """Lifecycle states of a guild event."""

    CREATED = "Created"      # created, not started; organizer can edit channels or cancel
    ACTIVE = "Active"        # participant tracking in progress
    PAUSED = "Paused"        # tracking on hold
    COMPLETED = "Completed"  # tracking finished; loot phase can begin
    CANCELLED = "Cancelled"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "EventStatus":
        """Look a status up by its display name, case-insensitively."""
        for status in cls:
            if status.value.lower() == name.strip().lower():
                return status
        raise ValueError(f"Unknown event status: {name}")


class EventTransition(NamedTuple):
    target: EventStatus
    allowed_from: FrozenSet[EventStatus]


# CANCELLED appears in no allowed_from set; COMPLETED only leaves through cancel.
EVENT_TRANSITIONS: Dict[str, EventTransition] = {
    "start": EventTransition(EventStatus.ACTIVE, frozenset({EventStatus.CREATED})),
    "pause": EventTransition(EventStatus.PAUSED, frozenset({EventStatus.ACTIVE})),
    "resume": EventTransition(EventStatus.ACTIVE, frozenset({EventStatus.PAUSED})),
    "complete": EventTransition(EventStatus.COMPLETED, frozenset({EventStatus.ACTIVE})),
    "cancel": EventTransition(
        EventStatus.CANCELLED,
        frozenset({EventStatus.CREATED, EventStatus.ACTIVE, EventStatus.PAUSED, EventStatus.COMPLETED}),
    ),
}


class LootStatus(Enum):
    """Lifecycle states of a loot pile."""

    CREATED = "Created"
    OPEN = "Open"
    CLOSED = "Closed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class LootType(Enum):
    RESTRICTED = "Restricted"  # participants only
    OPEN = "Open"              # anyone who can see it


class LootRollType(Enum):
    ROLL = "Roll"
    BID = "Bid"


@dataclass(slots=True)
class GuildEventChannel:
    """A channel whose members count as participants of an event."""

    channel_id: ChannelID

    def to_json(self) -> dict:
        return {"channel_id": self.channel_id.to_int()}

    @classmethod
    def from_json(cls, data: dict) -> "GuildEventChannel":
        return cls(channel_id=ChannelID(data["channel_id"]))


@dataclass(slots=True)
class GuildEvent:
    """A tracked group activity with a lifecycle state.

    Attributes:
        id: Storage-assigned identifier (0 until persisted)
        guild_id: Guild the event belongs to
        name: Event title, at most 256 characters
        created_at: UTC creation time
        created_by: User that created the event
        current_state: Lifecycle state; only changed by GuildEventService transitions
        message_id: Posted event message, once published
        origin_channel_id: Channel the event message was posted in
        participant_channels: Channels tracked for participation, unique by channel_id
    """
    guild_id: GuildID
    name: str
    created_at: datetime
    created_by: UserID
    current_state: EventStatus = EventStatus.CREATED
    id: int = 0
    description: Optional[str] = None
    message_id: Optional[MessageID] = None
    origin_channel_id: Optional[ChannelID] = None
    minimum_participant_minutes: Optional[int] = None
    maximum_participants: Optional[int] = None
    started_at: Optional[datetime] = None
    started_by: Optional[UserID] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[UserID] = None
    participant_channels: List[GuildEventChannel] = field(default_factory=list)

    def has_channel(self, channel_id: ChannelID) -> bool:
        return any(channel.channel_id == channel_id for channel in self.participant_channels)

    @property
    def is_published(self) -> bool:
        return self.message_id is not None and self.origin_channel_id is not None


@dataclass(slots=True)
class EventParticipant:
    """Aggregated participation of one user in an event."""

    event_id: int
    user_id: UserID
    total_participation_seconds: int = 0
    excluded_from_loot: bool = False
    id: int = 0


@dataclass(slots=True)
class ParticipantSession:
    """One continuous stretch a user spent in a participant channel."""

    event_id: int
    user_id: UserID
    channel_id: ChannelID
    started_at: datetime
    ended_at: Optional[datetime] = None
    event_participant_id: Optional[int] = None
    id: int = 0


@dataclass(slots=True)
class LootPile:
    """A reward-distribution unit of an event."""

    event_id: int
    name: str
    created_at: datetime
    created_by: UserID
    description: Optional[str] = None
    current_status: LootStatus = LootStatus.CREATED
    loot_type: LootType = LootType.RESTRICTED
    roll_type: LootRollType = LootRollType.ROLL
    message_id: Optional[MessageID] = None
    origin_channel_id: Optional[ChannelID] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[UserID] = None
    id: int = 0
