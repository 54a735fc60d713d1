"""
GuildEventService: lifecycle of guild events.

Responsibilities:
- Validate and create events in the Created state
- Move events between states following EVENT_TRANSITIONS, recording who
  started and completed them
- Maintain the list of channels tracked for participation
- Record the message an event was published as

Business-rule failures come back as failed OperationResults. Database
failures are logged and raised as StorageError.

State writes are compare-and-set on current_state: a transition that loses
a race with another writer reports the state it lost to instead of
overwriting it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List, Optional

from lootgoblin.database.db_connection import ConnectionManager, db_connection
from lootgoblin.database.db_errors import StorageError
from lootgoblin.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID
from lootgoblin.datatypes.event_datatypes import (
    EVENT_DESCRIPTION_MAX_LENGTH,
    EVENT_NAME_MAX_LENGTH,
    EVENT_TRANSITIONS,
    EventStatus,
    EventTransition,
    GuildEvent,
    GuildEventChannel,
)
from lootgoblin.datatypes.operation_result import OperationResult, OperationStatus
from lootgoblin.repositories.guild_events_repo import GuildEventsRepository
from lootgoblin.util.logger import get_logger

logger = get_logger("guild_event_service")

EVENT_NOT_FOUND = "Event not found."
CHANNELS_LOCKED = "Channels can only be modified while the event is in Created state."

EventUpdate = Callable[[GuildEvent, datetime], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _mark_started(event: GuildEvent, user_id: UserID, now: datetime) -> None:
    event.started_at = now
    event.started_by = user_id


def _mark_completed(event: GuildEvent, user_id: UserID, now: datetime) -> None:
    event.completed_at = now
    event.completed_by = user_id


def _not_found() -> OperationResult:
    return OperationResult.fail(OperationStatus.NOT_FOUND, EVENT_NOT_FOUND)


def _invalid_transition(current: EventStatus, target: EventStatus) -> OperationResult:
    return OperationResult.fail(
        OperationStatus.INVALID_STATE, f"Cannot change event from {current} to {target}."
    )


class GuildEventService:
    """Creates guild events and drives them through their lifecycle."""

    def __init__(self, connection: ConnectionManager = db_connection, clock: Callable[[], datetime] = _utcnow) -> None:
        self._connection = connection
        self._clock = clock
        self._repo = GuildEventsRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_event(self, event_id: int, *, guild_id: Optional[GuildID] = None) -> Optional[GuildEvent]:
        """
        Load an event by id.

        When ``guild_id`` is given, events of other guilds are reported as
        missing.

        Raises:
            StorageError: If the database read fails.
        """
        try:
            async with self._connection.read() as conn:
                event = await self._repo.get(conn, event_id)
        except Exception as exc:
            logger.exception("[GUILD EVENT SERVICE] Failed to load event %s", event_id)
            raise StorageError(f"Failed to load event {event_id}") from exc

        if event is None:
            return None
        if guild_id is not None and event.guild_id != GuildID(guild_id):
            return None
        return event

    async def list_events(self, guild_id: GuildID, status: Optional[EventStatus] = None) -> List[GuildEvent]:
        """Return a guild's events, newest first, optionally only those in ``status``."""
        guild_id = GuildID(guild_id)
        try:
            async with self._connection.read() as conn:
                return await self._repo.list_for_guild(conn, guild_id, status)
        except Exception as exc:
            logger.exception("[GUILD EVENT SERVICE] Failed to list events for guild %s", guild_id)
            raise StorageError(f"Failed to list events for guild {guild_id}") from exc

    async def get_participant_channels(
        self, event_id: int, *, guild_id: Optional[GuildID] = None
    ) -> List[GuildEventChannel]:
        """Return an event's participant channels; empty when the event does not exist."""
        event = await self.get_event(event_id, guild_id=guild_id)
        if event is None:
            return []
        return list(event.participant_channels)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_event(
        self,
        guild_id: GuildID,
        user_id: UserID,
        name: str,
        description: Optional[str] = None,
        min_participation_minutes: Optional[int] = None,
        max_participants: Optional[int] = None,
    ) -> OperationResult[GuildEvent]:
        """
        Validate and persist a new event in the Created state.

        Returns:
            The stored event (with its id) on success, VALIDATION_ERROR otherwise.

        Raises:
            StorageError: If the insert fails.
        """
        name = (name or "").strip()
        description = (description or "").strip() or None

        if not name:
            return OperationResult.fail(OperationStatus.VALIDATION_ERROR, "Event name is required.")
        if len(name) > EVENT_NAME_MAX_LENGTH:
            return OperationResult.fail(
                OperationStatus.VALIDATION_ERROR,
                f"Event name cannot exceed {EVENT_NAME_MAX_LENGTH} characters.",
            )
        if description is not None and len(description) > EVENT_DESCRIPTION_MAX_LENGTH:
            return OperationResult.fail(
                OperationStatus.VALIDATION_ERROR,
                f"Event description cannot exceed {EVENT_DESCRIPTION_MAX_LENGTH} characters.",
            )
        if min_participation_minutes is not None and min_participation_minutes < 0:
            return OperationResult.fail(
                OperationStatus.VALIDATION_ERROR, "Minimum participation cannot be negative."
            )
        if max_participants is not None and max_participants < 1:
            return OperationResult.fail(
                OperationStatus.VALIDATION_ERROR, "Maximum participants must be at least 1."
            )

        event = GuildEvent(
            guild_id=GuildID(guild_id),
            name=name,
            description=description,
            minimum_participant_minutes=min_participation_minutes,
            maximum_participants=max_participants,
            created_at=self._clock(),
            created_by=UserID(user_id),
        )

        try:
            async with self._connection.transaction() as conn:
                event.id = await self._repo.insert(conn, event)
        except Exception as exc:
            logger.exception("[GUILD EVENT SERVICE] Failed to create event in guild %s", event.guild_id)
            raise StorageError("Database update failed while creating the event. Please try again.") from exc

        logger.info(
            "[GUILD EVENT SERVICE] Event %s '%s' created in guild %s by %s",
            event.id, event.name, event.guild_id, event.created_by,
        )
        return OperationResult.success(event)

    async def set_event_message(
        self,
        event_id: int,
        message_id: MessageID,
        origin_channel_id: ChannelID,
        *,
        guild_id: Optional[GuildID] = None,
    ) -> OperationResult[GuildEvent]:
        """Record the message the event was posted as, in any state."""
        event = await self.get_event(event_id, guild_id=guild_id)
        if event is None:
            return _not_found()

        event.message_id = MessageID(message_id)
        event.origin_channel_id = ChannelID(origin_channel_id)
        try:
            async with self._connection.transaction() as conn:
                await self._repo.update_message(conn, event.id, event.message_id, event.origin_channel_id)
        except Exception as exc:
            logger.exception("[GUILD EVENT SERVICE] Failed to record message for event %s", event_id)
            raise StorageError("Database update failed while saving the event message. Please try again.") from exc

        return OperationResult.success(event)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start_event(
        self, event_id: int, user_id: UserID, *, guild_id: Optional[GuildID] = None
    ) -> OperationResult[GuildEvent]:
        user_id = UserID(user_id)
        return await self._update_event_state(
            event_id,
            EVENT_TRANSITIONS["start"],
            lambda event, now: _mark_started(event, user_id, now),
            guild_id=guild_id,
        )

    async def pause_event(
        self, event_id: int, user_id: UserID, *, guild_id: Optional[GuildID] = None
    ) -> OperationResult[GuildEvent]:
        return await self._update_event_state(event_id, EVENT_TRANSITIONS["pause"], guild_id=guild_id)

    async def resume_event(
        self, event_id: int, user_id: UserID, *, guild_id: Optional[GuildID] = None
    ) -> OperationResult[GuildEvent]:
        return await self._update_event_state(event_id, EVENT_TRANSITIONS["resume"], guild_id=guild_id)

    async def complete_event(
        self, event_id: int, user_id: UserID, *, guild_id: Optional[GuildID] = None
    ) -> OperationResult[GuildEvent]:
        user_id = UserID(user_id)
        return await self._update_event_state(
            event_id,
            EVENT_TRANSITIONS["complete"],
            lambda event, now: _mark_completed(event, user_id, now),
            guild_id=guild_id,
        )

    async def cancel_event(
        self, event_id: int, user_id: UserID, *, guild_id: Optional[GuildID] = None
    ) -> OperationResult[GuildEvent]:
        return await self._update_event_state(event_id, EVENT_TRANSITIONS["cancel"], guild_id=guild_id)

    async def _update_event_state(
        self,
        event_id: int,
        transition: EventTransition,
        on_update: Optional[EventUpdate] = None,
        *,
        guild_id: Optional[GuildID] = None,
    ) -> OperationResult[GuildEvent]:
        event = await self.get_event(event_id, guild_id=guild_id)
        if event is None:
            return _not_found()

        previous = event.current_state
        if previous not in transition.allowed_from:
            return _invalid_transition(previous, transition.target)

        event.current_state = transition.target
        if on_update is not None:
            on_update(event, self._clock())

        try:
            async with self._connection.transaction() as conn:
                updated = await self._repo.update_state(conn, event, expected_state=previous)
                if not updated:
                    fresh = await self._repo.get(conn, event_id)
        except Exception as exc:
            logger.exception(
                "[GUILD EVENT SERVICE] Failed to move event %s to %s", event_id, transition.target
            )
            raise StorageError("Database update failed while changing the event state. Please try again.") from exc

        if not updated:
            if fresh is None:
                return _not_found()
            logger.warning(
                "[GUILD EVENT SERVICE] Event %s changed to %s before it could move to %s",
                event_id, fresh.current_state, transition.target,
            )
            return _invalid_transition(fresh.current_state, transition.target)

        logger.info(
            "[GUILD EVENT SERVICE] Event %s moved from %s to %s", event_id, previous, transition.target
        )
        return OperationResult.success(event)

    # ------------------------------------------------------------------
    # Participant channels
    # ------------------------------------------------------------------

    async def add_participant_channel(
        self, event_id: int, channel_id: ChannelID, *, guild_id: Optional[GuildID] = None
    ) -> OperationResult[GuildEvent]:
        """Track a channel for participation; only allowed before the event starts."""
        channel_id = ChannelID(channel_id)
        event = await self.get_event(event_id, guild_id=guild_id)
        if event is None:
            return _not_found()
        if event.current_state is not EventStatus.CREATED:
            return OperationResult.fail(OperationStatus.INVALID_STATE, CHANNELS_LOCKED)
        if event.has_channel(channel_id):
            return OperationResult.fail(OperationStatus.VALIDATION_ERROR, "This channel is already added.")

        event.participant_channels.append(GuildEventChannel(channel_id=channel_id))
        if not await self._save_channels(event, expected_state=EventStatus.CREATED):
            logger.warning(
                "[GUILD EVENT SERVICE] Event %s left Created before channel %s could be added", event_id, channel_id
            )
            return OperationResult.fail(OperationStatus.INVALID_STATE, CHANNELS_LOCKED)
        logger.info("[GUILD EVENT SERVICE] Channel %s added to event %s", channel_id, event_id)
        return OperationResult.success(event)

    async def remove_participant_channel(
        self, event_id: int, channel_id: ChannelID, *, guild_id: Optional[GuildID] = None
    ) -> OperationResult[GuildEvent]:
        """Stop tracking a channel, in any state."""
        channel_id = ChannelID(channel_id)
        event = await self.get_event(event_id, guild_id=guild_id)
        if event is None:
            return _not_found()
        if not event.has_channel(channel_id):
            return OperationResult.fail(
                OperationStatus.VALIDATION_ERROR, "This channel is not associated with the event."
            )

        event.participant_channels = [
            channel for channel in event.participant_channels if channel.channel_id != channel_id
        ]
        if not await self._save_channels(event):
            return _not_found()
        logger.info("[GUILD EVENT SERVICE] Channel %s removed from event %s", channel_id, event_id)
        return OperationResult.success(event)

    async def _save_channels(self, event: GuildEvent, expected_state: Optional[EventStatus] = None) -> bool:
        # Read-modify-write of the whole list: concurrent edits to the same
        # event can drop one of them.
        try:
            async with self._connection.transaction() as conn:
                return await self._repo.replace_channels(
                    conn, event.id, event.participant_channels, expected_state
                )
        except Exception as exc:
            logger.exception("[GUILD EVENT SERVICE] Failed to save channels for event %s", event.id)
            raise StorageError("Database update failed while saving event channels. Please try again.") from exc


# Global instance
guild_event_service = GuildEventService()
