"""
Tests for GuildEventService: creation rules, the lifecycle state machine,
participant channels and tenant scoping.
"""

from datetime import datetime, timedelta, timezone

import pytest

from lootgoblin.database.db_connection import ConnectionManager
from lootgoblin.database.db_errors import StorageError
from lootgoblin.datatypes.discord_datatypes import SNOWFLAKE_MAX, ChannelID, GuildID, MessageID, UserID
from lootgoblin.datatypes.event_datatypes import EventStatus
from lootgoblin.datatypes.operation_result import OperationStatus
from lootgoblin.events.guild_event_service import GuildEventService

GUILD = GuildID(1)
OTHER_GUILD = GuildID(2)
ORGANIZER = UserID(10)
CLOSER = UserID(11)


class StepClock:
    """Returns a strictly increasing UTC time on every call."""

    def __init__(self):
        self.now = datetime(2025, 6, 1, 18, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


@pytest.fixture
def service(connection):
    return GuildEventService(connection=connection, clock=StepClock())


async def create(service, name="Raid Night", **kwargs):
    result = await service.create_event(GUILD, ORGANIZER, name, **kwargs)
    assert result.is_success, result.message
    return result.value


async def move_to(service, event_id, state):
    """Drive an event from Created to ``state`` along the shortest legal path."""
    paths = {
        EventStatus.CREATED: [],
        EventStatus.ACTIVE: [service.start_event],
        EventStatus.PAUSED: [service.start_event, service.pause_event],
        EventStatus.COMPLETED: [service.start_event, service.complete_event],
        EventStatus.CANCELLED: [service.cancel_event],
    }
    for step in paths[state]:
        assert (await step(event_id, ORGANIZER)).is_success


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_event_persists_created_event(service):
    event = await create(service, "  Raid Night  ", description="  Bring potions ",
                         min_participation_minutes=30, max_participants=20)

    assert event.id > 0
    assert event.current_state is EventStatus.CREATED
    assert event.name == "Raid Night"
    assert event.description == "Bring potions"
    assert event.created_by == ORGANIZER
    assert event.created_at.tzinfo is not None

    stored = await service.get_event(event.id)
    assert stored.name == "Raid Night"
    assert stored.minimum_participant_minutes == 30
    assert stored.maximum_participants == 20
    assert stored.created_at == event.created_at
    assert stored.participant_channels == []


@pytest.mark.asyncio
async def test_whitespace_description_is_stored_as_none(service):
    event = await create(service, description="   ")
    assert event.description is None
    assert (await service.get_event(event.id)).description is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs, message",
    [
        (dict(name="   "), "Event name is required."),
        (dict(name=""), "Event name is required."),
        (dict(name="x" * 257), "Event name cannot exceed 256 characters."),
        (dict(name="Raid", description="d" * 2049), "Event description cannot exceed 2048 characters."),
        (dict(name="Raid", min_participation_minutes=-1), "Minimum participation cannot be negative."),
        (dict(name="Raid", max_participants=0), "Maximum participants must be at least 1."),
    ],
)
async def test_create_event_validation(service, kwargs, message):
    result = await service.create_event(GUILD, ORGANIZER, **kwargs)

    assert result.status is OperationStatus.VALIDATION_ERROR
    assert result.message == message
    assert await service.list_events(GUILD) == []


@pytest.mark.asyncio
async def test_create_event_accepts_boundaries(service):
    event = await create(service, "x" * 256, description="d" * 2048,
                         min_participation_minutes=0, max_participants=1)
    assert len(event.name) == 256


@pytest.mark.asyncio
async def test_event_ids_are_unique(service):
    first = await create(service, "One")
    second = await create(service, "Two")
    assert first.id != second.id


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

TRANSITIONS = {
    "start": (EventStatus.ACTIVE, {EventStatus.CREATED}),
    "pause": (EventStatus.PAUSED, {EventStatus.ACTIVE}),
    "resume": (EventStatus.ACTIVE, {EventStatus.PAUSED}),
    "complete": (EventStatus.COMPLETED, {EventStatus.ACTIVE}),
    "cancel": (
        EventStatus.CANCELLED,
        {EventStatus.CREATED, EventStatus.ACTIVE, EventStatus.PAUSED, EventStatus.COMPLETED},
    ),
}


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", list(TRANSITIONS))
@pytest.mark.parametrize("state", list(EventStatus))
async def test_transition_table(service, operation, state):
    target, allowed_from = TRANSITIONS[operation]
    event = await create(service)
    await move_to(service, event.id, state)

    result = await getattr(service, f"{operation}_event")(event.id, CLOSER)
    stored = await service.get_event(event.id)

    if state in allowed_from:
        assert result.is_success
        assert result.value.current_state is target
        assert stored.current_state is target
    else:
        assert result.status is OperationStatus.INVALID_STATE
        assert result.message == f"Cannot change event from {state} to {target}."
        assert stored.current_state is state


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", list(TRANSITIONS))
async def test_transition_unknown_event(service, operation):
    result = await getattr(service, f"{operation}_event")(404, ORGANIZER)

    assert result.status is OperationStatus.NOT_FOUND
    assert result.message == "Event not found."


@pytest.mark.asyncio
async def test_start_and_complete_record_audit_fields(service):
    event = await create(service)

    started = (await service.start_event(event.id, ORGANIZER)).value
    assert started.started_by == ORGANIZER
    assert started.started_at is not None
    assert started.completed_at is None

    completed = (await service.complete_event(event.id, CLOSER)).value
    stored = await service.get_event(event.id)
    assert stored.started_by == ORGANIZER
    assert stored.started_at == started.started_at
    assert stored.completed_by == CLOSER
    assert stored.completed_at == completed.completed_at
    assert stored.completed_at > stored.started_at


@pytest.mark.asyncio
async def test_pause_resume_cancel_leave_audit_fields_alone(service):
    event = await create(service)
    await service.start_event(event.id, ORGANIZER)
    started_at = (await service.get_event(event.id)).started_at

    await service.pause_event(event.id, CLOSER)
    await service.resume_event(event.id, CLOSER)
    await service.cancel_event(event.id, CLOSER)

    stored = await service.get_event(event.id)
    assert stored.current_state is EventStatus.CANCELLED
    assert stored.started_at == started_at
    assert stored.started_by == ORGANIZER
    assert stored.completed_at is None
    assert stored.completed_by is None


@pytest.mark.asyncio
async def test_stale_transition_does_not_overwrite_newer_state(service, monkeypatch):
    event = await create(service)
    stale_snapshot = await service.get_event(event.id)

    # another organizer cancels the event first
    assert (await service.cancel_event(event.id, CLOSER)).is_success

    async def stale_get_event(event_id, *, guild_id=None):
        return stale_snapshot

    monkeypatch.setattr(service, "get_event", stale_get_event)
    result = await service.start_event(event.id, ORGANIZER)
    monkeypatch.undo()

    assert result.status is OperationStatus.INVALID_STATE
    assert result.message == "Cannot change event from Cancelled to Active."
    stored = await service.get_event(event.id)
    assert stored.current_state is EventStatus.CANCELLED
    assert stored.started_at is None


@pytest.mark.asyncio
async def test_raid_night_end_to_end(service):
    event = await create(service, "Raid Night")
    assert (await service.add_participant_channel(event.id, ChannelID(100))).is_success

    assert (await service.start_event(event.id, ORGANIZER)).is_success
    assert (await service.pause_event(event.id, ORGANIZER)).is_success
    assert (await service.resume_event(event.id, ORGANIZER)).is_success
    assert (await service.complete_event(event.id, ORGANIZER)).is_success

    late = await service.add_participant_channel(event.id, ChannelID(200))
    assert late.status is OperationStatus.INVALID_STATE

    cancelled = await service.cancel_event(event.id, ORGANIZER)
    assert cancelled.value.current_state is EventStatus.CANCELLED

    again = await service.cancel_event(event.id, ORGANIZER)
    assert again.status is OperationStatus.INVALID_STATE
    assert again.message == "Cannot change event from Cancelled to Cancelled."

    channels = await service.get_participant_channels(event.id)
    assert [c.channel_id for c in channels] == [ChannelID(100)]


# ---------------------------------------------------------------------------
# Participant channels
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_add_participant_channel(service):
    event = await create(service)

    result = await service.add_participant_channel(event.id, ChannelID(100))
    await service.add_participant_channel(event.id, 200)

    assert result.is_success
    channels = await service.get_participant_channels(event.id)
    assert {c.channel_id.to_int() for c in channels} == {100, 200}


@pytest.mark.asyncio
async def test_add_duplicate_channel_is_rejected(service):
    event = await create(service)
    await service.add_participant_channel(event.id, ChannelID(100))

    result = await service.add_participant_channel(event.id, ChannelID(100))

    assert result.status is OperationStatus.VALIDATION_ERROR
    assert result.message == "This channel is already added."
    assert len(await service.get_participant_channels(event.id)) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "state", [EventStatus.ACTIVE, EventStatus.PAUSED, EventStatus.COMPLETED, EventStatus.CANCELLED]
)
async def test_add_channel_only_while_created(service, state):
    event = await create(service)
    await move_to(service, event.id, state)

    result = await service.add_participant_channel(event.id, ChannelID(100))

    assert result.status is OperationStatus.INVALID_STATE
    assert result.message == "Channels can only be modified while the event is in Created state."
    assert await service.get_participant_channels(event.id) == []


@pytest.mark.asyncio
async def test_add_channel_loses_to_concurrent_start(service, monkeypatch):
    event = await create(service)
    snapshot_before_start = await service.get_event(event.id)
    assert (await service.start_event(event.id, CLOSER)).is_success

    async def stale_get_event(event_id, *, guild_id=None):
        return snapshot_before_start

    monkeypatch.setattr(service, "get_event", stale_get_event)
    result = await service.add_participant_channel(event.id, ChannelID(100))
    monkeypatch.undo()

    assert result.status is OperationStatus.INVALID_STATE
    assert result.message == "Channels can only be modified while the event is in Created state."
    stored = await service.get_event(event.id)
    assert stored.current_state is EventStatus.ACTIVE
    assert stored.participant_channels == []


@pytest.mark.asyncio
async def test_channel_operations_on_unknown_event(service):
    added = await service.add_participant_channel(404, ChannelID(1))
    removed = await service.remove_participant_channel(404, ChannelID(1))

    assert added.status is OperationStatus.NOT_FOUND
    assert removed.status is OperationStatus.NOT_FOUND
    assert await service.get_participant_channels(404) == []


@pytest.mark.asyncio
async def test_remove_participant_channel(service):
    event = await create(service)
    await service.add_participant_channel(event.id, ChannelID(100))
    await service.add_participant_channel(event.id, ChannelID(200))

    result = await service.remove_participant_channel(event.id, ChannelID(100))

    assert result.is_success
    channels = await service.get_participant_channels(event.id)
    assert [c.channel_id for c in channels] == [ChannelID(200)]


@pytest.mark.asyncio
async def test_remove_absent_channel_is_rejected(service):
    event = await create(service)

    result = await service.remove_participant_channel(event.id, ChannelID(100))

    assert result.status is OperationStatus.VALIDATION_ERROR
    assert result.message == "This channel is not associated with the event."


@pytest.mark.asyncio
async def test_remove_channel_is_allowed_after_start(service):
    event = await create(service)
    await service.add_participant_channel(event.id, ChannelID(100))
    await service.start_event(event.id, ORGANIZER)

    result = await service.remove_participant_channel(event.id, ChannelID(100))

    assert result.is_success
    assert await service.get_participant_channels(event.id) == []


# ---------------------------------------------------------------------------
# Messages, listing and tenant scoping
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_set_event_message(service):
    event = await create(service)
    await move_to(service, event.id, EventStatus.CANCELLED)

    result = await service.set_event_message(event.id, MessageID(900), ChannelID(901))

    assert result.is_success
    stored = await service.get_event(event.id)
    assert stored.message_id == MessageID(900)
    assert stored.origin_channel_id == ChannelID(901)
    assert stored.is_published


@pytest.mark.asyncio
async def test_set_event_message_unknown_event(service):
    result = await service.set_event_message(404, MessageID(1), ChannelID(2))
    assert result.status is OperationStatus.NOT_FOUND


@pytest.mark.asyncio
async def test_list_events_newest_first_and_filtered(service):
    first = await create(service, "First")
    second = await create(service, "Second")
    third = await create(service, "Third")
    await service.start_event(second.id, ORGANIZER)
    await service.cancel_event(third.id, ORGANIZER)
    await service.create_event(OTHER_GUILD, ORGANIZER, "Elsewhere")

    events = await service.list_events(GUILD)
    assert [e.id for e in events] == [third.id, second.id, first.id]

    active = await service.list_events(GUILD, EventStatus.ACTIVE)
    assert [e.id for e in active] == [second.id]


@pytest.mark.asyncio
async def test_other_guild_events_are_not_found(service):
    event = await create(service)

    assert await service.get_event(event.id, guild_id=OTHER_GUILD) is None
    assert (await service.start_event(event.id, ORGANIZER, guild_id=OTHER_GUILD)).status is OperationStatus.NOT_FOUND
    assert (await service.add_participant_channel(event.id, ChannelID(5), guild_id=OTHER_GUILD)).status is OperationStatus.NOT_FOUND
    assert await service.get_participant_channels(event.id, guild_id=OTHER_GUILD) == []

    assert (await service.get_event(event.id)).current_state is EventStatus.CREATED
    assert (await service.start_event(event.id, ORGANIZER, guild_id=GUILD)).is_success


@pytest.mark.asyncio
async def test_storage_failure_raises():
    service = GuildEventService(connection=ConnectionManager())

    with pytest.raises(StorageError):
        await service.create_event(GUILD, ORGANIZER, "Raid Night")
    with pytest.raises(StorageError):
        await service.start_event(1, ORGANIZER)


@pytest.mark.asyncio
async def test_ids_above_signed_range_round_trip(service):
    guild = GuildID(2 ** 63)
    organizer = UserID(SNOWFLAKE_MAX)

    created = await service.create_event(guild, organizer, "Raid Night")
    assert created.is_success
    event_id = created.value.id

    assert (await service.add_participant_channel(event_id, ChannelID(SNOWFLAKE_MAX), guild_id=guild)).is_success
    assert (await service.set_event_message(event_id, MessageID(SNOWFLAKE_MAX), ChannelID(2 ** 63 + 1))).is_success
    assert (await service.start_event(event_id, organizer, guild_id=guild)).is_success

    [stored] = await service.list_events(guild)
    assert stored.guild_id == guild
    assert stored.created_by == organizer
    assert stored.started_by == organizer
    assert stored.message_id == MessageID(SNOWFLAKE_MAX)
    assert stored.origin_channel_id == ChannelID(2 ** 63 + 1)
    assert [c.channel_id for c in stored.participant_channels] == [ChannelID(SNOWFLAKE_MAX)]
    assert await service.list_events(GUILD) == []
