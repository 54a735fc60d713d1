"""
Tests for database lifecycle and schema behaviour.
"""

from datetime import datetime, timezone

import pytest

from lootgoblin.database.database import Database
from lootgoblin.database.db_connection import ConnectionManager
from lootgoblin.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from lootgoblin.datatypes.event_datatypes import (
    EventParticipant,
    GuildEvent,
    LootPile,
    LootRollType,
    ParticipantSession,
)
from lootgoblin.repositories import EventRecordsRepository, GuildEventsRepository

NOW = datetime(2025, 6, 1, 18, 0, tzinfo=timezone.utc)


async def insert_event(conn, guild_id=1, name="Raid Night"):
    event = GuildEvent(guild_id=GuildID(guild_id), name=name, created_at=NOW, created_by=UserID(2))
    event.id = await GuildEventsRepository().insert(conn, event)
    return event


async def count(conn, table):
    async with conn.execute(f"SELECT COUNT(*) FROM {table}") as cursor:
        row = await cursor.fetchone()
    return row[0]


@pytest.mark.asyncio
async def test_initialize_and_shutdown(tmp_path):
    db = Database(tmp_path / "nested" / "bot.db", connection=ConnectionManager())

    assert await db.initialize() is True
    assert db.is_initialized
    assert (tmp_path / "nested" / "bot.db").exists()

    # second call is a no-op
    assert await db.initialize() is True

    await db.shutdown()
    assert not db.is_initialized
    assert not db.connection.is_open

    # shutting down twice is safe
    await db.shutdown()


@pytest.mark.asyncio
async def test_initialize_reports_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    db = Database(blocker / "bot.db", connection=ConnectionManager())

    assert await db.initialize() is False
    assert not db.is_initialized


@pytest.mark.asyncio
async def test_schema_version_recorded(connection):
    async with connection.read() as conn:
        async with conn.execute("SELECT version FROM schema_version") as cursor:
            rows = await cursor.fetchall()
    assert [row["version"] for row in rows] == [1]


@pytest.mark.asyncio
async def test_connection_enables_wal_and_foreign_keys(connection):
    async with connection.read() as conn:
        async with conn.execute("PRAGMA journal_mode") as cursor:
            assert (await cursor.fetchone())[0] == "wal"
        async with conn.execute("PRAGMA foreign_keys") as cursor:
            assert (await cursor.fetchone())[0] == 1


def test_connection_requires_open():
    manager = ConnectionManager()
    with pytest.raises(RuntimeError):
        manager.connection


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(connection):
    with pytest.raises(RuntimeError):
        async with connection.transaction() as conn:
            await insert_event(conn)
            raise RuntimeError("boom")

    async with connection.read() as conn:
        assert await count(conn, "guild_events") == 0


@pytest.mark.asyncio
async def test_deleting_event_cascades_to_child_records(connection):
    records = EventRecordsRepository()
    async with connection.transaction() as conn:
        event = await insert_event(conn)
        participant = EventParticipant(event_id=event.id, user_id=UserID(3), total_participation_seconds=120)
        await records.add_participant(conn, participant)
        await records.add_session(
            conn,
            ParticipantSession(
                event_id=event.id,
                event_participant_id=participant.id,
                user_id=UserID(3),
                channel_id=ChannelID(4),
                started_at=NOW,
            ),
        )
        await records.add_loot_pile(
            conn,
            LootPile(event_id=event.id, name="Dragon hoard", created_at=NOW, created_by=UserID(2),
                     roll_type=LootRollType.BID),
        )

    async with connection.read() as conn:
        assert len(await records.get_participants(conn, event.id)) == 1
        sessions = await records.get_sessions(conn, event.id)
        assert sessions[0].ended_at is None
        piles = await records.get_loot_piles(conn, event.id)
        assert piles[0].roll_type is LootRollType.BID

    async with connection.transaction() as conn:
        await GuildEventsRepository().delete(conn, event.id)

    async with connection.read() as conn:
        for table in ("guild_events", "event_participants", "participant_sessions", "loot_piles"):
            assert await count(conn, table) == 0


@pytest.mark.asyncio
async def test_deleting_one_event_keeps_other_events_records(connection):
    records = EventRecordsRepository()
    async with connection.transaction() as conn:
        doomed = await insert_event(conn, name="Doomed")
        kept = await insert_event(conn, name="Kept")
        await records.add_participant(conn, EventParticipant(event_id=doomed.id, user_id=UserID(3)))
        await records.add_participant(conn, EventParticipant(event_id=kept.id, user_id=UserID(3)))

    async with connection.transaction() as conn:
        await GuildEventsRepository().delete(conn, doomed.id)

    async with connection.read() as conn:
        remaining = await records.get_participants(conn, kept.id)
    assert [p.event_id for p in remaining] == [kept.id]


@pytest.mark.asyncio
async def test_child_record_requires_existing_event(connection):
    records = EventRecordsRepository()
    with pytest.raises(Exception):
        async with connection.transaction() as conn:
            await records.add_participant(conn, EventParticipant(event_id=999, user_id=UserID(3)))
