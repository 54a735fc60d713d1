"""
Repository for the child tables owned by a guild event.

event_participants, participant_sessions and loot_piles all reference
guild_events(id) with ON DELETE CASCADE. Participation tracking and loot
distribution are not implemented yet, so this repository only records and
lists rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import List

import aiosqlite

from lootgoblin.datatypes.discord_datatypes import ChannelID, UserID
from lootgoblin.datatypes.event_datatypes import (
    EventParticipant,
    LootPile,
    LootRollType,
    LootStatus,
    LootType,
    ParticipantSession,
)


class EventRecordsRepository:
    """Insert/list access to an event's participants, sessions and loot piles."""

    async def add_participant(self, conn: aiosqlite.Connection, participant: EventParticipant) -> int:
        cursor = await conn.execute(
            """
            INSERT INTO event_participants (event_id, user_id, total_participation_seconds, excluded_from_loot)
            VALUES (?, ?, ?, ?)
            """,
            (
                participant.event_id,
                participant.user_id.to_db(),
                participant.total_participation_seconds,
                1 if participant.excluded_from_loot else 0,
            ),
        )
        participant.id = cursor.lastrowid
        await cursor.close()
        return participant.id

    async def add_session(self, conn: aiosqlite.Connection, session: ParticipantSession) -> int:
        cursor = await conn.execute(
            """
            INSERT INTO participant_sessions (event_id, event_participant_id, user_id, channel_id, started_at, ended_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                session.event_id,
                session.event_participant_id,
                session.user_id.to_db(),
                session.channel_id.to_db(),
                session.started_at.isoformat(),
                None if session.ended_at is None else session.ended_at.isoformat(),
            ),
        )
        session.id = cursor.lastrowid
        await cursor.close()
        return session.id

    async def add_loot_pile(self, conn: aiosqlite.Connection, pile: LootPile) -> int:
        cursor = await conn.execute(
            """
            INSERT INTO loot_piles (
                event_id, name, description, current_status, loot_type, roll_type,
                created_at, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                pile.event_id,
                pile.name,
                pile.description,
                pile.current_status.value,
                pile.loot_type.value,
                pile.roll_type.value,
                pile.created_at.isoformat(),
                pile.created_by.to_db(),
            ),
        )
        pile.id = cursor.lastrowid
        await cursor.close()
        return pile.id

    async def get_participants(self, conn: aiosqlite.Connection, event_id: int) -> List[EventParticipant]:
        async with conn.execute(
            """
            SELECT id, event_id, user_id, total_participation_seconds, excluded_from_loot
            FROM event_participants WHERE event_id = ? ORDER BY id
            """,
            (event_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            EventParticipant(
                id=row["id"],
                event_id=row["event_id"],
                user_id=UserID.from_db(row["user_id"]),
                total_participation_seconds=row["total_participation_seconds"],
                excluded_from_loot=bool(row["excluded_from_loot"]),
            )
            for row in rows
        ]

    async def get_sessions(self, conn: aiosqlite.Connection, event_id: int) -> List[ParticipantSession]:
        async with conn.execute(
            """
            SELECT id, event_id, event_participant_id, user_id, channel_id, started_at, ended_at
            FROM participant_sessions WHERE event_id = ? ORDER BY id
            """,
            (event_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            ParticipantSession(
                id=row["id"],
                event_id=row["event_id"],
                event_participant_id=row["event_participant_id"],
                user_id=UserID.from_db(row["user_id"]),
                channel_id=ChannelID.from_db(row["channel_id"]),
                started_at=datetime.fromisoformat(row["started_at"]),
                ended_at=None if row["ended_at"] is None else datetime.fromisoformat(row["ended_at"]),
            )
            for row in rows
        ]

    async def get_loot_piles(self, conn: aiosqlite.Connection, event_id: int) -> List[LootPile]:
        async with conn.execute(
            """
            SELECT id, event_id, name, description, current_status, loot_type, roll_type,
                   created_at, created_by
            FROM loot_piles WHERE event_id = ? ORDER BY id
            """,
            (event_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            LootPile(
                id=row["id"],
                event_id=row["event_id"],
                name=row["name"],
                description=row["description"],
                current_status=LootStatus(row["current_status"]),
                loot_type=LootType(row["loot_type"]),
                roll_type=LootRollType(row["roll_type"]),
                created_at=datetime.fromisoformat(row["created_at"]),
                created_by=UserID.from_db(row["created_by"]),
            )
            for row in rows
        ]
