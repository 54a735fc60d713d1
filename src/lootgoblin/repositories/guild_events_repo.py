"""
Repository for the guild_events table.

Participant channels live in the event row as a JSON array, so loading an
event always returns its channel list with it.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import List, Optional

import aiosqlite

from lootgoblin.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID, db_value, optional_db_id
from lootgoblin.datatypes.event_datatypes import EventStatus, GuildEvent, GuildEventChannel
from lootgoblin.util.logger import get_logger

logger = get_logger("guild_events_repo")

_EVENT_COLUMNS = """
    id, guild_id, message_id, origin_channel_id, name, description,
    minimum_participant_minutes, maximum_participants, current_state,
    created_at, created_by, started_at, started_by, completed_at, completed_by,
    participant_channels
"""


def _to_timestamp(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else value.isoformat()


def _from_timestamp(value: Optional[str]) -> Optional[datetime]:
    return None if value is None else datetime.fromisoformat(value)


def _dump_channels(channels: List[GuildEventChannel]) -> str:
    return json.dumps([channel.to_json() for channel in channels])


def _load_channels(raw: Optional[str]) -> List[GuildEventChannel]:
    if not raw:
        return []
    return [GuildEventChannel.from_json(item) for item in json.loads(raw)]


def _row_to_event(row: aiosqlite.Row) -> GuildEvent:
    return GuildEvent(
        id=row["id"],
        guild_id=GuildID.from_db(row["guild_id"]),
        message_id=optional_db_id(MessageID, row["message_id"]),
        origin_channel_id=optional_db_id(ChannelID, row["origin_channel_id"]),
        name=row["name"],
        description=row["description"],
        minimum_participant_minutes=row["minimum_participant_minutes"],
        maximum_participants=row["maximum_participants"],
        current_state=EventStatus(row["current_state"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        created_by=UserID.from_db(row["created_by"]),
        started_at=_from_timestamp(row["started_at"]),
        started_by=optional_db_id(UserID, row["started_by"]),
        completed_at=_from_timestamp(row["completed_at"]),
        completed_by=optional_db_id(UserID, row["completed_by"]),
        participant_channels=_load_channels(row["participant_channels"]),
    )


class GuildEventsRepository:
    """CRUD for the guild_events table."""

    async def insert(self, conn: aiosqlite.Connection, event: GuildEvent) -> int:
        """Insert a new event and return the id storage assigned to it."""
        cursor = await conn.execute(
            """
            INSERT INTO guild_events (
                guild_id, message_id, origin_channel_id, name, description,
                minimum_participant_minutes, maximum_participants, current_state,
                created_at, created_by, participant_channels
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.guild_id.to_db(),
                db_value(event.message_id),
                db_value(event.origin_channel_id),
                event.name,
                event.description,
                event.minimum_participant_minutes,
                event.maximum_participants,
                event.current_state.value,
                event.created_at.isoformat(),
                event.created_by.to_db(),
                _dump_channels(event.participant_channels),
            ),
        )
        event_id = cursor.lastrowid
        await cursor.close()
        return event_id

    async def get(self, conn: aiosqlite.Connection, event_id: int) -> Optional[GuildEvent]:
        """Fetch one event by id."""
        async with conn.execute(
            f"SELECT {_EVENT_COLUMNS} FROM guild_events WHERE id = ?",
            (event_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return None if row is None else _row_to_event(row)

    async def list_for_guild(
        self,
        conn: aiosqlite.Connection,
        guild_id: GuildID,
        status: Optional[EventStatus] = None,
    ) -> List[GuildEvent]:
        """Return a guild's events, newest first, optionally filtered by state."""
        query = f"SELECT {_EVENT_COLUMNS} FROM guild_events WHERE guild_id = ?"
        params: list = [guild_id.to_db()]
        if status is not None:
            query += " AND current_state = ?"
            params.append(status.value)
        query += " ORDER BY created_at DESC, id DESC"

        async with conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_event(row) for row in rows]

    async def update_state(
        self,
        conn: aiosqlite.Connection,
        event: GuildEvent,
        expected_state: EventStatus,
    ) -> bool:
        """
        Write the event's state and audit columns if its stored state is still
        ``expected_state``.

        Returns:
            False when another writer changed the state first (nothing written).
        """
        cursor = await conn.execute(
            """
            UPDATE guild_events
            SET current_state = ?,
                started_at = ?, started_by = ?,
                completed_at = ?, completed_by = ?
            WHERE id = ? AND current_state = ?
            """,
            (
                event.current_state.value,
                _to_timestamp(event.started_at),
                db_value(event.started_by),
                _to_timestamp(event.completed_at),
                db_value(event.completed_by),
                event.id,
                expected_state.value,
            ),
        )
        updated = cursor.rowcount == 1
        await cursor.close()
        return updated

    async def update_message(
        self,
        conn: aiosqlite.Connection,
        event_id: int,
        message_id: MessageID,
        origin_channel_id: ChannelID,
    ) -> None:
        await conn.execute(
            "UPDATE guild_events SET message_id = ?, origin_channel_id = ? WHERE id = ?",
            (message_id.to_db(), origin_channel_id.to_db(), event_id),
        )

    async def replace_channels(
        self,
        conn: aiosqlite.Connection,
        event_id: int,
        channels: List[GuildEventChannel],
        expected_state: Optional[EventStatus] = None,
    ) -> bool:
        """
        Overwrite the event's participant channel list, only while its stored
        state is ``expected_state`` when one is given.

        Returns:
            False when no row was updated.
        """
        query = "UPDATE guild_events SET participant_channels = ? WHERE id = ?"
        params: list = [_dump_channels(channels), event_id]
        if expected_state is not None:
            query += " AND current_state = ?"
            params.append(expected_state.value)

        cursor = await conn.execute(query, params)
        updated = cursor.rowcount == 1
        await cursor.close()
        return updated

    async def delete(self, conn: aiosqlite.Connection, event_id: int) -> None:
        """Delete an event (CASCADE removes participants, sessions and loot piles)."""
        await conn.execute("DELETE FROM guild_events WHERE id = ?", (event_id,))
