"""SQLite-backed room store."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.models import CHAT_LOG_FIELD, GAME_DATA_FIELD, MUTABLE_FIELDS, USERS_FIELD, NewRoom, RoomRecord
from shared.dal.room_store import RoomStore
from shared.exceptions import DuplicateRoomError, RoomNotFoundError, StoreUnavailableError

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()

_FIELD_COLUMNS = {
    USERS_FIELD: "users",
    GAME_DATA_FIELD: "game_data",
    CHAT_LOG_FIELD: "chat_log",
}

_SELECT_ROOM = "SELECT id, room_number, game_kind, player_count, users, game_data, chat_log FROM rooms"


def _row_to_record(row: tuple[Any, ...]) -> RoomRecord:
    room_id, room_number, game_kind, player_count, users, game_data, chat_log = row
    return RoomRecord(
        room_id=room_id,
        room_number=room_number,
        game_kind=game_kind,
        player_count=player_count,
        users=json.loads(users),
        game_data=json.loads(game_data),
        chat_log=json.loads(chat_log),
    )


class SqliteRoomStore(RoomStore):
    """SQLite implementation of RoomStore.

    Rosters, game data and chat logs are stored as JSON text columns and
    decoded into structured values on every read. Writes replace whole
    columns in a single UPDATE, so a save of several fields is atomic.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create(self, room: NewRoom) -> RoomRecord:
        """Insert a new room. Raises DuplicateRoomError when the room number is taken."""
        room_id = uuid.uuid4().hex
        async with self._lock:
            try:
                self._db.connection.execute(
                    "INSERT INTO rooms "
                    "(id, room_number, game_kind, player_count, users, game_data, chat_log, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        room_id,
                        room.room_number,
                        room.game_kind,
                        room.player_count,
                        "[]",
                        json.dumps(room.game_data),
                        json.dumps(list(room.chat_log)),
                        datetime.now(tz=UTC).isoformat(),
                    ),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError:
                self._db.connection.rollback()
                logger.warning("room number already taken", room_number=room.room_number)
                raise DuplicateRoomError(room.room_number) from None
            except sqlite3.OperationalError as e:
                self._db.connection.rollback()
                raise StoreUnavailableError(str(e)) from e
        logger.debug("room row inserted", room_id=room_id, room_number=room.room_number)
        return RoomRecord(
            room_id=room_id,
            room_number=room.room_number,
            game_kind=room.game_kind,
            player_count=room.player_count,
            game_data=room.game_data,
            chat_log=room.chat_log,
        )

    async def find(self, room_number: str) -> RoomRecord | None:
        row = self._fetch_one(f"{_SELECT_ROOM} WHERE room_number = ?", (room_number,))
        return _row_to_record(row) if row is not None else None

    async def load(self, room_id: str) -> RoomRecord:
        row = self._fetch_one(f"{_SELECT_ROOM} WHERE id = ?", (room_id,))
        if row is None:
            raise RoomNotFoundError(room_id=room_id)
        return _row_to_record(row)

    async def save(self, room_id: str, fields: Mapping[str, Any]) -> None:
        """Replace the given fields of one room in a single statement."""
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot save read-only or unknown room fields: {sorted(unknown)}")
        if not fields:
            return

        assignments = ", ".join(f"{_FIELD_COLUMNS[name]} = ?" for name in fields)
        values = [json.dumps(value) for value in fields.values()]
        async with self._lock:
            try:
                cursor = self._db.connection.execute(
                    f"UPDATE rooms SET {assignments} WHERE id = ?",  # noqa: S608
                    (*values, room_id),
                )
                self._db.connection.commit()
            except sqlite3.OperationalError as e:
                self._db.connection.rollback()
                raise StoreUnavailableError(str(e)) from e
        if cursor.rowcount == 0:
            raise RoomNotFoundError(room_id=room_id)

    async def list_room_numbers(self) -> list[str]:
        try:
            rows = self._db.connection.execute("SELECT room_number FROM rooms ORDER BY created_at, rowid").fetchall()
        except sqlite3.OperationalError as e:
            raise StoreUnavailableError(str(e)) from e
        return [row[0] for row in rows]

    def _fetch_one(self, query: str, params: tuple[Any, ...]) -> tuple[Any, ...] | None:
        try:
            return self._db.connection.execute(query, params).fetchone()
        except sqlite3.OperationalError as e:
            raise StoreUnavailableError(str(e)) from e
