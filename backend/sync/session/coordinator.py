"""Bind connections to rooms and apply their events to the authoritative room state."""

from __future__ import annotations

import contextlib
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from shared.dal.models import CHAT_LOG_FIELD, GAME_DATA_FIELD, USERS_FIELD
from shared.exceptions import MalformedPayloadError, RoomNotFoundError, RoomSyncError
from sync.chat_log import append_log, chat_line, entered_line, event_line, left_line
from sync.game_data import changed_keys, merge_game_data
from sync.messaging.types import ErrorMessage, RoomStateMessage, RoomUpdateMessage, SessionErrorCode
from sync.roster import (
    CARDS_WAITING,
    Roster,
    User,
    remove_on_disconnect,
    roster_from_records,
    roster_to_records,
    set_in_game_for_seated,
    sit_in,
    stand_up,
    upsert_user,
)
from sync.session.broadcast import RoomChannels
from sync.session.heartbeat import KeepAliveSender
from sync.session.locks import RoomLocks
from sync.session.models import Session

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Mapping

    from shared.dal.models import RoomRecord
    from shared.dal.room_store import RoomStore
    from sync.messaging.protocol import ConnectionProtocol

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class RoomSessionCoordinator:
    """Per-connection state machine over the shared room store.

    Connections move UNBOUND -> BOUND (after a successful join) -> CLOSED
    (after disconnect). Every mutation runs under the room's lock and
    re-reads the latest persisted record before applying its change, so
    concurrent events for one room are applied one at a time in arrival
    order and never overwrite each other. Deltas are broadcast while the
    lock is still held, so members see them in commit order.

    Domain errors (RoomSyncError) propagate to the caller, which reports
    them to the originating connection. A failure before the save leaves
    the room untouched; a failed save is never retried and nothing is
    broadcast for it.
    """

    def __init__(
        self,
        store: RoomStore,
        *,
        keepalive: KeepAliveSender | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._keepalive = keepalive or KeepAliveSender()
        self._clock = clock
        self._locks = RoomLocks()
        self._channels = RoomChannels()
        self._sessions: dict[str, Session] = {}  # connection_id -> session

    # --- Connection lifecycle ---

    def register_connection(self, connection: ConnectionProtocol) -> Session:
        session = self._sessions.get(connection.connection_id)
        if session is None:
            session = Session(connection=connection)
            self._sessions[connection.connection_id] = session
        return session

    def get_session(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    def room_members(self, room_id: str) -> list[Session]:
        return self._channels.members(room_id)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    async def join(
        self,
        connection: ConnectionProtocol,
        *,
        room_number: str,
        user_name: str,
        seat_template: Mapping[str, Any] | None = None,
    ) -> None:
        """Bind an UNBOUND connection to a room.

        The joiner receives the room snapshot as it was before their arrival;
        the "entered the room" line then reaches every member, joiner included.
        """
        session = self.register_connection(connection)
        if session.is_bound:
            await self._send_error(connection, SessionErrorCode.ALREADY_IN_ROOM, "Already in a room")
            return
        if user_name == CARDS_WAITING:
            raise MalformedPayloadError(f"{CARDS_WAITING!r} is a reserved name")
        template = dict(seat_template or {})
        try:
            # the template becomes this user's roster entry on stand-up
            User.model_validate({**template, "name": user_name})
        except ValidationError as e:
            raise MalformedPayloadError(f"invalid seat template: {e}") from e

        async with self._room_transaction(room_number) as record:
            room_id = record.room_id
            line = entered_line(user_name, self._clock())
            await self._store.save(room_id, {CHAT_LOG_FIELD: list(append_log(record.chat_log, line))})

            session.bind(
                room_id=room_id,
                room_number=record.room_number,
                user_name=user_name,
                seat_template=template,
            )
            self._channels.subscribe(room_id, session)
            await self._send(connection, RoomStateMessage(data=record.snapshot()).to_wire())
            await self._broadcast(room_id, {CHAT_LOG_FIELD: line})

        self._keepalive.start(connection)
        structlog.contextvars.bind_contextvars(room_id=room_id, room_number=record.room_number, user_name=user_name)
        logger.info("%s joined room %s", user_name, record.room_number)

    async def disconnect(self, connection: ConnectionProtocol) -> None:
        """Close the session; a bound user leaves the room (in-game seats keep their cards)."""
        session = self._sessions.pop(connection.connection_id, None)
        if session is None:
            return
        await self._keepalive.stop(connection.connection_id)
        was_bound = session.is_bound
        session.close()
        if not was_bound or session.room_id is None or not session.user_name:
            return

        room_id, user_name = session.room_id, session.user_name
        self._channels.unsubscribe(room_id, connection.connection_id)
        if any(other.user_name == user_name for other in self._channels.members(room_id)):
            # Same user is still connected elsewhere (reconnect before the old socket dropped).
            logger.info("%s still connected to room %s, keeping roster entry", user_name, session.room_number)
            return

        try:
            async with self._room_transaction(session.room_number, room_id) as record:
                line = left_line(user_name, self._clock())
                chat_log = append_log(record.chat_log, line)
                users = roster_to_records(remove_on_disconnect(self._roster(record), user_name))
                await self._store.save(room_id, {CHAT_LOG_FIELD: list(chat_log), USERS_FIELD: users})
                await self._broadcast(room_id, {CHAT_LOG_FIELD: line, USERS_FIELD: users})
        except RoomSyncError as e:
            logger.warning("could not record %s leaving room %s: %s", user_name, session.room_number, e)
            return
        logger.info("%s left room %s", user_name, session.room_number)

    async def shutdown(self) -> None:
        await self._keepalive.stop_all()

    # --- Room events ---

    async def chat_message(self, connection: ConnectionProtocol, text: str) -> None:
        session = await self._require_bound(connection)
        if session is not None:
            await self._append_line(session, chat_line(session.user_name, text, self._clock()))

    async def game_event_message(self, connection: ConnectionProtocol, text: str) -> None:
        session = await self._require_bound(connection)
        if session is not None:
            await self._append_line(session, event_line(session.user_name, text, self._clock()))

    async def update_user(self, connection: ConnectionProtocol, user: User) -> None:
        """Upsert a roster entry; the broadcast pairs the roster with the current game data."""
        session = await self._require_bound(connection)
        if session is None:
            return
        if user.is_placeholder:
            raise MalformedPayloadError(f"{CARDS_WAITING!r} is a reserved name")

        async with self._bound_transaction(session) as (room_id, record):
            users = roster_to_records(upsert_user(self._roster(record), user))
            await self._store.save(room_id, {USERS_FIELD: users})
            await self._broadcast(room_id, {USERS_FIELD: users, GAME_DATA_FIELD: record.game_data})

    async def stand_up(self, connection: ConnectionProtocol, *, name: str | None = None) -> None:
        """Stand the session's user up, leaving their seat's cards waiting for pickup."""
        session = await self._require_bound(connection)
        if session is None:
            return
        if name is not None and name != session.user_name:
            raise MalformedPayloadError(f"cannot stand up {name!r} from {session.user_name!r}'s connection")

        async with self._bound_transaction(session) as (room_id, record):
            roster = stand_up(self._roster(record), session.user_name, session.seat_template)
            await self._save_and_broadcast_users(room_id, roster)

    async def sit_in(self, connection: ConnectionProtocol, seat: str) -> None:
        """Pick up the cards waiting at ``seat``."""
        session = await self._require_bound(connection)
        if session is None:
            return
        async with self._bound_transaction(session) as (room_id, record):
            roster = sit_in(self._roster(record), seat, session.user_name)
            await self._save_and_broadcast_users(room_id, roster)

    async def set_in_game(self, connection: ConnectionProtocol, *, status: bool) -> None:
        session = await self._require_bound(connection)
        if session is None:
            return
        async with self._bound_transaction(session) as (room_id, record):
            roster = set_in_game_for_seated(self._roster(record), status)
            await self._save_and_broadcast_users(room_id, roster)

    async def update_game_data(self, connection: ConnectionProtocol, patch: Mapping[str, Any]) -> None:
        session = await self._require_bound(connection)
        if session is None:
            return
        async with self._bound_transaction(session) as (room_id, record):
            merged = merge_game_data(record.game_data, patch)
            await self._store.save(room_id, {GAME_DATA_FIELD: merged})
            await self._broadcast(room_id, {GAME_DATA_FIELD: merged})
        logger.debug("game data updated in room %s: %s", session.room_number, changed_keys(record.game_data, merged))

    # --- Pre-join registration (HTTP) ---

    async def register_user(self, room_number: str, user_name: str, user_object: Mapping[str, Any]) -> Roster:
        """Add or replace a user in a room's roster before they connect.

        Runs under the same room lock as realtime events. Nothing is broadcast.
        """
        if user_name == CARDS_WAITING:
            raise MalformedPayloadError(f"{CARDS_WAITING!r} is a reserved name")
        try:
            user = User.model_validate({**user_object, "name": user_name})
        except ValidationError as e:
            raise MalformedPayloadError(str(e)) from e

        async with self._room_transaction(room_number) as record:
            roster = upsert_user(self._roster(record), user)
            await self._store.save(record.room_id, {USERS_FIELD: roster_to_records(roster)})
        logger.info("registered %s in room %s", user_name, room_number)
        return roster

    # --- Internals ---

    @contextlib.asynccontextmanager
    async def _room_transaction(self, room_number: str, room_id: str | None = None) -> AsyncIterator[RoomRecord]:
        """Hold the room lock and yield the latest persisted record.

        The lock is keyed by room number, so a join can take it before the
        room is even looked up. Without ``room_id`` the lookup happens by
        number, under the lock.
        """
        async with self._locks.hold(room_number):
            if room_id is not None:
                record = await self._store.load(room_id)
            else:
                found = await self._store.find(room_number)
                if found is None:
                    raise RoomNotFoundError(room_number=room_number)
                record = found
            yield record

    @contextlib.asynccontextmanager
    async def _bound_transaction(self, session: Session) -> AsyncIterator[tuple[str, RoomRecord]]:
        if session.room_id is None:
            raise RuntimeError(f"session {session.connection_id} is not bound to a room")
        async with self._room_transaction(session.room_number, session.room_id) as record:
            yield session.room_id, record

    async def _require_bound(self, connection: ConnectionProtocol) -> Session | None:
        """Return the bound session, or send ``not_in_room`` and return None."""
        session = self._sessions.get(connection.connection_id)
        if session is not None and session.is_bound:
            return session
        await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "Join a room first")
        return None

    async def _append_line(self, session: Session, line: str) -> None:
        async with self._bound_transaction(session) as (room_id, record):
            await self._store.save(room_id, {CHAT_LOG_FIELD: list(append_log(record.chat_log, line))})
            await self._broadcast(room_id, {CHAT_LOG_FIELD: line})

    async def _save_and_broadcast_users(self, room_id: str, roster: Roster) -> None:
        users = roster_to_records(roster)
        await self._store.save(room_id, {USERS_FIELD: users})
        await self._broadcast(room_id, {USERS_FIELD: users})

    @staticmethod
    def _roster(record: RoomRecord) -> Roster:
        return roster_from_records(record.users)

    async def _broadcast(self, room_id: str, delta: dict[str, Any]) -> None:
        await self._channels.broadcast(room_id, RoomUpdateMessage(data=delta).to_wire())

    async def _send(self, connection: ConnectionProtocol, message: dict[str, Any]) -> None:
        with contextlib.suppress(RuntimeError, OSError):
            await connection.send_message(message)

    async def _send_error(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        await self._send(connection, ErrorMessage.build(code, message).to_wire())
