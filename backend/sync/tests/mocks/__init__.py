"""In-memory stand-ins for the transport and the room store."""

import asyncio
import copy
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from shared.dal.models import MUTABLE_FIELDS, NewRoom, RoomRecord
from shared.dal.room_store import RoomStore
from shared.exceptions import DuplicateRoomError, RoomNotFoundError, StoreUnavailableError
from sync.messaging.encoder import decode, encode
from sync.messaging.protocol import ConnectionProtocol


class MockConnection(ConnectionProtocol):
    def __init__(self, connection_id: str | None = None) -> None:
        self._connection_id = connection_id or str(uuid4())
        self._inbox: asyncio.Queue[bytes] = asyncio.Queue()
        self._outbox: list[dict[str, Any]] = []
        self._closed = False
        self._close_code: int | None = None
        self._close_reason: str | None = None

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def sent_messages(self) -> list[dict[str, Any]]:
        return self._outbox.copy()

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def close_code(self) -> int | None:
        return self._close_code

    def sent_events(self, event: str) -> list[dict[str, Any]]:
        """Payloads of every sent frame with the given event name."""
        return [message["data"] for message in self._outbox if message["event"] == event]

    def clear(self) -> None:
        self._outbox.clear()

    async def send_bytes(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError("Connection is closed")
        # decode and store for test inspection
        self._outbox.append(decode(data))

    async def receive_bytes(self) -> bytes:
        if self._closed:
            raise RuntimeError("Connection is closed")
        return await self._inbox.get()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self._closed = True
        self._close_code = code
        self._close_reason = reason

    async def simulate_receive(self, data: dict[str, Any]) -> None:
        """
        Simulate receiving a message from the client.
        """
        await self._inbox.put(encode(data))


class MockRoomStore(RoomStore):
    """Room store kept in a dict, with knobs for slow and failing calls.

    Records are deep-copied on the way in and out so callers can never share
    state with the store.
    """

    def __init__(self, *, delay: float = 0.0) -> None:
        self._rooms: dict[str, dict[str, Any]] = {}  # room_id -> record fields
        self.delay = delay
        self.failing_loads = 0
        self.fail_saves = False
        self.saves: list[tuple[str, dict[str, Any]]] = []

    async def _pause(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)

    async def create(self, room: NewRoom) -> RoomRecord:
        await self._pause()
        if any(fields["room_number"] == room.room_number for fields in self._rooms.values()):
            raise DuplicateRoomError(room.room_number)
        room_id = uuid4().hex
        self._rooms[room_id] = {"room_id": room_id, **copy.deepcopy(room.model_dump()), "users": ()}
        return self._record(room_id)

    async def find(self, room_number: str) -> RoomRecord | None:
        await self._pause()
        for room_id, fields in self._rooms.items():
            if fields["room_number"] == room_number:
                return self._record(room_id)
        return None

    async def load(self, room_id: str) -> RoomRecord:
        await self._pause()
        if self.failing_loads > 0:
            self.failing_loads -= 1
            raise StoreUnavailableError("load failed")
        if room_id not in self._rooms:
            raise RoomNotFoundError(room_id=room_id)
        return self._record(room_id)

    async def save(self, room_id: str, fields: Mapping[str, Any]) -> None:
        await self._pause()
        if self.fail_saves:
            raise StoreUnavailableError("save failed")
        if not set(fields) <= MUTABLE_FIELDS:
            raise ValueError(f"not writable: {sorted(set(fields) - MUTABLE_FIELDS)}")
        if room_id not in self._rooms:
            raise RoomNotFoundError(room_id=room_id)
        values = copy.deepcopy(dict(fields))
        self.saves.append((room_id, copy.deepcopy(values)))
        room = self._rooms[room_id]
        if "users" in values:
            room["users"] = tuple(values["users"])
        if "gameData" in values:
            room["game_data"] = values["gameData"]
        if "chatLog" in values:
            room["chat_log"] = tuple(values["chatLog"])

    async def list_room_numbers(self) -> list[str]:
        await self._pause()
        return [fields["room_number"] for fields in self._rooms.values()]

    def _record(self, room_id: str) -> RoomRecord:
        return RoomRecord.model_validate(copy.deepcopy(self._rooms[room_id]))
