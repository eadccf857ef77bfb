"""Room-scoped multicast over the connections bound to each room."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sync.session.models import Session


class RoomChannels:
    """Track which sessions are subscribed to each room and fan messages out to them."""

    def __init__(self) -> None:
        self._members: dict[str, dict[str, Session]] = {}  # room_id -> connection_id -> session

    def subscribe(self, room_id: str, session: Session) -> None:
        self._members.setdefault(room_id, {})[session.connection_id] = session

    def unsubscribe(self, room_id: str, connection_id: str) -> None:
        members = self._members.get(room_id)
        if members is None:
            return
        members.pop(connection_id, None)
        if not members:
            del self._members[room_id]

    def members(self, room_id: str) -> list[Session]:
        return list(self._members.get(room_id, {}).values())

    def room_count(self) -> int:
        return len(self._members)

    async def broadcast(self, room_id: str, message: dict[str, Any]) -> None:
        """Send ``message`` to every member of the room.

        Iterates over a snapshot so a member leaving mid-broadcast cannot
        break the loop; a send to a connection that is already gone is skipped.
        """
        for session in self.members(room_id):
            with contextlib.suppress(RuntimeError, OSError):
                await session.connection.send_message(message)
