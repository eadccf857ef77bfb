"""Room discovery, creation and pre-join registration behind the HTTP surface."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from shared.exceptions import DuplicateRoomError
from sync.chat_log import room_created_line

if TYPE_CHECKING:
    from collections.abc import Callable

    from lobby.games.types import CreateRoomRequest, RegisterUserRequest
    from shared.dal.models import RoomRecord
    from shared.dal.room_store import RoomStore
    from sync.roster import Roster
    from sync.session.coordinator import RoomSessionCoordinator

logger = structlog.get_logger()


class GamesService:
    """Thin layer over the room store for the lobby endpoints.

    Registration goes through the session coordinator so it is serialized
    with realtime events for the same room.
    """

    def __init__(
        self,
        store: RoomStore,
        coordinator: RoomSessionCoordinator,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._coordinator = coordinator
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    async def list_room_numbers(self) -> list[str]:
        return await self._store.list_room_numbers()

    async def get_room(self, room_number: str) -> RoomRecord | None:
        return await self._store.find(room_number)

    async def create_room(self, request: CreateRoomRequest) -> RoomRecord | None:
        """Create a room seeded with one "created" log line; None if the number is taken."""
        new_room = request.to_new_room(room_created_line(request.game_number, self._clock()))
        try:
            record = await self._store.create(new_room)
        except DuplicateRoomError:
            logger.info("room creation rejected, number taken", room_number=request.game_number)
            return None
        logger.info("room created", room_number=record.room_number, game=record.game_kind)
        return record

    async def register_user(self, request: RegisterUserRequest) -> Roster:
        return await self._coordinator.register_user(
            request.game_number,
            request.user_name,
            request.new_user_object,
        )
