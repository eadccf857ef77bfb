from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from shared.exceptions import (
    MalformedPayloadError,
    RoomNotFoundError,
    RoomSyncError,
    SeatNotFoundError,
    StoreUnavailableError,
)
from sync.messaging.types import (
    ChatLogMessage,
    ErrorMessage,
    GameEventMessage,
    JoinRoomMessage,
    SessionErrorCode,
    SetInGameMessage,
    SitInMessage,
    StandUpMessage,
    UpdateGameDataMessage,
    UpdateUserMessage,
    parse_client_message,
)

if TYPE_CHECKING:
    from sync.messaging.protocol import ConnectionProtocol
    from sync.messaging.types import ClientMessage
    from sync.session.coordinator import RoomSessionCoordinator

logger = logging.getLogger(__name__)

_ERROR_CODES: dict[type[RoomSyncError], SessionErrorCode] = {
    RoomNotFoundError: SessionErrorCode.ROOM_NOT_FOUND,
    SeatNotFoundError: SessionErrorCode.SEAT_NOT_FOUND,
    StoreUnavailableError: SessionErrorCode.STORE_UNAVAILABLE,
    MalformedPayloadError: SessionErrorCode.INVALID_MESSAGE,
}


def error_code_for(error: RoomSyncError) -> SessionErrorCode:
    for error_type, code in _ERROR_CODES.items():
        if isinstance(error, error_type):
            return code
    return SessionErrorCode.INVALID_MESSAGE


class MessageRouter:
    """
    Turn decoded frames into coordinator calls.

    Failures are reported to the originating connection only. Domain errors
    map to their error code; anything unexpected is logged with a traceback
    and reported as ``invalid_message`` so one bad event never takes the
    connection (or the room) down.
    """

    def __init__(self, coordinator: RoomSessionCoordinator) -> None:
        self._coordinator = coordinator

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message from %s: %s", connection.connection_id, e)
            await self._send_error(connection, SessionErrorCode.INVALID_MESSAGE, str(e))
            return

        try:
            await self._dispatch(connection, message)
        except RoomSyncError as e:
            logger.warning("%s failed for %s: %s", message.event, connection.connection_id, e)
            await self._send_error(connection, error_code_for(e), str(e))
        except Exception:
            logger.exception("unexpected error handling %s for %s", message.event, connection.connection_id)
            await self._send_error(connection, SessionErrorCode.INVALID_MESSAGE, "internal error")

    async def _dispatch(self, connection: ConnectionProtocol, message: ClientMessage) -> None:
        coordinator = self._coordinator
        if isinstance(message, JoinRoomMessage):
            await coordinator.join(
                connection,
                room_number=message.room_number,
                user_name=message.user_name,
                seat_template=message.seat_template,
            )
        elif isinstance(message, ChatLogMessage):
            await coordinator.chat_message(connection, message.text)
        elif isinstance(message, GameEventMessage):
            await coordinator.game_event_message(connection, message.text)
        elif isinstance(message, UpdateUserMessage):
            await coordinator.update_user(connection, message.user)
        elif isinstance(message, SetInGameMessage):
            await coordinator.set_in_game(connection, status=message.in_game)
        elif isinstance(message, UpdateGameDataMessage):
            await coordinator.update_game_data(connection, message.patch)
        elif isinstance(message, StandUpMessage):
            await coordinator.stand_up(connection, name=message.name)
        elif isinstance(message, SitInMessage):
            await coordinator.sit_in(connection, message.seat)

    async def _send_error(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        try:
            await connection.send_message(ErrorMessage.build(code, message).to_wire())
        except (RuntimeError, OSError):
            logger.info("could not deliver error to %s", connection.connection_id)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._coordinator.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._coordinator.disconnect(connection)
