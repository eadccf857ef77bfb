from __future__ import annotations

import json
from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sync.roster import User

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F


class ClientEvent(StrEnum):
    FIRST_CONTACT = "first-contact"
    CHAT_LOG_MESSAGE = "chatLogMessage"
    GAME_EVENT_MESSAGE = "gameEventMessage"
    UPDATE_USER = "updateUser"
    SET_IN_GAME = "setInGame"
    START_GAME = "startGame"
    END_GAME = "endGame"
    UPDATE_GAME_DATA = "updateGameData"
    STAND_UP_IN_GAME = "standUpInGame"
    REMOVE_CARDS_WAITING = "removeCardsWaiting"


class ServerEvent(StrEnum):
    GAME_ROOM_STATE = "gameRoomState"
    UPDATE_ROOM = "updateRoom"
    KEEP_ALIVE = "keepAlive"
    ERROR = "error"


class SessionErrorCode(StrEnum):
    ROOM_NOT_FOUND = "room_not_found"
    SEAT_NOT_FOUND = "seat_not_found"
    STORE_UNAVAILABLE = "store_unavailable"
    INVALID_MESSAGE = "invalid_message"
    NOT_IN_ROOM = "not_in_room"
    ALREADY_IN_ROOM = "already_in_room"


def _as_text(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class ClientEnvelope(BaseModel):
    event: ClientEvent
    data: Any = None


class JoinRoomMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event: Literal[ClientEvent.FIRST_CONTACT] = ClientEvent.FIRST_CONTACT
    user_name: str = Field(alias="userName", min_length=1, max_length=100)
    room_number: str = Field(alias="gameNumber", min_length=1, max_length=50)
    # The roster entry the user takes after standing up from a seat.
    seat_template: dict[str, Any] = Field(default_factory=dict, alias="newUserObject")

    @field_validator("room_number", mode="before")
    @classmethod
    def _room_number_as_text(cls, v: Any) -> Any:  # noqa: ANN401
        return _as_text(v)

    @field_validator("seat_template", mode="before")
    @classmethod
    def _decode_seat_template(cls, v: Any) -> Any:  # noqa: ANN401
        # Older clients send the user object JSON-encoded.
        if v is None:
            return {}
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"newUserObject is not valid JSON: {e}") from e
        return v


class _TextMessage(BaseModel):
    text: str = Field(min_length=1, max_length=1000)

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_text(cls, data: Any) -> Any:  # noqa: ANN401
        return {"text": data} if isinstance(data, str) else data

    @field_validator("text")
    @classmethod
    def _validate_text(cls, v: str) -> str:
        if any((ord(c) < _SPACE_ORD and c not in ("\t", "\n", "\r")) or ord(c) == _DEL_ORD for c in v):
            raise ValueError("text must not contain control characters")
        return v


class ChatLogMessage(_TextMessage):
    event: Literal[ClientEvent.CHAT_LOG_MESSAGE] = ClientEvent.CHAT_LOG_MESSAGE


class GameEventMessage(_TextMessage):
    event: Literal[ClientEvent.GAME_EVENT_MESSAGE] = ClientEvent.GAME_EVENT_MESSAGE


class UpdateUserMessage(BaseModel):
    event: Literal[ClientEvent.UPDATE_USER] = ClientEvent.UPDATE_USER
    user: User

    @model_validator(mode="before")
    @classmethod
    def _wrap_user(cls, data: Any) -> Any:  # noqa: ANN401
        return {"user": data} if isinstance(data, Mapping) else data


class SetInGameMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event: Literal[ClientEvent.SET_IN_GAME] = ClientEvent.SET_IN_GAME
    in_game: bool = Field(alias="inGame")

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_flag(cls, data: Any) -> Any:  # noqa: ANN401
        return {"inGame": data} if isinstance(data, bool) else data


class UpdateGameDataMessage(BaseModel):
    event: Literal[ClientEvent.UPDATE_GAME_DATA] = ClientEvent.UPDATE_GAME_DATA
    patch: dict[str, Any]

    @model_validator(mode="before")
    @classmethod
    def _wrap_patch(cls, data: Any) -> Any:  # noqa: ANN401
        return {"patch": data} if isinstance(data, Mapping) else data


class StandUpMessage(BaseModel):
    """Stand up from the current seat. ``name`` is accepted but must match the session's user."""

    event: Literal[ClientEvent.STAND_UP_IN_GAME] = ClientEvent.STAND_UP_IN_GAME
    name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_empty(cls, data: Any) -> Any:  # noqa: ANN401
        if data is None:
            return {}
        return {"name": data} if isinstance(data, str) else data


class SitInMessage(BaseModel):
    event: Literal[ClientEvent.REMOVE_CARDS_WAITING] = ClientEvent.REMOVE_CARDS_WAITING
    seat: str = Field(min_length=1, max_length=50)

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_seat(cls, data: Any) -> Any:  # noqa: ANN401
        return data if isinstance(data, Mapping) else {"seat": _as_text(data)}


ClientMessage = (
    JoinRoomMessage
    | ChatLogMessage
    | GameEventMessage
    | UpdateUserMessage
    | SetInGameMessage
    | UpdateGameDataMessage
    | StandUpMessage
    | SitInMessage
)

_MESSAGE_TYPES: dict[ClientEvent, type[ClientMessage]] = {
    ClientEvent.FIRST_CONTACT: JoinRoomMessage,
    ClientEvent.CHAT_LOG_MESSAGE: ChatLogMessage,
    ClientEvent.GAME_EVENT_MESSAGE: GameEventMessage,
    ClientEvent.UPDATE_USER: UpdateUserMessage,
    ClientEvent.SET_IN_GAME: SetInGameMessage,
    ClientEvent.UPDATE_GAME_DATA: UpdateGameDataMessage,
    ClientEvent.STAND_UP_IN_GAME: StandUpMessage,
    ClientEvent.REMOVE_CARDS_WAITING: SitInMessage,
}

# startGame / endGame carry no payload; they are setInGame with a fixed flag.
_IMPLIED_IN_GAME = {
    ClientEvent.START_GAME: True,
    ClientEvent.END_GAME: False,
}


def parse_client_message(raw: dict[str, Any]) -> ClientMessage:
    """Parse a decoded ``{"event", "data"}`` frame into a typed message.

    Payloads arrive in several shapes (bare strings, bools, maps); each
    message model normalizes its own. Raises pydantic.ValidationError for an
    unknown event or an unusable payload.
    """
    envelope = ClientEnvelope.model_validate(raw)
    if envelope.event in _IMPLIED_IN_GAME:
        return SetInGameMessage(in_game=_IMPLIED_IN_GAME[envelope.event])
    return _MESSAGE_TYPES[envelope.event].model_validate(envelope.data)


class _ServerMessage(BaseModel):
    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class RoomStateMessage(_ServerMessage):
    """Full room snapshot, sent only to a connection that just joined."""

    event: Literal[ServerEvent.GAME_ROOM_STATE] = ServerEvent.GAME_ROOM_STATE
    data: dict[str, Any]


class RoomUpdateMessage(_ServerMessage):
    """Broadcast delta carrying only the room facets that changed."""

    event: Literal[ServerEvent.UPDATE_ROOM] = ServerEvent.UPDATE_ROOM
    data: dict[str, Any]


class KeepAliveMessage(_ServerMessage):
    event: Literal[ServerEvent.KEEP_ALIVE] = ServerEvent.KEEP_ALIVE
    data: dict[str, Any] = Field(default_factory=dict)


class ErrorPayload(BaseModel):
    code: SessionErrorCode
    message: str


class ErrorMessage(_ServerMessage):
    event: Literal[ServerEvent.ERROR] = ServerEvent.ERROR
    data: ErrorPayload

    @classmethod
    def build(cls, code: SessionErrorCode, message: str) -> ErrorMessage:
        return cls(data=ErrorPayload(code=code, message=message))

