"""Persistence models for the data access layer."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Store field names a session may overwrite after creation.
USERS_FIELD = "users"
GAME_DATA_FIELD = "gameData"
CHAT_LOG_FIELD = "chatLog"
MUTABLE_FIELDS = frozenset({USERS_FIELD, GAME_DATA_FIELD, CHAT_LOG_FIELD})


def _coerce_to_str(value: Any) -> Any:  # noqa: ANN401
    # Clients send room numbers and player counts as numbers or strings.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class NewRoom(BaseModel):
    """Fields supplied when a room is first created."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    room_number: str = Field(alias="gameNumber", min_length=1, max_length=50)
    game_kind: str = Field(default="", alias="game", max_length=100)
    player_count: str = Field(default="", alias="players", max_length=20)
    game_data: dict[str, Any] = Field(default_factory=dict, alias="gameData")
    chat_log: tuple[str, ...] = Field(default=(), alias="chatLog")

    @field_validator("room_number", "game_kind", "player_count", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> Any:  # noqa: ANN401
        return _coerce_to_str(v)


class RoomRecord(BaseModel):
    """Latest persisted state of one room, as read from the store."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    room_id: str = Field(alias="id")
    room_number: str = Field(alias="gameNumber")
    game_kind: str = Field(default="", alias="game")
    player_count: str = Field(default="", alias="players")
    users: tuple[dict[str, Any], ...] = ()
    game_data: dict[str, Any] = Field(default_factory=dict, alias="gameData")
    chat_log: tuple[str, ...] = Field(default=(), alias="chatLog")

    def snapshot(self) -> dict[str, Any]:
        """Full client-facing view of the room, keyed by wire field names."""
        return self.model_dump(by_alias=True, exclude={"room_id"})
