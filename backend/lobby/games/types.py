import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.dal.models import NewRoom


def _as_text(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class CreateRoomRequest(BaseModel):
    """Body of ``POST /newGame``."""

    model_config = ConfigDict(populate_by_name=True)

    game_number: str = Field(alias="gameNumber", min_length=1, max_length=50)
    game: str = Field(default="", max_length=100)
    players: str = Field(default="", max_length=20)
    game_data: dict[str, Any] = Field(default_factory=dict, alias="gameData")

    @field_validator("game_number", "game", "players", mode="before")
    @classmethod
    def _text_fields(cls, v: Any) -> Any:  # noqa: ANN401
        return _as_text(v)

    def to_new_room(self, created_line: str) -> NewRoom:
        return NewRoom(
            room_number=self.game_number,
            game_kind=self.game,
            player_count=self.players,
            game_data=self.game_data,
            chat_log=(created_line,),
        )


class RegisterUserRequest(BaseModel):
    """Body of ``POST /newUser``: a roster entry registered before the user connects."""

    model_config = ConfigDict(populate_by_name=True)

    game_number: str = Field(alias="gameNumber", min_length=1, max_length=50)
    user_name: str = Field(alias="userName", min_length=1, max_length=100)
    # Accepted as an object or as the JSON-encoded string older clients send.
    new_user_object: dict[str, Any] = Field(default_factory=dict, alias="newUserObject")

    @field_validator("game_number", mode="before")
    @classmethod
    def _game_number_as_text(cls, v: Any) -> Any:  # noqa: ANN401
        return _as_text(v)

    @field_validator("new_user_object", mode="before")
    @classmethod
    def _decode_user_object(cls, v: Any) -> Any:  # noqa: ANN401
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"newUserObject is not valid JSON: {e}") from e
        return v
