"""Tests for DAL persistence models."""

import pytest
from pydantic import ValidationError

from shared.dal.models import NewRoom, RoomRecord


class TestNewRoom:
    def test_accepts_wire_names_and_numbers(self):
        room = NewRoom.model_validate({"gameNumber": 4821, "game": "pinochle", "players": 4, "gameData": {"trump": None}})

        assert room.room_number == "4821"
        assert room.player_count == "4"
        assert room.game_data == {"trump": None}
        assert room.chat_log == ()

    @pytest.mark.parametrize("number", ["", "x" * 51])
    def test_room_number_length(self, number):
        with pytest.raises(ValidationError):
            NewRoom(room_number=number)

    def test_bool_is_not_a_number(self):
        with pytest.raises(ValidationError):
            NewRoom.model_validate({"gameNumber": True})


class TestRoomRecord:
    def test_snapshot_uses_wire_names_and_hides_id(self):
        record = RoomRecord(
            room_id="abc",
            room_number="4821",
            game_kind="pinochle",
            player_count="4",
            users=({"name": "Bob", "seat": "S", "inGame": False},),
            game_data={"turn": "S"},
            chat_log=("3:07pm Room 4821 created",),
        )

        assert record.snapshot() == {
            "gameNumber": "4821",
            "game": "pinochle",
            "players": "4",
            "users": ({"name": "Bob", "seat": "S", "inGame": False},),
            "gameData": {"turn": "S"},
            "chatLog": ("3:07pm Room 4821 created",),
        }

    def test_is_frozen(self):
        record = RoomRecord(room_id="abc", room_number="1")

        with pytest.raises(ValidationError):
            record.room_number = "2"
