"""
Tests for the MessagePack frame codec.
"""

import msgpack
import pytest

from sync.messaging.encoder import MAX_BUFFER_LEN, DecodeError, decode, encode, encode_event


class TestEncode:
    def test_encode_event_builds_frame(self) -> None:
        assert decode(encode_event("chatLogMessage", "hello")) == {"event": "chatLogMessage", "data": "hello"}

    def test_encode_event_without_payload(self) -> None:
        assert decode(encode_event("startGame")) == {"event": "startGame", "data": None}

    def test_encode_converts_integer_keys_and_tuples(self) -> None:
        data = {"event": "updateRoom", "data": {"scores": {0: 120, 1: 80}, "users": ({"name": "Bob"},)}}

        assert decode(encode(data)) == {
            "event": "updateRoom",
            "data": {"scores": {"0": 120, "1": 80}, "users": [{"name": "Bob"}]},
        }


class TestDecodeErrors:
    def test_invalid_bytes(self) -> None:
        with pytest.raises(DecodeError, match="failed to decode"):
            decode(b"\xc1")

    def test_text_that_is_not_messagepack(self) -> None:
        with pytest.raises(DecodeError):
            decode(b'{"event": "chatLogMessage"}')

    def test_non_map_frame(self) -> None:
        with pytest.raises(DecodeError, match="expected a map, got list"):
            decode(msgpack.packb(["chatLogMessage", "hi"]))

    def test_frame_too_large(self) -> None:
        with pytest.raises(DecodeError, match="frame too large"):
            decode(b"\x00" * (MAX_BUFFER_LEN + 1))

    def test_oversized_array(self) -> None:
        with pytest.raises(DecodeError):
            decode(msgpack.packb({"event": "updateGameData", "data": {"cards": list(range(10_000))}}))
