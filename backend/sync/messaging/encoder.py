"""
MessagePack codec for realtime frames.

Every frame is a map ``{"event": <name>, "data": <payload>}``. Payloads are
whatever JSON-like value the event carries: a string for chat text, a bool
for ``setInGame``, a map for user objects and game-data patches.
"""

from typing import Any

import msgpack

EVENT_KEY = "event"
DATA_KEY = "data"

# Size limits to bound memory spent on a single frame.
MAX_BUFFER_LEN = 512 * 1024  # whole frame
MAX_STR_LEN = 64 * 1024
MAX_BIN_LEN = 64 * 1024
MAX_ARRAY_LEN = 4096
MAX_MAP_LEN = 1024
MAX_EXT_LEN = 1024


class DecodeError(Exception):
    """A frame is not valid MessagePack, is too large, or is not a map."""


def _to_wire(obj: object) -> object:
    """Stringify integer map keys and turn tuples into lists, recursively."""
    if isinstance(obj, dict):
        return {str(k) if isinstance(k, int) else k: _to_wire(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_wire(item) for item in obj]
    return obj


def encode(data: dict[str, Any]) -> bytes:
    return msgpack.packb(_to_wire(data))


def encode_event(event: str, data: Any = None) -> bytes:  # noqa: ANN401
    return encode({EVENT_KEY: event, DATA_KEY: data})


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode one frame into a dict.

    Raises DecodeError if the bytes are invalid, exceed the size limits,
    or do not hold a map.
    """
    if len(data) > MAX_BUFFER_LEN:
        raise DecodeError(f"frame too large: {len(data)} bytes (max {MAX_BUFFER_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack frame: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected a map, got {type(result).__name__}")
    return result
