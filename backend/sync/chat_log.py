"""Append-only room log and the line formats written into it.

Every line starts with the wall-clock time as players see it: 12-hour
``H:MMam`` / ``H:MMpm`` at a fixed UTC-4 offset, no leading zero on the hour
and no space before the suffix (e.g. ``3:07pm``).
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

ROOM_CLOCK_TZ = timezone(timedelta(hours=-4))


def clock_time(now: datetime | None = None) -> str:
    """Format ``now`` (aware; defaults to the current time) for the room log."""
    local = (now or datetime.now(tz=UTC)).astimezone(ROOM_CLOCK_TZ)
    hour = local.hour % 12 or 12
    suffix = "am" if local.hour < 12 else "pm"  # noqa: PLR2004
    return f"{hour}:{local.minute:02d}{suffix}"


def append_log(log: Sequence[str], line: str) -> tuple[str, ...]:
    return (*log, line)


def entered_line(name: str, now: datetime | None = None) -> str:
    return f"{clock_time(now)} {name} entered the room"


def left_line(name: str, now: datetime | None = None) -> str:
    return f"{clock_time(now)} {name} left the room"


def chat_line(name: str, text: str, now: datetime | None = None) -> str:
    return f"{clock_time(now)} {name}: {text}"


def event_line(name: str, text: str, now: datetime | None = None) -> str:
    """Game events read as a sentence about the actor, e.g. ``3:07pm Bob drew a card``."""
    return f"{clock_time(now)} {name} {text}"


def room_created_line(room_number: str, now: datetime | None = None) -> str:
    return f"{clock_time(now)} Room {room_number} created"
