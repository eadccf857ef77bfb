"""
Roster transforms for a room's ordered user list.

Every function takes the current roster and returns a new one; inputs are
never mutated. Only ``name``, ``seat`` and ``inGame`` are interpreted; any
other fields on a user (hand contents, bids, ...) are carried verbatim.

Invariants kept by every transform:
- at most one entry per name;
- at most one ``Cards Waiting`` placeholder per seat (a newer placeholder
  replaces an older one at the same seat).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.exceptions import SeatNotFoundError

CHAT_ROOM_SEAT = "chatRoom"
CARDS_WAITING = "Cards Waiting"


class User(BaseModel):
    """One roster entry. Unknown fields are preserved as opaque payload."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    name: str = Field(min_length=1, max_length=100)
    seat: str = CHAT_ROOM_SEAT
    in_game: bool = Field(default=False, alias="inGame")

    @field_validator("seat", mode="before")
    @classmethod
    def _seat_as_text(cls, v: Any) -> Any:  # noqa: ANN401
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def is_seated(self) -> bool:
        return self.seat != CHAT_ROOM_SEAT

    @property
    def is_placeholder(self) -> bool:
        return self.name == CARDS_WAITING

    def renamed(self, name: str) -> User:
        return self.model_copy(update={"name": name})

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


type Roster = tuple[User, ...]


def roster_from_records(records: Iterable[Mapping[str, Any]]) -> Roster:
    return tuple(User.model_validate(record) for record in records)


def roster_to_records(roster: Roster) -> list[dict[str, Any]]:
    return [user.to_record() for user in roster]


def find_user(roster: Roster, name: str) -> User | None:
    for user in roster:
        if user.name == name:
            return user
    return None


def _is_placeholder_at(user: User, seat: str) -> bool:
    return user.is_placeholder and user.seat == seat


def _with_placeholder(roster: Roster, placeholder: User) -> Roster:
    """Append a placeholder, dropping any older one at the same seat."""
    kept = tuple(u for u in roster if not _is_placeholder_at(u, placeholder.seat))
    return (*kept, placeholder)


def upsert_user(roster: Roster, user: User) -> Roster:
    """Replace any entry with the same name and append ``user`` last."""
    return (*(u for u in roster if u.name != user.name), user)


def stand_up(roster: Roster, name: str, seat_template: Mapping[str, Any]) -> Roster:
    """Move ``name`` out of their seat, leaving their cards behind for pickup.

    The user is re-added as a copy of ``seat_template`` under their own name;
    their previous entry stays on the roster renamed to ``Cards Waiting``
    at the seat they vacated.
    """
    current = find_user(roster, name)
    if current is None or not current.is_seated:
        raise SeatNotFoundError(name=name)

    fresh = User.model_validate({**seat_template, "name": name})
    remaining = tuple(u for u in roster if u.name != name)
    return _with_placeholder((*remaining, fresh), current.renamed(CARDS_WAITING))


def sit_in(roster: Roster, seat: str, new_occupant: str) -> Roster:
    """Hand the cards waiting at ``seat`` to ``new_occupant``."""
    waiting = [u for u in roster if _is_placeholder_at(u, seat)]
    if not waiting:
        raise SeatNotFoundError(seat=seat)

    picked_up = waiting[-1].renamed(new_occupant)
    remaining = tuple(u for u in roster if u.name != new_occupant and not _is_placeholder_at(u, seat))
    return (*remaining, picked_up)


def set_in_game_for_seated(roster: Roster, status: bool) -> Roster:  # noqa: FBT001
    """Flip ``inGame`` for every seated entry; spectators come first in the result."""
    spectators = tuple(u for u in roster if not u.is_seated)
    seated = tuple(u.model_copy(update={"in_game": status}) for u in roster if u.is_seated)
    return spectators + seated


def remove_on_disconnect(roster: Roster, name: str) -> Roster:
    """Drop ``name``; an in-game entry is kept as ``Cards Waiting`` at its seat."""
    leaving = find_user(roster, name)
    if leaving is None:
        return roster

    remaining = tuple(u for u in roster if u.name != name)
    if not leaving.in_game:
        return remaining
    return _with_placeholder(remaining, leaving.renamed(CARDS_WAITING))
