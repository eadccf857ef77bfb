from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sync.messaging.protocol import ConnectionProtocol


class ConnectionState(StrEnum):
    UNBOUND = "unbound"
    BOUND = "bound"
    CLOSED = "closed"


@dataclass
class Session:
    """Per-connection record of which room and identity a connection is bound to."""

    connection: ConnectionProtocol
    state: ConnectionState = ConnectionState.UNBOUND
    room_id: str | None = None
    room_number: str = ""
    user_name: str = ""
    # roster entry the user takes after standing up from a seat
    seat_template: dict[str, Any] = field(default_factory=dict)

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id

    @property
    def is_bound(self) -> bool:
        return self.state == ConnectionState.BOUND

    def bind(self, *, room_id: str, room_number: str, user_name: str, seat_template: dict[str, Any]) -> None:
        self.state = ConnectionState.BOUND
        self.room_id = room_id
        self.room_number = room_number
        self.user_name = user_name
        self.seat_template = seat_template

    def close(self) -> None:
        self.state = ConnectionState.CLOSED
