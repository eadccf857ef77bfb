"""
Domain exceptions raised while synchronizing game rooms.

Store adapters raise the lookup and availability errors; the roster and
session layers raise the seat and payload errors. The session coordinator
and the HTTP handlers translate all of them into client-visible replies.
"""


class RoomSyncError(Exception):
    """
    Base class for all recoverable room synchronization failures.

    A RoomSyncError never leaves room state half-applied: it is raised either
    before any write happens or by the write itself.
    """


class RoomNotFoundError(RoomSyncError):
    """No room matches the requested room number or room id."""

    def __init__(self, *, room_number: str | None = None, room_id: str | None = None) -> None:
        self.room_number = room_number
        self.room_id = room_id
        target = f"room number {room_number!r}" if room_number is not None else f"room id {room_id!r}"
        super().__init__(f"no room found for {target}")


class DuplicateRoomError(RoomSyncError):
    """A room with the same room number already exists."""

    def __init__(self, room_number: str) -> None:
        self.room_number = room_number
        super().__init__(f"room number {room_number!r} is already taken")


class SeatNotFoundError(RoomSyncError):
    """No seated entry (or waiting placeholder) exists for the requested seat or user."""

    def __init__(self, *, seat: str | None = None, name: str | None = None) -> None:
        self.seat = seat
        self.name = name
        if seat is not None:
            message = f"no cards waiting at seat {seat!r}"
        else:
            message = f"{name!r} is not seated"
        super().__init__(message)


class StoreUnavailableError(RoomSyncError):
    """The durable store failed or did not answer within its time bound."""


class MalformedPayloadError(RoomSyncError):
    """An inbound payload is missing required fields or uses a reserved value."""
