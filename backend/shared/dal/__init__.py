"""Data access layer: room store interface and shared persistence models."""

from shared.dal.guarded import GuardedRoomStore
from shared.dal.models import MUTABLE_FIELDS, NewRoom, RoomRecord
from shared.dal.room_store import RoomStore

__all__ = [
    "MUTABLE_FIELDS",
    "GuardedRoomStore",
    "NewRoom",
    "RoomRecord",
    "RoomStore",
]
