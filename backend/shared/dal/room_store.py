"""Abstract interface for room persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from shared.dal.models import NewRoom, RoomRecord


class RoomStore(ABC):
    """Abstract interface for room persistence.

    ``save`` receives full replacement values for the named fields
    (``users``, ``gameData``, ``chatLog``); stores never merge on their side.
    """

    @abstractmethod
    async def create(self, room: NewRoom) -> RoomRecord: ...

    @abstractmethod
    async def find(self, room_number: str) -> RoomRecord | None: ...

    @abstractmethod
    async def load(self, room_id: str) -> RoomRecord: ...

    @abstractmethod
    async def save(self, room_id: str, fields: Mapping[str, Any]) -> None: ...

    @abstractmethod
    async def list_room_numbers(self) -> list[str]: ...
