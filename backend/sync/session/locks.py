"""Per-room mutual exclusion for read-modify-write cycles against the store."""

import asyncio
import contextlib
from collections.abc import AsyncIterator


class RoomLocks:
    """One asyncio.Lock per room, created on first use and dropped when idle.

    asyncio.Lock wakes waiters in the order they called acquire(), so the
    mutations queued for a room run strictly in arrival order. Rooms never
    share a lock and proceed independently.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}  # room_number -> tasks holding or waiting on the lock

    @contextlib.asynccontextmanager
    async def hold(self, room_number: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(room_number, asyncio.Lock())
        self._holders[room_number] = self._holders.get(room_number, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[room_number] -= 1
            if self._holders[room_number] == 0:
                del self._holders[room_number]
                del self._locks[room_number]

    def is_idle(self, room_number: str) -> bool:
        return room_number not in self._locks

    def __len__(self) -> int:
        return len(self._locks)
