"""Room store wrapper that bounds every call in time and retries failed reads."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.room_store import RoomStore
from shared.exceptions import StoreUnavailableError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from shared.dal.models import NewRoom, RoomRecord

logger = structlog.get_logger()

# TimeoutError and ConnectionError are both OSError subclasses.
_TRANSIENT_ERRORS = (StoreUnavailableError, OSError)


class GuardedRoomStore(RoomStore):
    """Bound store calls with a timeout and retry reads with exponential backoff.

    Writes (create and save) get exactly one attempt: a write that timed out
    may still have been applied, and replaying it could double-apply a merge.
    Lookup errors (RoomNotFoundError, DuplicateRoomError) pass through untouched.

    The timeout cannot interrupt a blocking call inside the wrapped store
    (sqlite3 runs on the event loop thread); SqliteRoomStore is bounded by
    the busy_timeout its Database is opened with instead.
    """

    def __init__(
        self,
        inner: RoomStore,
        *,
        timeout_seconds: float = 5.0,
        read_retries: int = 2,
        retry_backoff_seconds: float = 0.1,
    ) -> None:
        self._inner = inner
        self._timeout_seconds = timeout_seconds
        self._read_retries = read_retries
        self._retry_backoff_seconds = retry_backoff_seconds

    async def create(self, room: NewRoom) -> RoomRecord:
        return await self._write("create", lambda: self._inner.create(room))

    async def find(self, room_number: str) -> RoomRecord | None:
        return await self._read("find", lambda: self._inner.find(room_number))

    async def load(self, room_id: str) -> RoomRecord:
        return await self._read("load", lambda: self._inner.load(room_id))

    async def save(self, room_id: str, fields: Mapping[str, Any]) -> None:
        await self._write("save", lambda: self._inner.save(room_id, fields))

    async def list_room_numbers(self) -> list[str]:
        return await self._read("list_room_numbers", self._inner.list_room_numbers)

    async def _read[T](self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            try:
                async with asyncio.timeout(self._timeout_seconds):
                    return await call()
            except _TRANSIENT_ERRORS as e:
                attempt += 1
                if attempt > self._read_retries:
                    logger.warning("store read failed", operation=operation, attempts=attempt, error=repr(e))
                    raise StoreUnavailableError(f"store {operation} failed after {attempt} attempts") from e
                delay = self._retry_backoff_seconds * 2 ** (attempt - 1)
                logger.info("retrying store read", operation=operation, attempt=attempt, delay=delay)
                await asyncio.sleep(delay)

    async def _write[T](self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            async with asyncio.timeout(self._timeout_seconds):
                return await call()
        except _TRANSIENT_ERRORS as e:
            logger.warning("store write failed", operation=operation, error=repr(e))
            raise StoreUnavailableError(f"store {operation} failed; the write may have been applied") from e
