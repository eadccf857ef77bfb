"""Periodic keepAlive frames for bound connections."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from sync.messaging.types import KeepAliveMessage

if TYPE_CHECKING:
    from sync.messaging.protocol import ConnectionProtocol

DEFAULT_KEEPALIVE_INTERVAL = 10.0  # seconds

logger = logging.getLogger(__name__)


class KeepAliveSender:
    """Send an empty ``keepAlive`` event to each bound connection at a fixed interval.

    The frames carry no state and expect no reply; they only keep idle
    transports (and the proxies in front of them) from timing out.
    """

    def __init__(self, interval: float = DEFAULT_KEEPALIVE_INTERVAL) -> None:
        self._interval = interval
        self._tasks: dict[str, asyncio.Task[None]] = {}  # connection_id -> sender task

    def start(self, connection: ConnectionProtocol) -> None:
        existing = self._tasks.get(connection.connection_id)
        if existing is not None and not existing.done():
            existing.cancel()
        self._tasks[connection.connection_id] = asyncio.create_task(self._send_loop(connection))

    async def stop(self, connection_id: str) -> None:
        task = self._tasks.pop(connection_id, None)
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def stop_all(self) -> None:
        for connection_id in list(self._tasks):
            await self.stop(connection_id)

    def is_running(self, connection_id: str) -> bool:
        task = self._tasks.get(connection_id)
        return task is not None and not task.done()

    async def _send_loop(self, connection: ConnectionProtocol) -> None:
        message = KeepAliveMessage().to_wire()
        while True:
            await asyncio.sleep(self._interval)
            try:
                await connection.send_message(message)
            except (RuntimeError, OSError):
                logger.info("keepAlive send failed for %s, stopping", connection.connection_id)
                return
