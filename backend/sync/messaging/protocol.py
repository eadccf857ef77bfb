"""Abstract client connection carrying MessagePack event frames."""

from abc import ABC, abstractmethod
from typing import Any

from sync.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One client connection, independent of the underlying transport.

    The session layer only talks to this interface, so room logic can be
    exercised with an in-memory connection instead of a real WebSocket.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        """Encode ``data`` as one MessagePack frame and send it."""
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        """Receive and decode one frame."""
        return decode(await self.receive_bytes())
