"""Abstract transport connection for JSON text communication."""

from abc import ABC, abstractmethod
from typing import Any

from signaling.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    Abstract interface for a client transport.

    The coordinator only ever talks to this interface, so the session state
    machine can be tested without real WebSocket connections.
    """

    @property
    @abstractmethod
    def remote_address(self) -> str:
        """Originating network address of the client."""
        ...

    @abstractmethod
    async def send_text(self, data: str) -> None:
        """
        Send a text frame to the client.
        """
        ...

    @abstractmethod
    async def receive_text(self) -> str:
        """
        Receive a text frame from the client.
        """
        ...

    @abstractmethod
    async def ping(self) -> None:
        """
        Send a liveness probe. The client's answer arrives as an inbound message.
        """
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        """
        Close the connection.
        """
        ...

    async def send_message(self, data: dict[str, Any]) -> None:
        """
        Send a structured message as JSON text.
        """
        await self.send_text(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        """
        Receive a structured message, decoding it from JSON text.
        """
        raw = await self.receive_text()
        return decode(raw)
