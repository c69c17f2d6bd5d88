"""Per-client connection state: transport, identity, liveness and session binding."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

if TYPE_CHECKING:
    from signaling.messaging.protocol import ConnectionProtocol
    from signaling.messaging.types import WireModel

logger = structlog.get_logger()

# Failures a closing transport can raise on send/ping/close. The close
# notification does the cleanup, so these never reach the coordinator.
_TRANSPORT_ERRORS = (ConnectionError, RuntimeError, OSError)


class ConnectionHandle:
    """Wrap one client transport.

    client_id is stable across reconnects when the client supplies it.
    session_id is a weak back-reference: it names an entry in the session
    registry and is only ever resolved through the coordinator.
    """

    def __init__(self, connection: ConnectionProtocol, client_id: str | None = None) -> None:
        self._connection = connection
        self.client_id = client_id or str(uuid4())
        self.address = connection.remote_address
        self.is_alive = True
        self.session_id: str | None = None
        self._close_task: asyncio.Task[None] | None = None

    @property
    def connection(self) -> ConnectionProtocol:
        return self._connection

    async def send(self, message: WireModel) -> None:
        """Serialize and send a structured message. Delivery is best-effort."""
        try:
            await self._connection.send_message(message.to_wire())
        except _TRANSPORT_ERRORS as e:
            logger.debug("send to closed transport dropped", client_id=self.client_id, error=str(e))

    async def send_raw(self, text: str) -> None:
        """Forward text verbatim, bypassing the message envelope."""
        try:
            await self._connection.send_text(text)
        except _TRANSPORT_ERRORS as e:
            logger.debug("relay to closed transport dropped", client_id=self.client_id, error=str(e))

    async def probe_liveness(self) -> None:
        """Clear the liveness flag and send a probe; the answer calls mark_alive()."""
        self.is_alive = False
        try:
            await self._connection.ping()
        except _TRANSPORT_ERRORS as e:
            logger.debug("liveness probe failed", client_id=self.client_id, error=str(e))

    def mark_alive(self) -> None:
        self.is_alive = True

    def terminate(self, reason: str) -> None:
        """Start force-closing the transport without waiting for the close handshake.

        The transport's close notification does the cleanup.
        """
        if self._close_task is not None:
            return
        logger.info("terminating connection", client_id=self.client_id, reason=reason)
        self.is_alive = False
        self._close_task = asyncio.create_task(self._close(reason))

    async def wait_closed(self) -> None:
        if self._close_task is not None:
            await self._close_task

    async def _close(self, reason: str) -> None:
        try:
            await self._connection.close(code=1000, reason=reason)
        except _TRANSPORT_ERRORS as e:
            logger.debug("close on dead transport", client_id=self.client_id, error=str(e))

    def __repr__(self) -> str:
        return f"ConnectionHandle(client_id={self.client_id!r}, alive={self.is_alive}, session={self.session_id!r})"
