from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from signaling.messaging.protocol import ConnectionProtocol
from signaling.messaging.types import ServerPingMessage
from signaling.session.connection import ConnectionHandle
from signaling.session.events import ConnectionClosed, ConnectionOpened, MessageReceived

logger = structlog.get_logger()

if TYPE_CHECKING:
    from signaling.session.coordinator import Coordinator

# Header a reconnecting client uses to present the id from its earlier handshake.
CLIENT_ID_HEADER = "client-id"
FORWARDED_FOR_HEADER = "x-forwarded-for"

_MAX_CLIENT_ID_LENGTH = 64


class WebSocketConnection(ConnectionProtocol):
    def __init__(self, websocket: WebSocket, remote_address: str) -> None:
        self._websocket = websocket
        self._remote_address = remote_address

    @property
    def remote_address(self) -> str:
        return self._remote_address

    async def send_text(self, data: str) -> None:
        try:
            await self._websocket.send_text(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_text(self) -> str:
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise ConnectionError("WebSocket already disconnected")
        text = message.get("text")
        if text is None:
            # binary frames go through the same JSON validation as text
            text = (message.get("bytes") or b"").decode("utf-8", errors="replace")
        return text

    async def ping(self) -> None:
        # ASGI has no access to protocol-level ping frames
        await self.send_message(ServerPingMessage().to_wire())

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect):
            await self._websocket.close(code=code, reason=reason)


def resolve_remote_address(websocket: WebSocket) -> str:
    """Return the client address, preferring the first hop set by a reverse proxy."""
    forwarded = websocket.headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        return forwarded.split(",")[0].strip()
    if websocket.client is not None:
        return websocket.client.host
    return "unknown"


def resolve_client_id(websocket: WebSocket) -> str | None:
    """Return the reconnect id presented by the client, or None for a fresh identity."""
    client_id = websocket.headers.get(CLIENT_ID_HEADER, "").strip()
    if not client_id or len(client_id) > _MAX_CLIENT_ID_LENGTH:
        return None
    return client_id


async def websocket_endpoint(websocket: WebSocket, coordinator: Coordinator) -> None:
    await websocket.accept()

    connection = WebSocketConnection(websocket, remote_address=resolve_remote_address(websocket))
    handle = ConnectionHandle(connection, client_id=resolve_client_id(websocket))
    structlog.contextvars.bind_contextvars(client_id=handle.client_id)
    logger.info("websocket connected", address=handle.address)
    coordinator.submit(ConnectionOpened(handle))

    try:
        while True:
            text = await connection.receive_text()
            coordinator.submit(MessageReceived(handle, text))
    except (WebSocketDisconnect, RuntimeError, ConnectionError):
        pass
    finally:
        logger.info("websocket disconnected")
        coordinator.submit(ConnectionClosed(handle))
        structlog.contextvars.clear_contextvars()
