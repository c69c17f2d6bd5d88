from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from signaling.messaging.types import ServerMessageContext
from signaling.session.connection import ConnectionHandle
from signaling.tests.mocks import MockConnection

if TYPE_CHECKING:
    from signaling.session.coordinator import Coordinator


async def connect_client(coordinator: Coordinator, client_id: str | None = None) -> ConnectionHandle:
    """Register a new client over a mock transport and clear its handshake."""
    handle = ConnectionHandle(MockConnection(), client_id=client_id)
    await coordinator.handle_connect(handle)
    outbox(handle).clear()
    return handle


def outbox(handle: ConnectionHandle) -> list[str]:
    return handle.connection._outbox  # type: ignore[attr-defined]


def sent(handle: ConnectionHandle, context: str | None = None) -> list[dict[str, Any]]:
    """Messages sent to a client, optionally filtered by context."""
    conn: MockConnection = handle.connection  # type: ignore[assignment]
    if context is None:
        return conn.sent_messages
    return conn.messages_with_context(context)


async def send(coordinator: Coordinator, handle: ConnectionHandle, data: dict[str, Any]) -> None:
    await coordinator.handle_message(handle, json.dumps(data))


async def create_session(
    coordinator: Coordinator,
    handle: ConnectionHandle,
    *,
    play_as_white: bool = True,
    armory: dict[str, Any] | None = None,
) -> str:
    """Create a session as handle and return its id."""
    await send(
        coordinator,
        handle,
        {"context": "newSession", "config": {"playAsWhite": play_as_white, "armory": armory or {}}},
    )
    created = sent(handle, ServerMessageContext.SESSION_CREATED)
    assert created, f"expected sessionCreated, got {sent(handle)}"
    return created[-1]["sessionId"]


async def create_joined_session(
    coordinator: Coordinator,
    *,
    play_as_white: bool = True,
) -> tuple[ConnectionHandle, ConnectionHandle, str]:
    """Create a session with both initiator and peer present. Outboxes are cleared."""
    initiator = await connect_client(coordinator)
    peer = await connect_client(coordinator)
    session_id = await create_session(coordinator, initiator, play_as_white=play_as_white)
    await send(coordinator, peer, {"context": "joinSession", "sessionId": session_id})
    outbox(initiator).clear()
    outbox(peer).clear()
    return initiator, peer, session_id
