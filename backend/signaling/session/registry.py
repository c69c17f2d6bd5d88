"""Client and session registries owned by the coordinator."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from signaling.session.models import Session

if TYPE_CHECKING:
    from collections.abc import Iterator

    from signaling.messaging.types import GameConfig
    from signaling.session.connection import ConnectionHandle

SESSION_ID_LENGTH = 6


def generate_session_id(length: int = SESSION_ID_LENGTH) -> str:
    """Return a random fixed-length numeric code, e.g. "042917"."""
    return f"{secrets.randbelow(10**length):0{length}d}"


class ClientRegistry:
    """client_id -> ConnectionHandle."""

    def __init__(self) -> None:
        self._clients: dict[str, ConnectionHandle] = {}

    def register(self, handle: ConnectionHandle) -> ConnectionHandle | None:
        """Register a handle, returning the handle it replaced under the same id, if any."""
        previous = self._clients.get(handle.client_id)
        self._clients[handle.client_id] = handle
        if previous is handle:
            return None
        return previous

    def unregister(self, handle: ConnectionHandle) -> bool:
        """Remove the handle if it is still the registered one for its id.

        Returns False when a reconnect has already replaced it.
        """
        if self._clients.get(handle.client_id) is not handle:
            return False
        del self._clients[handle.client_id]
        return True

    def get(self, client_id: str | None) -> ConnectionHandle | None:
        if client_id is None:
            return None
        return self._clients.get(client_id)

    def is_current(self, handle: ConnectionHandle) -> bool:
        return self._clients.get(handle.client_id) is handle

    def handles(self) -> list[ConnectionHandle]:
        """Snapshot of registered handles, safe to iterate while the registry changes."""
        return list(self._clients.values())

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._clients


class SessionRegistry:
    """session_id -> Session, with collision-free id allocation."""

    def __init__(self, id_length: int = SESSION_ID_LENGTH) -> None:
        self._sessions: dict[str, Session] = {}
        self._id_length = id_length

    def _allocate_id(self) -> str:
        # keyspace is far larger than the number of concurrent sessions
        while True:
            session_id = generate_session_id(self._id_length)
            if session_id not in self._sessions:
                return session_id

    def create(self, initiator_id: str, config: GameConfig) -> Session:
        session = Session(session_id=self._allocate_id(), initiator_id=initiator_id, config=config)
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str | None) -> Session | None:
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Session | None:
        return self._sessions.pop(session_id, None)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
