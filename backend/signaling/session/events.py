"""Events consumed by the coordinator's event loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from signaling.session.connection import ConnectionHandle


@dataclass(frozen=True)
class ConnectionOpened:
    handle: ConnectionHandle


@dataclass(frozen=True)
class MessageReceived:
    handle: ConnectionHandle
    text: str


@dataclass(frozen=True)
class ConnectionClosed:
    handle: ConnectionHandle


@dataclass(frozen=True)
class SweepTick:
    pass


CoordinatorEvent = ConnectionOpened | MessageReceived | ConnectionClosed | SweepTick
