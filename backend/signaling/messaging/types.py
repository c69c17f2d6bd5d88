from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class ClientMessageContext(StrEnum):
    NEW_SESSION = "newSession"
    DESTROY_SESSION = "destroySession"
    JOIN_SESSION = "joinSession"
    LEAVE_SESSION = "leaveSession"
    P2P = "p2p"
    PING = "ping"
    PONG = "pong"


class ServerMessageContext(StrEnum):
    HANDSHAKE = "handshake"
    SESSION_CREATED = "sessionCreated"
    SESSION_JOINED = "sessionJoined"
    PEER_DISCONNECTED = "peerDisconnected"
    SESSION_DESTROYED = "sessionDestroyed"
    ERROR = "error"
    PING = "ping"
    PONG = "pong"


class SessionErrorCode(StrEnum):
    INVALID_REQUEST = "invalidRequest"
    SESSION_NOT_FOUND = "sessionNotFound"
    SESSION_FULL = "sessionFull"
    SESSION_EXISTS = "sessionExists"
    NO_P2P_SESSION = "noP2PSession"
    NO_PEER = "noPeer"


_ERROR_TITLES = {
    SessionErrorCode.INVALID_REQUEST: "Invalid Request",
    SessionErrorCode.SESSION_NOT_FOUND: "Session Not Found",
    SessionErrorCode.SESSION_FULL: "Session Full",
    SessionErrorCode.SESSION_EXISTS: "Cannot Join Session",
    SessionErrorCode.NO_P2P_SESSION: "No P2P Session",
    SessionErrorCode.NO_PEER: "No Peer",
}


class WireModel(BaseModel):
    """Base for wire messages: snake_case attributes, camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class GameConfig(WireModel):
    """Game setup chosen by the initiator. armory is relayed as-is and never inspected."""

    play_as_white: bool
    armory: dict[str, Any] = Field(default_factory=dict)

    def for_peer(self) -> GameConfig:
        """Return the config as seen by the peer, who plays the opposite side."""
        return self.model_copy(update={"play_as_white": not self.play_as_white})


class NewSessionMessage(WireModel):
    context: Literal[ClientMessageContext.NEW_SESSION] = ClientMessageContext.NEW_SESSION
    config: GameConfig


class DestroySessionMessage(WireModel):
    context: Literal[ClientMessageContext.DESTROY_SESSION] = ClientMessageContext.DESTROY_SESSION


class JoinSessionMessage(WireModel):
    context: Literal[ClientMessageContext.JOIN_SESSION] = ClientMessageContext.JOIN_SESSION
    session_id: str = Field(min_length=1, max_length=32)


class LeaveSessionMessage(WireModel):
    context: Literal[ClientMessageContext.LEAVE_SESSION] = ClientMessageContext.LEAVE_SESSION


class RelayMessage(WireModel):
    """Opaque peer-to-peer payload. Only the envelope is validated; the raw text is forwarded."""

    model_config = ConfigDict(extra="allow")

    context: Literal[ClientMessageContext.P2P] = ClientMessageContext.P2P


class PingMessage(WireModel):
    context: Literal[ClientMessageContext.PING] = ClientMessageContext.PING


class PongMessage(WireModel):
    context: Literal[ClientMessageContext.PONG] = ClientMessageContext.PONG


ClientMessage = (
    NewSessionMessage
    | DestroySessionMessage
    | JoinSessionMessage
    | LeaveSessionMessage
    | RelayMessage
    | PingMessage
    | PongMessage
)

_client_message_adapter = TypeAdapter(Annotated[ClientMessage, Field(discriminator="context")])


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a decoded JSON object into a typed ClientMessage.

    Raises pydantic.ValidationError for unknown contexts and malformed fields.
    """
    return _client_message_adapter.validate_python(data)


class HandshakeMessage(WireModel):
    context: Literal[ServerMessageContext.HANDSHAKE] = ServerMessageContext.HANDSHAKE
    client_id: str


class SessionCreatedMessage(WireModel):
    context: Literal[ServerMessageContext.SESSION_CREATED] = ServerMessageContext.SESSION_CREATED
    session_id: str


class SessionJoinedMessage(WireModel):
    context: Literal[ServerMessageContext.SESSION_JOINED] = ServerMessageContext.SESSION_JOINED
    session_id: str
    config: GameConfig


class PeerDisconnectedMessage(WireModel):
    context: Literal[ServerMessageContext.PEER_DISCONNECTED] = ServerMessageContext.PEER_DISCONNECTED


class SessionDestroyedMessage(WireModel):
    context: Literal[ServerMessageContext.SESSION_DESTROYED] = ServerMessageContext.SESSION_DESTROYED


class ErrorMessage(WireModel):
    context: Literal[ServerMessageContext.ERROR] = ServerMessageContext.ERROR
    error: SessionErrorCode
    title: str
    err_msg: str | None = None

    @classmethod
    def for_code(cls, code: SessionErrorCode, err_msg: str | None = None) -> ErrorMessage:
        return cls(error=code, title=_ERROR_TITLES[code], err_msg=err_msg)

    def to_wire(self) -> dict[str, Any]:
        # errMsg is optional on the wire; clients test for its presence
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ServerPingMessage(WireModel):
    context: Literal[ServerMessageContext.PING] = ServerMessageContext.PING


class ServerPongMessage(WireModel):
    context: Literal[ServerMessageContext.PONG] = ServerMessageContext.PONG
