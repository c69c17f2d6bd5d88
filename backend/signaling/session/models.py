from dataclasses import dataclass
from enum import StrEnum

from signaling.messaging.types import GameConfig


class Role(StrEnum):
    INITIATOR = "initiator"
    PEER = "peer"


@dataclass
class Session:
    """Pairing of an initiator and an optional peer sharing a game config.

    Slots hold client ids, not handles. They are resolved through the client
    registry; a slot whose id is no longer registered is an absent occupant.

    Lifecycle:
    - Created by the initiator's newSession request (peer_id is None)
    - joinSession fills peer_id, or rebinds a reconnecting occupant to its slot
    - leaveSession by the peer clears peer_id
    - Destroyed on the initiator's request, or once no occupant is alive
    """

    session_id: str
    initiator_id: str
    config: GameConfig
    peer_id: str | None = None

    def role_of(self, client_id: str) -> Role | None:
        if client_id == self.initiator_id:
            return Role.INITIATOR
        if client_id == self.peer_id:
            return Role.PEER
        return None

    def counterpart_of(self, client_id: str) -> str | None:
        """Return the id in the other slot, or None if client_id holds no slot."""
        if client_id == self.initiator_id:
            return self.peer_id
        if client_id == self.peer_id:
            return self.initiator_id
        return None

    @property
    def occupant_ids(self) -> list[str]:
        return [cid for cid in (self.initiator_id, self.peer_id) if cid is not None]
