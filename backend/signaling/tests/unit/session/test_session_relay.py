import json

from signaling.messaging.types import ServerMessageContext, SessionErrorCode
from signaling.tests.unit.session.helpers import (
    connect_client,
    create_joined_session,
    create_session,
    outbox,
    send,
    sent,
)


class TestRelay:
    async def test_initiator_to_peer_forwards_raw_text(self, coordinator):
        alice, bob, _ = await create_joined_session(coordinator)
        raw = '{"context": "p2p", "sdp": {"type": "offer", "sdp": "v=0\\r\\n"},  "seq": 1}'

        await coordinator.handle_message(alice, raw)

        assert outbox(bob) == [raw]
        assert outbox(alice) == []

    async def test_peer_to_initiator(self, coordinator):
        alice, bob, _ = await create_joined_session(coordinator)
        raw = json.dumps({"context": "p2p", "candidate": "candidate:1 1 udp 2122260223 10.0.0.2 54321 typ host"})

        await coordinator.handle_message(bob, raw)

        assert outbox(alice) == [raw]
        assert outbox(bob) == []

    async def test_relay_without_session(self, coordinator):
        alice = await connect_client(coordinator)

        await send(coordinator, alice, {"context": "p2p", "data": 1})

        errors = sent(alice, ServerMessageContext.ERROR)
        assert errors == [{"context": "error", "error": SessionErrorCode.NO_P2P_SESSION, "title": "No P2P Session"}]

    async def test_relay_without_peer(self, coordinator):
        alice = await connect_client(coordinator)
        await create_session(coordinator, alice)
        outbox(alice).clear()

        await send(coordinator, alice, {"context": "p2p", "data": 1})

        assert sent(alice) == [{"context": "error", "error": "noPeer", "title": "No Peer"}]

    async def test_relay_after_peer_disconnect(self, coordinator):
        alice, bob, _ = await create_joined_session(coordinator)
        await coordinator.handle_disconnect(bob)
        outbox(alice).clear()

        await send(coordinator, alice, {"context": "p2p", "data": 1})

        assert sent(alice)[0]["error"] == SessionErrorCode.NO_PEER
        assert outbox(bob) == []

    async def test_relay_to_closed_transport_is_absorbed(self, coordinator):
        alice, bob, _ = await create_joined_session(coordinator)
        bob.connection.closed = True

        await send(coordinator, alice, {"context": "p2p", "data": 1})

        assert outbox(alice) == []
