import re
from unittest.mock import patch

from signaling.messaging.types import GameConfig
from signaling.session import registry as registry_module
from signaling.session.connection import ConnectionHandle
from signaling.session.models import Role
from signaling.session.registry import ClientRegistry, SessionRegistry, generate_session_id
from signaling.tests.mocks import MockConnection


class TestGenerateSessionId:
    def test_fixed_length_numeric(self):
        for _ in range(100):
            assert re.fullmatch(r"\d{6}", generate_session_id())

    def test_zero_padded(self):
        with patch.object(registry_module.secrets, "randbelow", return_value=42):
            assert generate_session_id() == "000042"


class TestSessionRegistry:
    def test_create_and_remove(self):
        sessions = SessionRegistry()
        session = sessions.create("client-a", GameConfig(play_as_white=True))

        assert sessions.get(session.session_id) is session
        assert session.session_id in sessions
        assert len(sessions) == 1

        assert sessions.remove(session.session_id) is session
        assert sessions.get(session.session_id) is None
        assert sessions.remove(session.session_id) is None

    def test_regenerates_on_collision(self):
        sessions = SessionRegistry()
        with patch.object(registry_module, "generate_session_id", side_effect=["111111", "111111", "222222"]):
            first = sessions.create("a", GameConfig(play_as_white=True))
            second = sessions.create("b", GameConfig(play_as_white=True))

        assert first.session_id == "111111"
        assert second.session_id == "222222"

    def test_get_none(self):
        assert SessionRegistry().get(None) is None


class TestSessionSlots:
    def test_roles_and_counterparts(self):
        session = SessionRegistry().create("a", GameConfig(play_as_white=True))
        session.peer_id = "b"

        assert session.role_of("a") is Role.INITIATOR
        assert session.role_of("b") is Role.PEER
        assert session.role_of("c") is None
        assert session.counterpart_of("a") == "b"
        assert session.counterpart_of("b") == "a"
        assert session.counterpart_of("c") is None
        assert session.occupant_ids == ["a", "b"]

    def test_counterpart_of_initiator_without_peer(self):
        session = SessionRegistry().create("a", GameConfig(play_as_white=True))
        assert session.counterpart_of("a") is None
        assert session.occupant_ids == ["a"]


class TestClientRegistry:
    def test_register_and_unregister(self):
        clients = ClientRegistry()
        handle = ConnectionHandle(MockConnection())

        assert clients.register(handle) is None
        assert clients.get(handle.client_id) is handle
        assert len(clients) == 1

        assert clients.unregister(handle) is True
        assert handle.client_id not in clients

    def test_register_same_id_returns_replaced_handle(self):
        clients = ClientRegistry()
        old = ConnectionHandle(MockConnection(), client_id="x")
        new = ConnectionHandle(MockConnection(), client_id="x")
        clients.register(old)

        assert clients.register(new) is old
        assert clients.is_current(new) is True
        assert clients.is_current(old) is False

    def test_unregister_replaced_handle_keeps_current(self):
        clients = ClientRegistry()
        old = ConnectionHandle(MockConnection(), client_id="x")
        new = ConnectionHandle(MockConnection(), client_id="x")
        clients.register(old)
        clients.register(new)

        assert clients.unregister(old) is False
        assert clients.get("x") is new

    def test_handles_is_snapshot(self):
        clients = ClientRegistry()
        handle = ConnectionHandle(MockConnection())
        clients.register(handle)

        for h in clients.handles():
            clients.unregister(h)

        assert len(clients) == 0
