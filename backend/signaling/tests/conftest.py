import pytest

from signaling.server.app import create_app
from signaling.server.settings import SignalingServerSettings
from signaling.session.coordinator import Coordinator
from signaling.tests.mocks import MockConnection


@pytest.fixture
def coordinator():
    return Coordinator()


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def settings():
    return SignalingServerSettings(liveness_interval=60)


@pytest.fixture
def app(settings, coordinator):
    return create_app(settings=settings, coordinator=coordinator)
