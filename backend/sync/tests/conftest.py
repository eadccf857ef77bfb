import pytest

from sync.messaging.router import MessageRouter
from sync.session.coordinator import RoomSessionCoordinator
from sync.session.heartbeat import KeepAliveSender
from sync.tests.helpers.rooms import fixed_clock
from sync.tests.mocks import MockConnection, MockRoomStore


@pytest.fixture
def store():
    return MockRoomStore()


@pytest.fixture
async def coordinator(store):
    # Long interval keeps keepAlive frames out of assertions.
    coordinator = RoomSessionCoordinator(store, keepalive=KeepAliveSender(3600), clock=fixed_clock)
    yield coordinator
    await coordinator.shutdown()


@pytest.fixture
def message_router(coordinator):
    return MessageRouter(coordinator)


@pytest.fixture
def mock_connection():
    return MockConnection()
