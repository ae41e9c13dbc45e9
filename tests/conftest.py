import pytest

from backend import ConnectionRegistry, RoomDirectory
from lifecycle import ConnectionLifecycleManager


class RecordingTransport:
    """Stands in for the WebSocket hub and records every delivery."""

    def __init__(self):
        self.deliveries = []

    def deliver(self, connection_id, event, data=None):
        self.deliveries.append((connection_id, event, data))

    def received(self, connection_id):
        return [(event, data) for cid, event, data in self.deliveries if cid == connection_id]

    def recipients(self):
        return {cid for cid, _, _ in self.deliveries}

    def clear(self):
        self.deliveries.clear()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def directory():
    return RoomDirectory()


@pytest.fixture
def relay(transport):
    return ConnectionLifecycleManager(transport)


@pytest.fixture
def joined(relay, transport):
    """Register and join connections, then forget the setup traffic."""

    def _joined(*pairs):
        for connection_id, room_id in pairs:
            if not relay.registry.is_registered(connection_id):
                relay.connect(connection_id)
            relay.join(connection_id, room_id)
        transport.clear()

    return _joined
