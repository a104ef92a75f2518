from typing import List

import pytest

from custom_components.extron_dxp.api import ExtronDXPClient, _DXPProtocol


class FakeTransport:
    """Transport that records everything written to it."""

    def __init__(self):
        self.written: List[bytes] = []
        self.closed = False

    def write(self, data: bytes) -> None:
        self.written.append(data)

    def close(self) -> None:
        self.closed = True

    def is_closing(self) -> bool:
        return self.closed

    @property
    def commands(self) -> List[str]:
        return [chunk.decode("ascii") for chunk in self.written]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client():
    """Disconnected client for a 4x4 switcher"""
    return ExtronDXPClient("192.0.2.10", 23, model="dxp44", reconnect_interval=5000)


@pytest.fixture
def connected_client(client, transport):
    """Client attached to a fake transport, bootstrap commands cleared"""
    protocol = _DXPProtocol(client)
    protocol.connection_made(transport)
    transport.written.clear()
    return client
