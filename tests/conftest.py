"""
Test configuration
==================

Shared fixtures:
- fake_socket: UDP socket double that records ``sendto`` calls
- clock: manually advanced monotonic clock
- make_client: P2PClient wired to the two doubles above

Usage:
    pytest tests/unit/          # Fast unit tests
    pytest tests/integration/   # Real sockets on 127.0.0.1
"""

import sys
from pathlib import Path
from typing import List, Tuple

import pytest

SRC = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC))

from punch_client.config import ClientSettings  # noqa: E402
from punch_client.p2p_client import P2PClient  # noqa: E402


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their path."""
    for item in items:
        path = str(item.fspath)
        if "/unit/" in path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in path:
            item.add_marker(pytest.mark.integration)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class FakeSocket:
    """Minimal UDP socket double: records datagrams, never receives."""

    def __init__(self, local=("10.0.0.2", 40000)):
        self.local = local
        self.sent: List[Tuple[bytes, Tuple[str, int]]] = []
        self.closed = False
        self.fail_sends = False

    def sendto(self, data, addr):
        if self.fail_sends:
            raise OSError("network unreachable")
        self.sent.append((data, tuple(addr)))
        return len(data)

    def getsockname(self):
        return self.local

    def setblocking(self, flag):
        pass

    def fileno(self):
        return -1

    def close(self):
        self.closed = True

    def texts(self, addr=None):
        return [d.decode() for d, a in self.sent if addr is None or a == tuple(addr)]

    def clear(self):
        self.sent.clear()


SERVER = ("198.51.100.1", 5000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_socket():
    return FakeSocket()


@pytest.fixture
def client_settings():
    return ClientSettings(
        peer_id="alice",
        server_host=SERVER[0],
        server_port=SERVER[1],
        punch_spacing=0.0,
    )


@pytest.fixture
def make_client(fake_socket, clock, client_settings):
    """Build a P2PClient that never touches the network.

    ``start`` needs a real socket for the selector; tests call
    ``begin_registration`` instead.
    """

    def _make(**overrides):
        for key, value in overrides.items():
            setattr(client_settings, key, value)
        client = P2PClient(client_settings, sock=fake_socket, clock=clock, sleep=lambda s: None)
        return client

    return _make
