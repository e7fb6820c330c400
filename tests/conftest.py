"""Shared pytest configuration and fixtures."""

import pytest

from routeros_exporter.config.models import DeviceConfig
from routeros_exporter.errors import ConnectError
from routeros_exporter.utils.logger import setup_logger
from routeros_exporter.utils.sink import MetricSink


INTERFACE_RECORDS = [
    {
        "name": "ether1", "type": "ether", "disabled": False, "comment": "uplink",
        "running": True, "slave": False,
        "rx-byte": 1000, "tx-byte": 2000, "rx-packet": 10, "tx-packet": 20,
        "rx-error": 0, "tx-error": 0, "rx-drop": 1, "tx-drop": 2,
    },
    {
        "name": "bridge", "type": "bridge", "disabled": False, "running": True, "slave": False,
        "rx-byte": 500, "tx-byte": 600, "rx-packet": 5, "tx-packet": 6,
    },
]

RESOURCE_RECORDS = [
    {
        "free-memory": 100000, "total-memory": 200000, "cpu-load": 7,
        "free-hdd-space": 3000, "total-hdd-space": 4000, "uptime": "1d2h3m4s",
        "board-name": "RB4011", "version": "6.49.10 (long-term)",
    },
]


class FakeSession:
    """In-memory stand-in for DeviceSession: command -> list of records."""

    def __init__(self, device, responses=None, failures=None):
        self.device = device
        self.responses = responses or {}
        self.failures = failures or {}
        self.calls = []
        self.closed = False

    def run(self, command, *words):
        self.calls.append((command,) + words)
        if command in self.failures:
            raise self.failures[command]
        return [dict(r) for r in self.responses.get(command, [])]

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FakeEstablisher:
    """Opens FakeSessions; names or addresses in ``unreachable`` fail to dial."""

    timeout = 1.0

    def __init__(self, responses=None, unreachable=(), per_device=None, failures=None):
        self.responses = responses or {}
        self.per_device = per_device or {}
        self.unreachable = set(unreachable)
        self.failures = failures or {}
        self.sessions = []

    def open(self, device):
        if device.name in self.unreachable or device.address in self.unreachable:
            raise ConnectError(f"error dialing {device.address}", device=device.name)
        responses = self.per_device.get(device.address, self.responses)
        session = FakeSession(device, responses, self.failures.get(device.address))
        self.sessions.append(session)
        return session


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test", "DEBUG", "text")


@pytest.fixture
def sink():
    return MetricSink()


@pytest.fixture
def device():
    """Static device r1."""
    return DeviceConfig(name="r1", address="192.0.2.1", port=8728, user="prometheus", password="secret")


@pytest.fixture
def routeros_responses():
    """Replies for the always-on interface and resource collectors."""
    return {
        "/interface/print": INTERFACE_RECORDS,
        "/system/resource/print": RESOURCE_RECORDS,
    }


@pytest.fixture
def make_session(device):
    """Factory for FakeSession objects bound to r1 by default."""
    def factory(responses=None, failures=None, bound_device=None):
        return FakeSession(bound_device or device, responses, failures)
    return factory


@pytest.fixture
def make_establisher():
    """Factory for FakeEstablisher objects."""
    return FakeEstablisher
