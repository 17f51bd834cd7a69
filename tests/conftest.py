import asyncio

import pytest

from z21scan import z21
from z21scan.logging_setup import setup_logging


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    """Keep diagnostics filtered so they never interleave with captured output."""
    setup_logging("WARNING")


class FakeConnection:
    def __init__(self, fleet, host):
        self.fleet = fleet
        self.host = host
        self.closed = False

    async def send_rcv(self, message, timeout):
        self.fleet.active += 1
        self.fleet.max_active = max(self.fleet.max_active, self.fleet.active)
        try:
            await asyncio.sleep(self.fleet.delay)
            behaviour = self.fleet.devices.get(self.host, "timeout")
            if behaviour == "timeout":
                raise z21.Z21Timeout(f"no reply from {self.host}")
            if behaviour == "unknown":
                return z21.UnknownMessage(header=0x40)
            if behaviour == "crash":
                raise RuntimeError("decoder blew up")
            return z21.SerialNumber(serial_number=behaviour)
        finally:
            self.fleet.active -= 1

    def close(self):
        if not self.closed:
            self.fleet.closed += 1
        self.closed = True


class FakeFleet:
    """
    Stand-in for the Z21 client.

    ``devices`` maps an IP string to a serial number or to one of the failure
    modes "timeout", "unknown", "crash" and "refused". Unlisted hosts time out.
    """

    def __init__(self, devices=None, delay=0.0):
        self.devices = dict(devices or {})
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.connects = []
        self.closed = 0

    async def connect(self, host, port):
        self.connects.append((host, port))
        if self.devices.get(host) == "refused":
            raise z21.Z21ConnectError(f"connect {host}:{port}: refused")
        return FakeConnection(self, host)


@pytest.fixture
def fleet():
    return FakeFleet()


@pytest.fixture
def patched_fleet(monkeypatch, fleet):
    """Route every probe through the fake fleet instead of real sockets."""
    monkeypatch.setattr(z21, "connect", fleet.connect)
    return fleet
