"""Test configuration that makes the project importable and provides transport doubles."""

import sys
import threading
from pathlib import Path

import pytest

# Add project root to sys.path so `netsdrclient` can be imported in tests.
ROOT = Path(__file__).resolve().parent.parent
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)


class FakeTcp:
    """In-memory reliable transport; optionally echoes every sent frame back as the reply."""

    def __init__(self, echo=True, connect_succeeds=True):
        self.echo = echo
        self.connect_succeeds = connect_succeeds
        self.connected = False
        self.sent = []
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.sent_event = threading.Event()
        self._cb = None

    def set_message_callback(self, cb):
        self._cb = cb

    def connect(self):
        self.connect_calls += 1
        self.connected = self.connect_succeeds

    def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False

    def send_message(self, data):
        self.sent.append(bytes(data))
        self.sent_event.set()
        if self.echo:
            self.deliver(data)

    def deliver(self, frame):
        self._cb(bytes(frame))


class FakeUdp:
    def __init__(self):
        self.start_calls = 0
        self.stop_calls = 0
        self._cb = None

    def set_message_callback(self, cb):
        self._cb = cb

    def start_listening(self):
        self.start_calls += 1

    def stop_listening(self):
        self.stop_calls += 1

    def deliver(self, datagram):
        self._cb(bytes(datagram))


@pytest.fixture
def tcp():
    return FakeTcp()


@pytest.fixture
def udp():
    return FakeUdp()


@pytest.fixture
def client(tcp, udp):
    from netsdrclient.client import NetSdrClient

    c = NetSdrClient(tcp, udp, request_timeout=2.0)
    yield c
    c.close()
