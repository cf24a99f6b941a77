"""Shared fixtures: loopback Graphite receivers and fake collaborators."""

import socket
import threading
import time

import pytest

from graphite_bridge.collector.base import MetricSample
from graphite_bridge.errors import DeliveryError, DeliveryErrorKind
from graphite_bridge.exporter.base import GraphiteSender


class TcpReceiver:
    """Accepts connections one at a time and records every byte received."""

    def __init__(self):
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen()
        self._server.settimeout(0.1)
        self.port = self._server.getsockname()[1]
        self.connections = 0
        self._data = bytearray()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._server.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            self.connections += 1
            with conn:
                conn.settimeout(0.1)
                while not self._stop.is_set():
                    try:
                        chunk = conn.recv(65536)
                    except socket.timeout:
                        continue
                    except OSError:
                        break
                    if not chunk:
                        break
                    with self._lock:
                        self._data += chunk

    @property
    def data(self):
        with self._lock:
            return bytes(self._data)

    def wait_for(self, size, timeout=3.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if len(self.data) >= size:
                return self.data
            time.sleep(0.01)
        return self.data

    def close(self):
        self._stop.set()
        self._thread.join(timeout=2)
        self._server.close()


@pytest.fixture
def tcp_receiver():
    receiver = TcpReceiver()
    yield receiver
    receiver.close()


@pytest.fixture
def udp_receiver():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


@pytest.fixture
def closed_port():
    """A loopback port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class StaticSource:
    """Snapshot source returning a fixed list of samples."""

    def __init__(self, samples=None):
        self.samples = list(samples or [])
        self.calls = 0

    def snapshot(self):
        self.calls += 1
        return list(self.samples)


class RecordingSender(GraphiteSender):
    """Records batches; raises a connection error for the first *fail* sends."""

    def __init__(self, fail=0):
        super().__init__("fake", 2003)
        self.batches = []
        self.attempts = 0
        self.closed = False
        self._fail = fail

    def send(self, batch):
        self.attempts += 1
        if self.attempts <= self._fail:
            raise DeliveryError(DeliveryErrorKind.CONNECTION, "connection refused")
        self.batches.append(list(batch))

    def close(self):
        self.closed = True


def make_samples(count, start=1_700_000_000):
    return [MetricSample(f"app.requests.n{i}", float(i), start + i) for i in range(count)]
