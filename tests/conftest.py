import logging
import socket
import threading
import time

import pytest

from bandiera.cache import TTLCache
from bandiera.client import BandieraClient
from bandiera.schemas import CacheStrategy, ClientConfig

BASE_URI = "http://bandiera.test"
API_URI = f"{BASE_URI}/api"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def feature_url(group, feature):
    return f"{API_URI}/v2/groups/{group}/features/{feature}"


def group_url(group):
    return f"{API_URI}/v2/groups/{group}/features"


ALL_URL = f"{API_URI}/v2/all"


@pytest.fixture
def logger():
    return logging.getLogger("bandiera.test")


@pytest.fixture
def client(logger):
    return BandieraClient(ClientConfig(base_uri=BASE_URI), logger=logger)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_cached_client(logger, clock):
    def _make(strategy=CacheStrategy.SINGLE_FEATURE, ttl=5.0):
        config = ClientConfig(base_uri=BASE_URI, cache_enabled=True, cache_strategy=strategy, cache_ttl=ttl)
        return BandieraClient(config, logger=logger, cache=TTLCache(clock=clock))

    return _make


class SlowServer:
    """Real HTTP/1.1 server on localhost that sends its body ``delay`` seconds per byte."""

    def __init__(self, body: bytes, delay: float = 0.0):
        self.body = body
        self.delay = delay
        self.stop = threading.Event()
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(8)
        self.sock.settimeout(0.1)
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    @property
    def url(self) -> str:
        return "http://127.0.0.1:%d" % self.sock.getsockname()[1]

    def _serve(self):
        while not self.stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn):
        with conn:
            conn.settimeout(5)
            try:
                conn.recv(65536)
                head = (
                    "HTTP/1.1 200 OK\r\n"
                    "Content-Type: application/json\r\n"
                    f"Content-Length: {len(self.body)}\r\n"
                    "Connection: close\r\n\r\n"
                )
                conn.sendall(head.encode())
                if not self.delay:
                    conn.sendall(self.body)
                    return
                for byte in self.body:
                    if self.stop.is_set():
                        return
                    conn.sendall(bytes([byte]))
                    time.sleep(self.delay)
            except OSError:
                return

    def close(self):
        self.stop.set()
        self.sock.close()


@pytest.fixture
def slow_server():
    servers = []

    def _start(body: bytes, delay: float = 0.0) -> SlowServer:
        server = SlowServer(body, delay)
        servers.append(server)
        return server

    yield _start
    for server in servers:
        server.close()
