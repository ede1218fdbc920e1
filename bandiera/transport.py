import json
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from bandiera.errors import BadStatus, ConnectionFailed, MalformedBody, TransportTimeout
from bandiera.params import encode_params
from bandiera.settings import USER_AGENT

CHUNK_SIZE = 8192
MAX_WORKERS = 32

_pool = ThreadPoolExecutor(max_workers=MAX_WORKERS, thread_name_prefix="bandiera-transport")


def build_headers(client_name: Optional[str] = None) -> Dict[str, str]:
    headers = {"User-Agent": USER_AGENT}
    if client_name is not None:
        headers["Bandiera-Client"] = client_name
    return headers


class _Download:
    """A response in flight that the caller can cut off once its deadline passes."""

    def __init__(self):
        self.expired = threading.Event()
        self._lock = threading.Lock()
        self._response = None

    def attach(self, response: requests.Response) -> None:
        with self._lock:
            self._response = response
        if self.expired.is_set():
            _shutdown(response)

    def abort(self) -> None:
        self.expired.set()
        with self._lock:
            response = self._response
        if response is not None:
            _shutdown(response)


def _shutdown(response: requests.Response) -> None:
    # shutdown() wakes a thread blocked in recv(), close() does not
    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        # already closed by the reading thread
        pass


class Transport:
    def __init__(self, base_uri: str, client_name: Optional[str] = None, clock: Callable[[], float] = time.monotonic):
        self.base_uri = base_uri
        self.headers = build_headers(client_name)
        self._clock = clock

    def get(self, path: str, params: Mapping[str, Any], timeout: float) -> Any:
        """One GET, parsed JSON body back.

        ``timeout`` is a hard deadline for the whole exchange. The download
        runs on a worker thread; when the deadline passes the caller gets
        TransportTimeout straight away and the socket is shut down so the
        worker stops reading too.
        """
        url = f"{self.base_uri}{path}"
        if timeout <= 0:
            raise TransportTimeout(f"No time left to request '{url}' (timeout={timeout})")

        deadline = self._clock() + timeout
        download = _Download()
        future = _pool.submit(self._download, url, encode_params(params), timeout, download)
        try:
            body = future.result(timeout=timeout)
        except FutureTimeout as exc:
            download.abort()
            raise TransportTimeout(f"Timeout occurred requesting '{url}'") from exc
        except requests.Timeout as exc:
            raise TransportTimeout(f"Timeout occurred requesting '{url}'") from exc
        except requests.ConnectionError as exc:
            # requests reports a read timeout inside iter_content as a ConnectionError
            if self._clock() >= deadline:
                raise TransportTimeout(f"Timeout occurred reading '{url}'") from exc
            raise ConnectionFailed(f"Bandiera appears to be down ({url})") from exc

        try:
            return json.loads(body)
        except ValueError as exc:
            raise MalformedBody(f"GET request to '{url}' returned a body that is not JSON") from exc

    def _download(self, url: str, params: Dict[str, str], timeout: float, download: _Download) -> bytes:
        with requests.get(
            url,
            params=params,
            headers=self.headers,
            timeout=(timeout, timeout),
            stream=True,
        ) as r:
            download.attach(r)
            if not 200 <= r.status_code < 300:
                raise BadStatus(r.status_code, url)
            body = bytearray()
            for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                body.extend(chunk)
            return bytes(body)
