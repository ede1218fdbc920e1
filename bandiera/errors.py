import socket
from enum import Enum
from typing import Optional

import requests


class TransportError(Exception):
    pass


class TransportTimeout(TransportError):
    pass


class ConnectionFailed(TransportError):
    pass


class BadStatus(TransportError):
    def __init__(self, status_code: int, url: str):
        super().__init__(f"GET request to '{url}' returned HTTP {status_code}")
        self.status_code = status_code
        self.url = url


class MalformedBody(TransportError):
    pass


class ErrorKind(str, Enum):
    TIMEOUT = "timeout"
    SERVER_UNAVAILABLE = "server_unavailable"
    REQUEST_FAILED = "request_failed"


def classify(exc: BaseException) -> Optional[ErrorKind]:
    """Map a failure to a recoverable ErrorKind, or None when it must propagate.

    Order matters: requests.ConnectTimeout is both a Timeout and a
    ConnectionError, and the builtin TimeoutError/ConnectionError are
    OSErrors.
    """
    if isinstance(exc, (TransportTimeout, requests.Timeout, TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, (ConnectionFailed, requests.ConnectionError, ConnectionError, socket.gaierror)):
        return ErrorKind.SERVER_UNAVAILABLE
    if isinstance(exc, (TransportError, requests.RequestException, OSError)):
        return ErrorKind.REQUEST_FAILED
    return None
