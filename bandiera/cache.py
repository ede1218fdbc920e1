import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "bandiera:"


class FlagCache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def put(self, key: str, value: Any, ttl: float) -> None: ...

    def clear(self) -> None: ...


class TTLCache:
    """In-process cache. Expired entries read as misses and are dropped lazily.

    The lock only ever wraps dict access, so concurrent callers never wait
    on each other's network calls.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisCache:
    """Shared cache for several processes; Redis handles expiry."""

    def __init__(self, client: redis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[Any]:
        try:
            data = self._redis.get(f"{KEY_PREFIX}{key}")
        except redis.RedisError as exc:
            logger.warning("flag cache read failed for %s: %s", key, exc)
            return None
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError:
            logger.warning("discarding undecodable flag cache entry %s", key)
            return None

    def put(self, key: str, value: Any, ttl: float) -> None:
        try:
            self._redis.set(f"{KEY_PREFIX}{key}", json.dumps(value), px=max(1, int(ttl * 1000)))
        except redis.RedisError as exc:
            logger.warning("flag cache write failed for %s: %s", key, exc)

    def clear(self) -> None:
        try:
            keys = list(self._redis.scan_iter(match=f"{KEY_PREFIX}*"))
            if keys:
                self._redis.delete(*keys)
        except redis.RedisError as exc:
            logger.warning("flag cache clear failed: %s", exc)
