"""
Cache backends: byte values with a TTL in seconds.

Both raise CacheBackendError for any failure; callers (CacheAside) decide
whether a failure surfaces or is swallowed.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod

import redis
from redis.exceptions import RedisError

from backend_insights.core.exceptions import CacheBackendError
from backend_insights.insights_logging import get_logger

logger = get_logger(__name__)

DEFAULT_SOCKET_TIMEOUT_SEC = 5.0


class CacheBackend(ABC):
    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Return the stored value, or None when absent or expired."""
        ...

    @abstractmethod
    def set(self, key: str, value: bytes, ttl: int) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    def close(self) -> None:
        return None


class MemoryCacheBackend(CacheBackend):
    """In-process dict with monotonic-clock expiry; safe for concurrent threads."""

    def __init__(self) -> None:
        self._data: dict[str, tuple[bytes, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if time.monotonic() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: bytes, ttl: int) -> None:
        if ttl <= 0:
            raise CacheBackendError(f"ttl must be positive (got {ttl})")
        with self._lock:
            self._data[key] = (value, time.monotonic() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class RedisCacheBackend(CacheBackend):
    """Synchronous redis client over a connection pool built from a URL."""

    def __init__(
        self,
        url: str,
        *,
        socket_timeout: float = DEFAULT_SOCKET_TIMEOUT_SEC,
        client: redis.Redis | None = None,
    ) -> None:
        self._client = client or redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        logger.info("cache_redis_initialized", socket_timeout=socket_timeout)

    def get(self, key: str) -> bytes | None:
        try:
            value = self._client.get(key)
        except RedisError as error:
            raise CacheBackendError(f"redis GET failed: {error}") from error
        if value is None:
            return None
        return value if isinstance(value, bytes) else str(value).encode("utf-8")

    def set(self, key: str, value: bytes, ttl: int) -> None:
        try:
            self._client.set(key, value, ex=ttl)
        except RedisError as error:
            raise CacheBackendError(f"redis SET failed: {error}") from error

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except RedisError as error:
            raise CacheBackendError(f"redis DEL failed: {error}") from error

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except RedisError as error:
            logger.warning("cache_redis_ping_failed", error=str(error))
            return False

    def close(self) -> None:
        self._client.close()


def build_cache_backend(url: str | None) -> CacheBackend:
    """Redis when url is set, otherwise the in-process memory backend."""
    if url:
        return RedisCacheBackend(url)
    return MemoryCacheBackend()
