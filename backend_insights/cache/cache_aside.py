"""
Cache-aside reads with JSON-serialized values.

fetch(key, ttl, producer, decode): a hit returns the cached value without calling
the producer. A miss calls the producer and best-effort writes its value back; a
failed write is logged and dropped. Both paths return the same shape: decode()
applied to the stored JSON on a hit and the producer's own value on a miss, or
the decoded JSON form on both paths when no decode is given. A failed read is
raised as CacheReadFailure and never treated as a miss.

No single-flight: concurrent misses on one key may each call the producer.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from enum import Enum
from typing import Any, Callable, Mapping, TypeVar

from backend_insights.cache.backends import CacheBackend
from backend_insights.core.exceptions import (
    CacheBackendError,
    CacheReadFailure,
    CacheWriteFailure,
)
from backend_insights.insights_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SEC = 300


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize(value: Any) -> bytes:
    """Canonical JSON: sorted keys, no whitespace."""
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), default=_to_jsonable
    ).encode("utf-8")


def derive_key(prefix: str, params: Any) -> str:
    """
    prefix + ":" + sha256 hex of the canonical JSON of params.

    Stable across processes for equal params (no randomized hashing).
    """
    digest = hashlib.sha256(serialize(params)).hexdigest()
    return f"{prefix}:{digest}"


class CacheAside:
    def __init__(self, backend: CacheBackend, *, default_ttl: int = DEFAULT_TTL_SEC) -> None:
        self._backend = backend
        self._default_ttl = default_ttl

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    def _read(self, key: str) -> tuple[bool, Any]:
        try:
            raw = self._backend.get(key)
        except CacheBackendError as error:
            logger.error("cache_read_failed", key=key, error=str(error))
            raise CacheReadFailure(key, str(error)) from error
        if raw is None:
            return False, None
        try:
            return True, json.loads(raw)
        except (UnicodeDecodeError, ValueError) as error:
            logger.error("cache_read_failed", key=key, error="corrupt payload")
            raise CacheReadFailure(key, f"corrupt cached payload: {error}") from error

    def _write(self, key: str, value: Any, ttl: int) -> bytes | None:
        """Returns the serialized payload, or None when the value could not be encoded."""
        try:
            payload = serialize(value)
        except (TypeError, ValueError) as error:
            failure = CacheWriteFailure(key, str(error))
            logger.warning("cache_write_failed", key=key, ttl=ttl, error=str(failure))
            return None
        try:
            self._backend.set(key, payload, ttl)
        except (CacheBackendError, ValueError) as error:
            failure = CacheWriteFailure(key, str(error))
            logger.warning("cache_write_failed", key=key, ttl=ttl, error=str(failure))
        return payload

    def fetch(
        self,
        key: str,
        ttl: int | None,
        producer: Callable[[], T],
        decode: Callable[[Any], T] | None = None,
    ) -> Any:
        """
        Return the cached value for key, or the producer's value on a miss.

        With decode, a hit returns decode(cached JSON) and a miss returns the
        producer's value, so decode must rebuild what the producer returns.
        Without decode, both paths return the JSON form (dataclasses as dicts,
        tuples as lists, enums as their values). A value that cannot be encoded
        is returned as produced and not cached.

        Raises:
            CacheReadFailure: backend unreachable or payload corrupt.
            Anything the producer raises (nothing is cached in that case).
        """
        ttl = self._default_ttl if ttl is None else ttl
        hit, value = self._read(key)
        if hit:
            logger.debug("cache_hit", key=key)
            return decode(value) if decode is not None else value
        logger.debug("cache_miss", key=key)
        value = producer()
        payload = self._write(key, value, ttl)
        if decode is not None or payload is None:
            return value
        return json.loads(payload)

    def fetch_with_params(
        self,
        prefix: str,
        params: Mapping[str, Any],
        ttl: int | None,
        producer: Callable[[], T],
        decode: Callable[[Any], T] | None = None,
    ) -> Any:
        return self.fetch(derive_key(prefix, params), ttl, producer, decode)

    def invalidate(self, key: str) -> None:
        """Best-effort delete; failures are logged."""
        try:
            self._backend.delete(key)
        except CacheBackendError as error:
            logger.warning("cache_invalidate_failed", key=key, error=str(error))
