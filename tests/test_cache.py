"""
Tests for CacheAside and cache backends: key derivation, hit/miss behaviour,
best-effort writes and read-failure propagation.
"""

from __future__ import annotations

from dataclasses import dataclass
from unittest.mock import Mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from backend_insights.analytics import AnchorMetricsSnapshot, AnchorStatus, WeightedReliabilityScorer
from backend_insights.cache import (
    CacheAside,
    MemoryCacheBackend,
    RedisCacheBackend,
    build_cache_backend,
    derive_key,
)
from backend_insights.cache import backends as backends_module
from backend_insights.core.exceptions import CacheBackendError, CacheReadFailure


@dataclass
class Query:
    corridor: str
    limit: int


def test_derive_key_deterministic_with_prefix():
    params = {"top_n": 20, "corridors": ["a", "b"], "min": 0.5}
    first = derive_key("muxed", params)
    assert first == derive_key("muxed", params)
    assert first.startswith("muxed:")
    assert len(first) == len("muxed:") + 64


def test_derive_key_ignores_dict_order_but_not_values():
    assert derive_key("p", {"a": 1, "b": 2}) == derive_key("p", {"b": 2, "a": 1})
    assert derive_key("p", {"a": 1}) != derive_key("p", {"a": 2})
    assert derive_key("p", {"a": 1}) != derive_key("q", {"a": 1})


def test_derive_key_accepts_dataclass_params():
    assert derive_key("q", Query("A->B", 5)) == derive_key("q", {"corridor": "A->B", "limit": 5})


def test_miss_then_hit(cache):
    producer = Mock(return_value={"value": 1})
    assert cache.fetch("k", 60, producer) == {"value": 1}
    assert cache.fetch("k", 60, producer) == {"value": 1}
    producer.assert_called_once()


def test_fetch_with_params_uses_derived_key(cache, memory_backend):
    cache.fetch_with_params("summ", {"x": 1}, 60, lambda: [1, 2])
    assert memory_backend.get(derive_key("summ", {"x": 1})) == b"[1,2]"


def test_write_failure_is_swallowed():
    backend = Mock()
    backend.get.return_value = None
    backend.set.side_effect = CacheBackendError("read-only replica")
    cache = CacheAside(backend)
    assert cache.fetch("k", 60, lambda: {"ok": True}) == {"ok": True}
    backend.set.assert_called_once()


def test_unserializable_value_is_returned_uncached(cache, memory_backend):
    value = object()
    assert cache.fetch("k", 60, lambda: value) is value
    assert memory_backend.get("k") is None


def test_read_failure_propagates_and_skips_producer():
    backend = Mock()
    backend.get.side_effect = CacheBackendError("connection refused")
    producer = Mock()
    with pytest.raises(CacheReadFailure) as exc:
        CacheAside(backend).fetch("k", 60, producer)
    assert exc.value.key == "k"
    producer.assert_not_called()


def test_corrupt_payload_is_read_failure(cache, memory_backend):
    memory_backend.set("k", b"\xff not json", 60)
    with pytest.raises(CacheReadFailure):
        cache.fetch("k", 60, lambda: 1)


def test_producer_error_propagates_and_caches_nothing(cache, memory_backend):
    def boom():
        raise RuntimeError("query failed")

    with pytest.raises(RuntimeError):
        cache.fetch("k", 60, boom)
    assert memory_backend.get("k") is None


def test_default_ttl_used_when_none():
    backend = Mock()
    backend.get.return_value = None
    CacheAside(backend, default_ttl=123).fetch("k", None, lambda: 1)
    backend.set.assert_called_once_with("k", b"1", 123)


def test_memory_backend_expiry(monkeypatch, memory_backend):
    now = [1000.0]
    monkeypatch.setattr(backends_module.time, "monotonic", lambda: now[0])
    memory_backend.set("k", b"v", 10)
    assert memory_backend.get("k") == b"v"
    now[0] += 10
    assert memory_backend.get("k") is None
    assert len(memory_backend) == 0


def test_memory_backend_rejects_non_positive_ttl(memory_backend):
    with pytest.raises(CacheBackendError):
        memory_backend.set("k", b"v", 0)


def test_invalidate(cache, memory_backend):
    cache.fetch("k", 60, lambda: 1)
    cache.invalidate("k")
    assert memory_backend.get("k") is None


def test_redis_backend_maps_errors():
    client = Mock()
    client.get.side_effect = RedisConnectionError("down")
    client.set.side_effect = RedisConnectionError("down")
    backend = RedisCacheBackend("redis://localhost:6379/0", client=client)
    with pytest.raises(CacheBackendError):
        backend.get("k")
    with pytest.raises(CacheBackendError):
        backend.set("k", b"v", 5)


def test_redis_backend_get_set():
    client = Mock()
    client.get.return_value = b"payload"
    backend = RedisCacheBackend("redis://localhost:6379/0", client=client)
    assert backend.get("k") == b"payload"
    backend.set("k", b"v", 5)
    client.set.assert_called_once_with("k", b"v", ex=5)


def test_build_cache_backend_defaults_to_memory():
    assert isinstance(build_cache_backend(""), MemoryCacheBackend)
    assert isinstance(build_cache_backend(None), MemoryCacheBackend)


def test_dataclass_value_same_on_miss_and_hit_with_decode(cache):
    scorer = WeightedReliabilityScorer()
    producer = Mock(side_effect=lambda: scorer.score(10, 9, 1, 100.0))
    miss = cache.fetch("k", 60, producer, AnchorMetricsSnapshot.from_dict)
    hit = cache.fetch("k", 60, producer, AnchorMetricsSnapshot.from_dict)
    producer.assert_called_once()
    assert isinstance(hit, AnchorMetricsSnapshot)
    assert hit == miss
    assert hit.status == AnchorStatus.HEALTHY


def test_without_decode_miss_returns_json_form(cache):
    value = (Query("A->B", 5), AnchorStatus.DEGRADED)
    miss = cache.fetch("k", 60, lambda: value)
    hit = cache.fetch("k", 60, lambda: value)
    assert miss == hit == [{"corridor": "A->B", "limit": 5}, "degraded"]


def test_fetch_with_params_passes_decode(cache):
    decode = Mock(side_effect=lambda data: Query(**data))
    first = cache.fetch_with_params("q", {"x": 1}, 60, lambda: Query("A->B", 5), decode)
    second = cache.fetch_with_params("q", {"x": 1}, 60, lambda: Query("A->B", 5), decode)
    assert first == second == Query("A->B", 5)
    decode.assert_called_once_with({"corridor": "A->B", "limit": 5})
