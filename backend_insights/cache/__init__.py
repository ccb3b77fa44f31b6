# Cache-aside layer and its memory / Redis backends.

from backend_insights.cache.backends import (
    CacheBackend,
    MemoryCacheBackend,
    RedisCacheBackend,
    build_cache_backend,
)
from backend_insights.cache.cache_aside import CacheAside, derive_key, serialize

__all__ = [
    "CacheBackend",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "build_cache_backend",
    "CacheAside",
    "derive_key",
    "serialize",
]
