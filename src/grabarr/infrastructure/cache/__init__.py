from __future__ import annotations

from .cache_factory import create_cache_store
from .diskcache_store import DiskcacheCacheStore
from .memory_store import InMemoryCacheStore
from .ttl_cache import TtlCache

__all__ = [
    "DiskcacheCacheStore",
    "InMemoryCacheStore",
    "TtlCache",
    "create_cache_store",
]
