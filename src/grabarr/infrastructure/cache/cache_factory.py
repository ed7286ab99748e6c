"""Cache store factory - picks the store based on config."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import structlog

from grabarr.domain.ports.cache import CacheStorePort
from grabarr.infrastructure.cache.diskcache_store import DiskcacheCacheStore
from grabarr.infrastructure.cache.memory_store import InMemoryCacheStore

log = structlog.get_logger(__name__)

CacheBackend = Literal["memory", "diskcache"]


def create_cache_store(
    backend: CacheBackend = "diskcache",
    *,
    directory: str | Path = "./.cache/grabarr",
    max_concurrent: int = 10,
) -> CacheStorePort:
    """Create the cache store for *backend*.

    Raises:
        ValueError: If ``backend`` is unknown.
    """
    log.info("cache_store_create", backend=backend, directory=str(directory))
    if backend == "memory":
        return InMemoryCacheStore()
    if backend == "diskcache":
        return DiskcacheCacheStore(directory=directory, max_concurrent=max_concurrent)
    raise ValueError(
        f"Unknown cache backend: {backend!r}. Must be 'memory' or 'diskcache'."
    )
