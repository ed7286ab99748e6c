"""Diskcache store - SQLite-based cache without daemon process."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog
from diskcache import Cache as DiskCache

from grabarr.domain.entities.cache import CacheEntry

log = structlog.get_logger(__name__)


class DiskcacheCacheStore:
    """Async wrapper for diskcache.Cache (sync-only library).

    - Uses `asyncio.to_thread` for I/O (no blocking of the event loop).
    - Semaphore prevents too many parallel disk writes (SQLite lock contention).
    - Rows are written without diskcache's own ``expire``: the TTL lives in
      the CacheEntry so expired rows stay readable for stale fallback.

    Args:
        directory: SQLite DB path.
        max_concurrent: Max parallel disk ops.
    """

    def __init__(
        self,
        directory: str | Path = "./.cache/grabarr",
        max_concurrent: int = 10,
    ) -> None:
        self.directory = Path(directory)
        self._cache: DiskCache | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    # --- Context Manager ---
    async def __aenter__(self) -> DiskcacheCacheStore:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def open(self) -> None:
        if self._cache is None:
            self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info("diskcache_opened", path=str(self.directory))

    async def aclose(self) -> None:
        if self._cache is not None:
            await asyncio.to_thread(self._cache.close)
            self._cache = None
            log.info("diskcache_closed", directory=str(self.directory))

    def _require(self) -> DiskCache:
        if self._cache is None:
            raise RuntimeError(
                "Cache not initialized. Use 'async with store:' or await store.open()"
            )
        return self._cache

    # --- CacheStorePort implementation ---
    async def read(self, key: str) -> CacheEntry | None:
        cache = self._require()
        async with self._semaphore:
            entry = await asyncio.to_thread(cache.get, key, default=None)
        if entry is not None and not isinstance(entry, CacheEntry):
            log.warning("diskcache_foreign_row", key=key)
            return None
        return entry

    async def write(self, entry: CacheEntry) -> None:
        cache = self._require()
        async with self._semaphore:
            await asyncio.to_thread(cache.set, entry.key, entry)

    async def delete_expired(self, now: float) -> int:
        cache = self._require()

        def _sweep() -> int:
            removed = 0
            for key in list(cache.iterkeys()):
                entry = cache.get(key, default=None)
                if not isinstance(entry, CacheEntry) or entry.is_expired(now):
                    removed += bool(cache.delete(key))
            return removed

        async with self._semaphore:
            return await asyncio.to_thread(_sweep)
