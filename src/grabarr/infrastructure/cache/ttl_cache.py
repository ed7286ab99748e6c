"""TTL cache with stale-serve fallback and single-flight refresh."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from grabarr.domain.entities.cache import CacheEntry
from grabarr.domain.ports.cache import CacheStorePort

log = structlog.get_logger(__name__)

Loader = Callable[[], Awaitable[Any]]


class TtlCache:
    """Key/value cache over a CacheStorePort.

    ``get`` never returns an entry older than its TTL; ``get_stale`` ignores
    expiry. Refreshes are single-flight per key: concurrent callers share
    one in-flight load instead of stampeding the source.

    Args:
        store: Backing store.
        clock: Wall clock (epoch seconds), injectable for tests.
    """

    def __init__(
        self,
        store: CacheStorePort,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    async def get(self, key: str) -> Any | None:
        """Fresh value, or None on miss/expiry."""
        entry = await self._store.read(key)
        if entry is None or entry.is_expired(self._clock()):
            log.debug("cache_get", key=key, hit=False)
            return None
        log.debug("cache_get", key=key, hit=True)
        return entry.payload

    async def get_stale(self, key: str) -> Any | None:
        """Stored value regardless of age, or None if never written/reaped."""
        entry = await self._store.read(key)
        return entry.payload if entry is not None else None

    async def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Insert or overwrite. Last writer wins."""
        await self._store.write(
            CacheEntry(
                key=key,
                payload=value,
                created_at=self._clock(),
                ttl_seconds=ttl_seconds,
            )
        )
        log.debug("cache_set", key=key, ttl=ttl_seconds)

    async def delete_expired(self) -> int:
        removed = await self._store.delete_expired(self._clock())
        if removed:
            log.info("cache_swept", removed=removed)
        return removed

    async def get_or_refresh(
        self, key: str, loader: Loader, ttl_seconds: float
    ) -> Any:
        """Fresh value if present, otherwise :meth:`refresh`."""
        cached = await self.get(key)
        if cached is not None:
            return cached
        return await self.refresh(key, loader, ttl_seconds)

    async def refresh(self, key: str, loader: Loader, ttl_seconds: float) -> Any:
        """Recompute *key* from *loader*.

        On loader failure the stale value is returned if one exists;
        otherwise the loader's exception propagates unchanged.
        """
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, loader, ttl_seconds))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            log.debug("cache_refresh_joined", key=key)
        # A cancelled waiter must not cancel the load other callers share.
        return await asyncio.shield(task)

    async def _load(self, key: str, loader: Loader, ttl_seconds: float) -> Any:
        try:
            value = await loader()
        except Exception as exc:
            stale = await self.get_stale(key)
            if stale is None:
                log.error("cache_refresh_failed", key=key, error=str(exc))
                raise
            log.warning("cache_refresh_failed_serving_stale", key=key, error=str(exc))
            return stale
        await self.set(key, value, ttl_seconds)
        return value

    def _forget(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark retrieved; waiters re-raise it themselves.
            task.exception()
