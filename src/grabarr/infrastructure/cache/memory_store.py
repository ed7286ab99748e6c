"""In-process cache store (tests, embedding, single-run CLI)."""

from __future__ import annotations

import structlog

from grabarr.domain.entities.cache import CacheEntry

log = structlog.get_logger(__name__)


class InMemoryCacheStore:
    """Dict-backed CacheStorePort. Entries survive until swept."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    async def __aenter__(self) -> InMemoryCacheStore:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def read(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def write(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    async def delete_expired(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def aclose(self) -> None:
        self._entries.clear()
