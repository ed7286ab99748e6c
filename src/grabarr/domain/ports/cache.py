"""Cache store port - raw entry persistence behind the TTL cache."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from grabarr.domain.entities.cache import CacheEntry


@runtime_checkable
class CacheStorePort(Protocol):
    """Stores CacheEntry rows verbatim.

    Stores never apply expiry themselves: an expired row must stay readable
    until ``delete_expired`` reaps it, so stale fallbacks keep working.

    Implementations:
      - InMemoryCacheStore
      - DiskcacheCacheStore (SQLite-based, no daemon)
    """

    async def read(self, key: str) -> CacheEntry | None:
        """Return the stored entry, expired or not. None = never written."""
        ...

    async def write(self, entry: CacheEntry) -> None:
        """Insert or overwrite the entry for ``entry.key``."""
        ...

    async def delete_expired(self, now: float) -> int:
        """Drop every entry expired at *now*. Returns the number removed."""
        ...

    async def aclose(self) -> None:
        """Cleanup hook."""
        ...
