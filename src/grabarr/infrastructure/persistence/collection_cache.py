"""Collection store backed by CacheStorePort (memory/diskcache)."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable

import structlog

from grabarr.domain.entities.cache import CacheEntry
from grabarr.domain.entities.metadata import CandidateMetadata
from grabarr.domain.ports.cache import CacheStorePort

log = structlog.get_logger(__name__)

COLLECTION_KEY = "collection:items"


class CacheCollectionStore:
    """Owned items keyed by external id, persisted as one cache entry.

    The entry never expires; the TTL sweep leaves it alone.
    """

    def __init__(
        self,
        store: CacheStorePort,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

    async def _load(self) -> dict[int, CandidateMetadata]:
        entry = await self._store.read(COLLECTION_KEY)
        if entry is None or not isinstance(entry.payload, dict):
            return {}
        return dict(entry.payload)

    async def find_all_ids(self) -> set[int]:
        return set(await self._load())

    async def find_by_external_id(self, external_id: int) -> CandidateMetadata | None:
        return (await self._load()).get(external_id)

    async def add(self, candidates: Iterable[CandidateMetadata]) -> int:
        """Mark *candidates* as owned. Returns how many were new."""
        items = await self._load()
        before = len(items)
        for candidate in candidates:
            items[candidate.external_id] = candidate
        await self._store.write(
            CacheEntry(
                key=COLLECTION_KEY,
                payload=items,
                created_at=self._clock(),
                ttl_seconds=float("inf"),
            )
        )
        added = len(items) - before
        log.info("collection_updated", added=added, total=len(items))
        return added
