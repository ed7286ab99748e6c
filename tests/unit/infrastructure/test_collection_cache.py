"""Tests for the cache-backed collection store."""

from __future__ import annotations

import pytest

from grabarr.domain.entities import CandidateMetadata
from grabarr.domain.ports.collection import CollectionStorePort
from grabarr.infrastructure.cache import DiskcacheCacheStore, InMemoryCacheStore
from grabarr.infrastructure.persistence import CacheCollectionStore


class TestCacheCollectionStore:
    @pytest.mark.asyncio()
    async def test_add_and_lookup(self, clock) -> None:
        store = CacheCollectionStore(InMemoryCacheStore(), clock=clock)
        assert isinstance(store, CollectionStorePort)
        assert await store.find_all_ids() == set()

        added = await store.add(
            [
                CandidateMetadata(external_id=1, title="Hades"),
                CandidateMetadata(external_id=2, title="Celeste"),
            ]
        )
        assert added == 2
        assert await store.add([CandidateMetadata(external_id=1, title="Hades")]) == 0

        assert await store.find_all_ids() == {1, 2}
        found = await store.find_by_external_id(2)
        assert found is not None and found.title == "Celeste"
        assert await store.find_by_external_id(3) is None

    @pytest.mark.asyncio()
    async def test_survives_cache_sweep(self, clock) -> None:
        backing = InMemoryCacheStore()
        store = CacheCollectionStore(backing, clock=clock)
        await store.add([CandidateMetadata(external_id=7, title="Hollow Knight")])

        clock.advance(10 * 365 * 86400)
        assert await backing.delete_expired(clock()) == 0
        assert await store.find_all_ids() == {7}

    @pytest.mark.asyncio()
    async def test_persists_across_diskcache_reopen(self, tmp_path) -> None:
        async with DiskcacheCacheStore(tmp_path / "cache") as backing:
            await CacheCollectionStore(backing).add(
                [CandidateMetadata(external_id=9, title="Outer Wilds", year=2019)]
            )
        async with DiskcacheCacheStore(tmp_path / "cache") as backing:
            found = await CacheCollectionStore(backing).find_by_external_id(9)
        assert found == CandidateMetadata(external_id=9, title="Outer Wilds", year=2019)
