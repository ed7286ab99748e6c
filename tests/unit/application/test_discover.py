"""Tests for DiscoverCacheService."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from grabarr.application.use_cases import DiscoverCacheService
from grabarr.application.use_cases.discover import TOP_RELEASES_KEY, trending_key
from grabarr.domain.entities import CandidateMetadata, PopularEntry, PopularityType
from grabarr.domain.exceptions import ProviderError
from grabarr.infrastructure.cache import InMemoryCacheStore, TtlCache
from grabarr.infrastructure.persistence import CacheCollectionStore


def _entry(external_id: int, rank: int, popularity_type: int = 1) -> PopularEntry:
    return PopularEntry(
        candidate=CandidateMetadata(external_id=external_id, title=f"Game {external_id}"),
        value=100.0 - rank,
        popularity_type=popularity_type,
        rank=rank,
    )


class _Popularity:
    name = "catalog"

    def __init__(self, failing: set[int] | None = None) -> None:
        self.failing = failing or set()
        self.popular_calls: list[int] = []

    async def popularity_types(self) -> list[PopularityType]:
        return [PopularityType(1, "Visits"), PopularityType(2, "Want to Play")]

    async def popular(self, popularity_type: int, limit: int = 20) -> list[PopularEntry]:
        self.popular_calls.append(popularity_type)
        if popularity_type in self.failing:
            raise ProviderError(self.name, "boom", status=500)
        return [_entry(10, 1, popularity_type), _entry(20, 2, popularity_type)]


@pytest.fixture()
def store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture()
def releases() -> AsyncMock:
    mock = AsyncMock()
    mock.manual_search.return_value = []
    return mock


def _service(store, clock, settings, releases, metadata=None, **kwargs):
    return DiscoverCacheService(
        cache=TtlCache(store, clock=clock),
        metadata=metadata or _Popularity(),
        releases=releases,
        settings=settings,
        sleep=clock.sleep,
        **kwargs,
    )


class TestTrending:
    @pytest.mark.asyncio()
    async def test_owned_flags_and_rank_order(
        self, store, clock, settings, releases
    ) -> None:
        collection = CacheCollectionStore(store)
        await collection.add([CandidateMetadata(external_id=20, title="Game 20")])
        service = _service(store, clock, settings, releases, collection=collection)

        result = await service.trending(1)

        assert [(r.candidate.external_id, r.owned) for r in result] == [
            (10, False),
            (20, True),
        ]

    @pytest.mark.asyncio()
    async def test_cached_until_ttl_from_settings(
        self, store, clock, settings, releases
    ) -> None:
        metadata = _Popularity()
        service = _service(store, clock, settings, releases, metadata)

        await service.trending(1)
        clock.advance(14 * 60)
        await service.trending(1)
        assert metadata.popular_calls == [1]

        # New TTL applies from the next write.
        settings.ttl_minutes["trending"] = 1
        clock.advance(2 * 60)
        await service.trending(1)
        clock.advance(2 * 60)
        await service.trending(1)
        assert metadata.popular_calls == [1, 1, 1]

    @pytest.mark.asyncio()
    async def test_popularity_types_cached(self, store, clock, settings, releases) -> None:
        service = _service(store, clock, settings, releases)
        types = await service.popularity_types()
        assert [t.name for t in types] == ["Visits", "Want to Play"]

    @pytest.mark.asyncio()
    async def test_refresh_counts_successes_and_paces(
        self, store, clock, settings, releases
    ) -> None:
        metadata = _Popularity(failing={2})
        service = _service(
            store, clock, settings, releases, metadata, popularity_types=(1, 2, 3)
        )

        refreshed = await service.refresh_trending()

        assert refreshed == 2
        assert metadata.popular_calls == [1, 2, 3]
        assert clock.sleeps == [0.5, 0.5]
        assert await TtlCache(store, clock=clock).get(trending_key(2)) is None
        assert await TtlCache(store, clock=clock).get(trending_key(3)) is not None

    @pytest.mark.asyncio()
    async def test_refresh_failure_keeps_stale_list(
        self, store, clock, settings, releases
    ) -> None:
        metadata = _Popularity()
        service = _service(
            store, clock, settings, releases, metadata, popularity_types=(1,)
        )
        await service.refresh_trending()

        metadata.failing = {1}
        clock.advance(16 * 60)
        assert await service.refresh_trending() == 1
        assert [r.candidate.external_id for r in await service.trending(1)] == [10, 20]


class TestTopReleases:
    @pytest.mark.asyncio()
    async def test_sorted_by_seeders_and_truncated(
        self, store, clock, settings, releases, make_listing
    ) -> None:
        releases.manual_search.return_value = [
            make_listing("a", seeders=5),
            make_listing("b", seeders=50),
            make_listing("c", seeders=None),
            make_listing("d", seeders=20),
        ]
        service = _service(store, clock, settings, releases, top_releases_limit=2)

        result = await service.top_releases()

        assert [r.title for r in result] == ["b", "d"]
        releases.manual_search.assert_awaited_once_with("game")

    @pytest.mark.asyncio()
    async def test_stale_served_when_indexer_down(
        self, store, clock, settings, releases, make_listing
    ) -> None:
        releases.manual_search.return_value = [make_listing("a")]
        service = _service(store, clock, settings, releases)
        assert await service.refresh_top_releases() == 1

        releases.manual_search.side_effect = ProviderError("prowlarr", "down")
        clock.advance(6 * 60)
        assert [r.title for r in await service.top_releases()] == ["a"]

    @pytest.mark.asyncio()
    async def test_cold_failure_propagates(self, store, clock, settings, releases) -> None:
        releases.manual_search.side_effect = ProviderError("prowlarr", "down")
        service = _service(store, clock, settings, releases)
        with pytest.raises(ProviderError):
            await service.refresh_top_releases()
        assert await TtlCache(store, clock=clock).get_stale(TOP_RELEASES_KEY) is None
