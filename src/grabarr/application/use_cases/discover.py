"""Cached discovery lists: trending games and top releases."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

import structlog

from grabarr.application.use_cases.release_search import ReleaseSearchUseCase
from grabarr.domain.entities.metadata import (
    PopularEntry,
    PopularityType,
    ResolvedCandidate,
)
from grabarr.domain.entities.releases import ReleaseListing
from grabarr.domain.ports.collection import CollectionStorePort
from grabarr.domain.ports.providers import MetadataProviderPort
from grabarr.domain.ports.settings import RuntimeSettingsPort
from grabarr.infrastructure.cache.ttl_cache import TtlCache

log = structlog.get_logger(__name__)

POPULARITY_TYPES_KEY = "popularity_types"
TOP_RELEASES_KEY = "top_releases"


def trending_key(popularity_type: int) -> str:
    return f"trending_games_{popularity_type}"


class DiscoverCacheService:
    """Reads discovery lists through the TTL cache.

    TTL minutes are re-read from settings on every refresh. A failed refresh
    serves the stale list; only a cold cache surfaces the error.
    """

    def __init__(
        self,
        *,
        cache: TtlCache,
        metadata: MetadataProviderPort,
        releases: ReleaseSearchUseCase,
        settings: RuntimeSettingsPort,
        collection: CollectionStorePort | None = None,
        popularity_types: Sequence[int] = (1, 2, 3, 4, 5),
        trending_limit: int = 50,
        top_releases_query: str = "game",
        top_releases_limit: int = 50,
        pacing_seconds: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._cache = cache
        self._metadata = metadata
        self._releases = releases
        self._settings = settings
        self._collection = collection
        self._popularity_types = list(popularity_types)
        self._trending_limit = trending_limit
        self._top_query = top_releases_query
        self._top_limit = top_releases_limit
        self._pacing = pacing_seconds
        self._sleep = sleep

    def _ttl_seconds(self, key: str) -> float:
        return self._settings.cache_ttl_minutes(key) * 60

    # -- loaders --

    async def _load_trending(self, popularity_type: int) -> list[PopularEntry]:
        return await self._metadata.popular(popularity_type, self._trending_limit)

    async def _load_top_releases(self) -> list[ReleaseListing]:
        listings = await self._releases.manual_search(self._top_query)
        listings.sort(key=lambda item: item.seeders or 0, reverse=True)
        return listings[: self._top_limit]

    # -- reads --

    async def popularity_types(self) -> list[PopularityType]:
        return await self._cache.get_or_refresh(
            POPULARITY_TYPES_KEY,
            self._metadata.popularity_types,
            self._ttl_seconds("popularity_types"),
        )

    async def trending(self, popularity_type: int) -> list[ResolvedCandidate]:
        """Trending games in rank order, flagged when already owned."""
        entries: list[PopularEntry] = await self._cache.get_or_refresh(
            trending_key(popularity_type),
            lambda: self._load_trending(popularity_type),
            self._ttl_seconds("trending"),
        )
        owned = await self._collection.find_all_ids() if self._collection else set()
        return [
            ResolvedCandidate(
                candidate=entry.candidate,
                owned=entry.candidate.external_id in owned,
            )
            for entry in entries
        ]

    async def top_releases(self) -> list[ReleaseListing]:
        return await self._cache.get_or_refresh(
            TOP_RELEASES_KEY,
            self._load_top_releases,
            self._ttl_seconds("top_releases"),
        )

    # -- forced refreshes (scheduler entry points) --

    async def refresh_trending(self) -> int:
        """Refresh every configured popularity type. Returns how many succeeded."""
        refreshed = 0
        try:
            await self._cache.refresh(
                POPULARITY_TYPES_KEY,
                self._metadata.popularity_types,
                self._ttl_seconds("popularity_types"),
            )
        except Exception:
            log.warning("popularity_types_refresh_failed", exc_info=True)

        for index, popularity_type in enumerate(self._popularity_types):
            if index and self._pacing > 0:
                await self._sleep(self._pacing)
            try:
                await self._cache.refresh(
                    trending_key(popularity_type),
                    lambda t=popularity_type: self._load_trending(t),
                    self._ttl_seconds("trending"),
                )
            except Exception:
                log.warning(
                    "trending_refresh_failed",
                    popularity_type=popularity_type,
                    exc_info=True,
                )
                continue
            refreshed += 1
        log.info(
            "trending_refreshed",
            refreshed=refreshed,
            total=len(self._popularity_types),
        )
        return refreshed

    async def refresh_top_releases(self) -> int:
        releases = await self._cache.refresh(
            TOP_RELEASES_KEY,
            self._load_top_releases,
            self._ttl_seconds("top_releases"),
        )
        log.info("top_releases_refreshed", releases=len(releases))
        return len(releases)
