"""Composition root: wires config into adapters, caches and use cases."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx
import structlog

from grabarr.application.use_cases import (
    DiscoverCacheService,
    MetadataResolutionUseCase,
    ReleaseSearchUseCase,
    RssMatchUseCase,
)
from grabarr.domain.ports.cache import CacheStorePort
from grabarr.domain.ports.settings import RuntimeSettingsPort
from grabarr.infrastructure.cache import TtlCache, create_cache_store
from grabarr.infrastructure.config.schema import AppConfig
from grabarr.infrastructure.jobs import CacheRefresher, RefreshJob
from grabarr.infrastructure.matching.auto_grab import AutoGrabPolicy
from grabarr.infrastructure.matching.release_scorer import ReleaseScorer
from grabarr.infrastructure.persistence import CacheCollectionStore
from grabarr.infrastructure.providers import (
    GogClient,
    IgdbClient,
    ProwlarrClient,
    SteamClient,
)
from grabarr.infrastructure.resolver.batch_resolver import BatchMetadataResolver
from grabarr.infrastructure.settings import FileBackedSettings, InMemorySettings

log = structlog.get_logger(__name__)


@dataclass
class Container:
    """Every long-lived object of one process.

    Lifecycle managed by :func:`build_container`.
    """

    config: AppConfig
    settings: RuntimeSettingsPort
    http_client: httpx.AsyncClient
    store: CacheStorePort
    cache: TtlCache
    collection: CacheCollectionStore

    igdb: IgdbClient
    prowlarr: ProwlarrClient
    steam: SteamClient
    gog: GogClient

    scorer: ReleaseScorer
    policy: AutoGrabPolicy
    resolver: BatchMetadataResolver

    metadata_resolution: MetadataResolutionUseCase
    release_search: ReleaseSearchUseCase
    rss_match: RssMatchUseCase
    discover: DiscoverCacheService
    refresher: CacheRefresher

    _refresher_task: Optional[asyncio.Task[None]] = field(default=None, repr=False)

    def start_refresher(self) -> asyncio.Task[None]:
        """Run the cache refresher in the background until shutdown."""
        if self._refresher_task is None:
            self._refresher_task = asyncio.create_task(self.refresher.run_forever())
            log.info("cache_refresher_task_started")
        return self._refresher_task

    async def _stop_refresher(self) -> None:
        if self._refresher_task is None:
            return
        self.refresher.stop()
        self._refresher_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._refresher_task
        self._refresher_task = None
        log.info("cache_refresher_task_stopped")


def _build_settings(
    config: AppConfig, config_path: Path | None
) -> RuntimeSettingsPort:
    if config_path is not None:
        return FileBackedSettings(config_path, initial=config)
    return InMemorySettings.from_config(config)


def _build_http_client(config: AppConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=True,
    )


@asynccontextmanager
async def build_container(
    config: AppConfig,
    *,
    config_path: Path | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[Container]:
    """Initialize and clean up all resources.

    Order matters:
        1. Settings + cache store (read by everything below)
        2. HTTP client (shared by every provider adapter)
        3. Provider adapters (one limiter/client each)
        4. Matching + use cases
        5. Discovery service + refresher jobs
    """
    settings = _build_settings(config, config_path)

    # 1) Cache store
    store = create_cache_store(
        config.cache.backend,
        directory=config.cache.directory,
        max_concurrent=config.cache.max_concurrent,
    )
    await store.__aenter__()  # type: ignore[attr-defined]
    cache = TtlCache(store)
    collection = CacheCollectionStore(store)
    log.info("cache_initialized", backend=config.cache.backend)

    # 2) HTTP client
    owns_client = http_client is None
    client = http_client or _build_http_client(config)
    log.info("http_client_initialized", timeout=config.http_timeout_seconds)

    # 3) Providers
    common = {
        "http_client": client,
        "retry": config.retry.to_policy(),
        "settings": settings,
    }
    igdb = IgdbClient(
        client_id=config.igdb.client_id,
        client_secret=config.igdb.client_secret,
        budget=config.igdb.budget(),
        **common,
    )
    prowlarr = ProwlarrClient(
        url=config.prowlarr.url,
        api_key=config.prowlarr.api_key,
        budget=config.prowlarr.budget(),
        **common,
    )
    steam = SteamClient(
        api_key=config.steam.api_key,
        steam_id=config.steam.steam_id,
        budget=config.steam.budget(),
        **common,
    )
    gog = GogClient(
        refresh_token=config.gog.refresh_token,
        budget=config.gog.budget(),
        **common,
    )
    log.info(
        "providers_initialized",
        configured=[p.name for p in (igdb, prowlarr, steam, gog) if p.is_configured()],
    )

    # 4) Matching + use cases
    scorer = ReleaseScorer(config.scoring)
    policy = AutoGrabPolicy(settings)
    resolver = BatchMetadataResolver(igdb, pacing_seconds=config.resolver.pacing_seconds)
    release_search = ReleaseSearchUseCase(prowlarr, scorer, policy, settings)

    # 5) Discovery + refresher
    discover = DiscoverCacheService(
        cache=cache,
        metadata=igdb,
        releases=release_search,
        settings=settings,
        collection=collection,
        popularity_types=config.discover.popularity_types,
        trending_limit=config.discover.trending_limit,
        top_releases_query=config.discover.top_releases_query,
        top_releases_limit=config.discover.top_releases_limit,
        pacing_seconds=config.discover.pacing_seconds,
    )
    refresher = CacheRefresher(
        jobs=[
            RefreshJob("trending", discover.refresh_trending, ttl_key="trending"),
            RefreshJob(
                "top_releases", discover.refresh_top_releases, ttl_key="top_releases"
            ),
        ],
        settings=settings,
        cache=cache,
        sweep_interval_seconds=config.cache.sweep_interval_minutes * 60,
    )

    container = Container(
        config=config,
        settings=settings,
        http_client=client,
        store=store,
        cache=cache,
        collection=collection,
        igdb=igdb,
        prowlarr=prowlarr,
        steam=steam,
        gog=gog,
        scorer=scorer,
        policy=policy,
        resolver=resolver,
        metadata_resolution=MetadataResolutionUseCase(
            resolver, collection, clean_names=config.resolver.clean_release_names
        ),
        release_search=release_search,
        rss_match=RssMatchUseCase(prowlarr, scorer, policy, settings),
        discover=discover,
        refresher=refresher,
    )
    log.info("startup_complete")

    try:
        yield container
    finally:
        await container._stop_refresher()

        if owns_client:
            await client.aclose()
            log.info("http_client_closed")

        await store.aclose()
        log.info("cache_closed")

        log.info("shutdown_complete")
