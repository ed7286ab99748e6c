"""Release search for one wanted item, with retry-on-empty variations."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

import structlog

from grabarr.domain.entities.releases import (
    GrabDecision,
    ReleaseListing,
    ReleaseTarget,
    ScoredRelease,
)
from grabarr.domain.exceptions import NotConfiguredError
from grabarr.domain.ports.providers import ReleaseIndexerPort
from grabarr.domain.ports.reranker import ReleaseRerankerPort
from grabarr.domain.ports.settings import RuntimeSettingsPort
from grabarr.infrastructure.matching.auto_grab import AutoGrabPolicy
from grabarr.infrastructure.matching.release_scorer import ReleaseScorer
from grabarr.infrastructure.matching.title_normalizer import (
    generate_variations,
    normalize,
    search_terms,
)

log = structlog.get_logger(__name__)


class ReleaseSearchUseCase:
    """Searches the indexer for a target and ranks what comes back.

    Flow:
        1. Query the indexer with the normalised title
        2. On zero results, retry each spelling variation until one hits
        3. Score + rank (drops score <= 0)
        4. Optional opaque re-ranker
        5. Auto-grab pick, returned as data
    """

    def __init__(
        self,
        indexer: ReleaseIndexerPort,
        scorer: ReleaseScorer,
        policy: AutoGrabPolicy,
        settings: RuntimeSettingsPort,
        reranker: ReleaseRerankerPort | None = None,
    ) -> None:
        self._indexer = indexer
        self._scorer = scorer
        self._policy = policy
        self._settings = settings
        self._reranker = reranker

    def _ensure_configured(self) -> None:
        if not self._indexer.is_configured():
            raise NotConfiguredError(self._indexer.name, "indexer is not configured")

    async def _search(self, query: str, categories: Sequence[int]) -> list[ReleaseListing]:
        return await self._indexer.search(query, categories)

    async def search_for_item(
        self, target: ReleaseTarget, now: datetime | None = None
    ) -> list[ScoredRelease]:
        self._ensure_configured()
        categories = self._settings.release_categories()
        query = normalize(target.title)
        listings = await self._search(query, categories)

        if not listings:
            tried = {query}
            for variant in generate_variations(target.title):
                variant_query = search_terms(variant)
                if not variant_query or variant_query in tried:
                    continue
                tried.add(variant_query)
                listings = await self._search(variant_query, categories)
                if listings:
                    log.info(
                        "release_search_variation_hit",
                        title=target.title,
                        query=variant_query,
                        results=len(listings),
                    )
                    break

        ranked = self._scorer.rank(listings, target, now)
        if self._reranker is not None and ranked:
            try:
                ranked = await self._reranker.rerank(target, ranked)
            except Exception:
                log.warning(
                    "release_rerank_failed", title=target.title, exc_info=True
                )

        log.info(
            "release_search_done",
            title=target.title,
            listings=len(listings),
            candidates=len(ranked),
        )
        return ranked

    async def decide(
        self, target: ReleaseTarget, now: datetime | None = None
    ) -> GrabDecision:
        """Search and pick the first release that clears the auto-grab bar."""
        ranked = await self.search_for_item(target, now)
        decision = self._policy.pick(target, ranked)
        log.info(
            "auto_grab_decision",
            title=target.title,
            grab=decision.grab,
            reason=decision.reason,
            dry_run=self._settings.dry_run(),
        )
        return decision

    async def manual_search(self, query: str) -> list[ReleaseListing]:
        """Raw listings for a free-text query, unscored."""
        self._ensure_configured()
        return await self._search(query, self._settings.release_categories())
