"""Match fresh RSS listings against the wanted list."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

import structlog

from grabarr.domain.entities.releases import (
    Confidence,
    GrabDecision,
    ReleaseListing,
    ReleaseTarget,
    ScoredRelease,
)
from grabarr.domain.exceptions import NotConfiguredError
from grabarr.domain.ports.providers import ReleaseIndexerPort
from grabarr.domain.ports.settings import RuntimeSettingsPort
from grabarr.infrastructure.matching.auto_grab import AutoGrabPolicy
from grabarr.infrastructure.matching.release_scorer import ReleaseScorer

log = structlog.get_logger(__name__)

_MAX_PROCESSED = 1000


class RssMatchUseCase:
    """Scores each unseen listing against every wanted target.

    The best positive, non-low-confidence match per listing is handed to the
    auto-grab policy. A target is consumed once a decision grabs it, so one
    sync never grabs the same item twice. Seen GUIDs are remembered (bounded)
    across syncs.
    """

    def __init__(
        self,
        indexer: ReleaseIndexerPort,
        scorer: ReleaseScorer,
        policy: AutoGrabPolicy,
        settings: RuntimeSettingsPort,
        *,
        max_processed: int = _MAX_PROCESSED,
    ) -> None:
        self._indexer = indexer
        self._scorer = scorer
        self._policy = policy
        self._settings = settings
        self._max_processed = max_processed
        self._processed: OrderedDict[str, None] = OrderedDict()

    def _seen(self, guid: str) -> bool:
        if guid in self._processed:
            return True
        self._processed[guid] = None
        while len(self._processed) > self._max_processed:
            self._processed.popitem(last=False)
        return False

    def best_match(
        self,
        listing: ReleaseListing,
        wanted: Iterable[ReleaseTarget],
        now: datetime | None = None,
    ) -> tuple[ReleaseTarget, ScoredRelease] | None:
        best: tuple[ReleaseTarget, ScoredRelease] | None = None
        best_score = 0
        for target in wanted:
            scored = self._scorer.score(listing, target, now)
            if scored.score > best_score and scored.confidence is not Confidence.LOW:
                best_score = scored.score
                best = (target, scored)
        return best

    def match(
        self,
        listings: Iterable[ReleaseListing],
        wanted: Sequence[ReleaseTarget],
        now: datetime | None = None,
    ) -> list[GrabDecision]:
        now = now or datetime.now(timezone.utc)
        remaining = list(wanted)
        decisions: list[GrabDecision] = []
        for listing in listings:
            if not remaining:
                break
            if self._seen(listing.guid):
                continue
            found = self.best_match(listing, remaining, now)
            if found is None:
                continue
            target, scored = found
            decision = self._policy.decide(target, scored)
            decisions.append(decision)
            if decision.grab:
                remaining.remove(target)
            else:
                log.debug(
                    "rss_match_below_threshold",
                    release=listing.title,
                    target=target.title,
                    score=scored.score,
                )
        return decisions

    async def sync(
        self, wanted: Sequence[ReleaseTarget], now: datetime | None = None
    ) -> list[GrabDecision]:
        """Fetch the latest listings and match them."""
        if not self._indexer.is_configured():
            raise NotConfiguredError(self._indexer.name, "indexer is not configured")
        if not wanted:
            return []
        listings = await self._indexer.rss(self._settings.release_categories())
        decisions = self.match(listings, wanted, now)
        log.info(
            "rss_sync_done",
            listings=len(listings),
            matches=len(decisions),
            grabs=sum(1 for d in decisions if d.grab),
            dry_run=self._settings.dry_run(),
        )
        return decisions
