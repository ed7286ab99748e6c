"""Auto-grab decision policy."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from grabarr.domain.entities.releases import GrabDecision, ReleaseTarget, ScoredRelease
from grabarr.domain.ports.settings import RuntimeSettingsPort

log = structlog.get_logger(__name__)


def should_auto_grab(scored: ScoredRelease, min_score: int, min_seeders: int) -> bool:
    """True iff both thresholds are met (inclusive)."""
    return scored.score >= min_score and scored.seeders >= min_seeders


def _reason(scored: ScoredRelease, min_score: int, min_seeders: int) -> str:
    if scored.score < min_score:
        return f"score {scored.score} < {min_score}"
    if scored.seeders < min_seeders:
        return f"seeders {scored.seeders} < {min_seeders}"
    return f"score {scored.score} >= {min_score}, seeders {scored.seeders} >= {min_seeders}"


class AutoGrabPolicy:
    """Applies ``should_auto_grab`` with thresholds read from settings.

    Thresholds are fetched on every call so operators can retune them
    without a restart.
    """

    def __init__(self, settings: RuntimeSettingsPort) -> None:
        self._settings = settings

    def decide(self, target: ReleaseTarget, scored: ScoredRelease) -> GrabDecision:
        min_score, min_seeders = self._settings.auto_grab_thresholds()
        return GrabDecision(
            target=target,
            release=scored,
            grab=should_auto_grab(scored, min_score, min_seeders),
            reason=_reason(scored, min_score, min_seeders),
        )

    def pick(
        self, target: ReleaseTarget, ranked: Iterable[ScoredRelease]
    ) -> GrabDecision:
        """First qualifying release of an already ranked list."""
        min_score, min_seeders = self._settings.auto_grab_thresholds()
        best: ScoredRelease | None = None
        for scored in ranked:
            best = best or scored
            if should_auto_grab(scored, min_score, min_seeders):
                log.info(
                    "auto_grab_selected",
                    target=target.title,
                    release=scored.listing.title,
                    score=scored.score,
                    seeders=scored.seeders,
                )
                return GrabDecision(
                    target=target,
                    release=scored,
                    grab=True,
                    reason=_reason(scored, min_score, min_seeders),
                )

        if best is None:
            return GrabDecision(
                target=target, release=None, grab=False, reason="no candidates"
            )
        return GrabDecision(
            target=target,
            release=best,
            grab=False,
            reason=_reason(best, min_score, min_seeders),
        )
