"""Lexical release scoring.

Pure transformation logic, no I/O. Scores untrusted release listings
against a wanted item; every adjustment is additive on a base score so
each rule can be reasoned about (and tuned) in isolation.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

import structlog

from grabarr.domain.entities.releases import (
    Confidence,
    ReleaseListing,
    ReleaseTarget,
    ScoredRelease,
)
from grabarr.infrastructure.config.schema import ScoringConfig
from grabarr.infrastructure.matching.platforms import detect_platform, platform_family
from grabarr.infrastructure.matching.title_normalizer import normalize

log = structlog.get_logger(__name__)

_GIB = 1024**3


class ReleaseScorer:
    """Scores ReleaseListings against a ReleaseTarget.

    Pipeline (magnitudes from ScoringConfig): platform, title, year,
    quality (first tier wins), seeders, age, size, then confidence
    re-derivation from the final score.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self._config = config or ScoringConfig()
        self._quality = [
            (tier.label, tier.bonus, re.compile(rf"\b(?:{tier.pattern})\b", re.I))
            for tier in self._config.quality_tiers
        ]

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def quality_label(self, title: str) -> tuple[str | None, int]:
        """First matching quality tier as ``(label, bonus)``."""
        # "_" is a word character; treat it as a separator here.
        text = title.replace("_", " ")
        for label, bonus, pattern in self._quality:
            if pattern.search(text):
                return label, bonus
        return None, 0

    def score(
        self,
        listing: ReleaseListing,
        target: ReleaseTarget,
        now: datetime | None = None,
    ) -> ScoredRelease:
        cfg = self._config
        now = now or datetime.now(timezone.utc)
        raw_title = listing.title if isinstance(listing.title, str) else ""
        score = cfg.base_score
        confidence = Confidence.MEDIUM

        # -- platform --
        detected = detect_platform(raw_title)
        platform_conflict = False
        if target.platform and detected is not None:
            if detected == platform_family(target.platform):
                score += cfg.platform_match_bonus
            else:
                score -= cfg.platform_mismatch_penalty
                confidence = Confidence.LOW
                platform_conflict = True

        # -- title --
        wanted = normalize(target.title)
        offered = normalize(raw_title)
        if wanted and f" {wanted} " in f" {offered} ":
            score += cfg.title_exact_bonus
            if not platform_conflict:
                confidence = Confidence.HIGH
        elif self._overlap_ratio(wanted, offered) > cfg.title_partial_ratio:
            score += cfg.title_partial_bonus
        else:
            score -= cfg.title_mismatch_penalty
            confidence = Confidence.LOW

        # -- year --
        if target.year is not None and str(target.year) in raw_title:
            score += cfg.year_bonus

        # -- quality --
        quality, bonus = self.quality_label(raw_title)
        score += bonus

        # -- health --
        seeders = listing.seeders or 0
        if seeders < cfg.low_seeders_threshold:
            score -= cfg.low_seeders_penalty
        elif seeders >= cfg.healthy_seeders_threshold:
            score += cfg.healthy_seeders_bonus

        # -- age --
        published = listing.published_at
        if published is not None:
            if published.tzinfo is None:
                published = published.replace(tzinfo=timezone.utc)
            if now - published > timedelta(days=cfg.max_age_days):
                score -= cfg.age_penalty

        # -- size --
        size_gb = (listing.size_bytes or 0) / _GIB
        if size_gb < cfg.min_size_gb or size_gb > cfg.max_size_gb:
            score -= cfg.size_penalty

        # -- confidence from final score --
        if score >= cfg.high_confidence_score:
            confidence = Confidence.HIGH
        elif score < cfg.low_confidence_score:
            confidence = Confidence.LOW
        if platform_conflict:
            confidence = Confidence.LOW

        return ScoredRelease(
            listing=listing,
            score=score,
            confidence=confidence,
            quality=quality,
            detected_platform=detected,
        )

    def rank(
        self,
        listings: Iterable[ReleaseListing],
        target: ReleaseTarget,
        now: datetime | None = None,
    ) -> list[ScoredRelease]:
        """Score, drop non-candidates (score <= 0), sort best first."""
        now = now or datetime.now(timezone.utc)
        scored = [self.score(item, target, now) for item in listings]
        kept = [s for s in scored if s.score > 0]
        kept.sort(key=lambda s: s.score, reverse=True)
        log.debug(
            "releases_ranked",
            target=target.title,
            scored=len(scored),
            kept=len(kept),
            best=kept[0].score if kept else None,
        )
        return kept

    def _overlap_ratio(self, wanted: str, offered: str) -> float:
        words = [
            w for w in wanted.split() if len(w) >= self._config.significant_word_min_length
        ]
        if not words:
            return 0.0
        tokens = set(offered.split())
        return sum(1 for w in words if w in tokens) / len(words)
