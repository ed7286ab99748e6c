"""Release listings and their scored form.

Listings come from untrusted indexers; nothing here assumes the title is
well formed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime


class Confidence(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ReleaseListing:
    """One raw entry from an indexer aggregator."""

    guid: str
    title: str
    indexer: str = ""
    size_bytes: int = 0
    seeders: int | None = None
    peers: int | None = None
    published_at: datetime | None = None
    download_url: str | None = None
    categories: tuple[int, ...] = ()
    protocol: str = "torrent"


@dataclass(frozen=True)
class ReleaseTarget:
    """The wanted item a listing is scored against."""

    title: str
    year: int | None = None
    platform: str | None = None
    external_id: int | None = None


@dataclass(frozen=True)
class ScoredRelease:
    """A listing plus its score. Recomputed on every search."""

    listing: ReleaseListing
    score: int
    confidence: Confidence
    quality: str | None = None
    detected_platform: str | None = None

    @property
    def seeders(self) -> int:
        return self.listing.seeders or 0


@dataclass(frozen=True)
class GrabDecision:
    """Outcome of an auto-grab evaluation, handed back to the caller."""

    target: ReleaseTarget
    release: ScoredRelease | None
    grab: bool
    reason: str
