"""Catalog metadata and storefront value types."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RelatedEntry:
    """A similar/related catalog entry attached to a candidate."""

    external_id: int
    title: str
    cover_url: str | None = None


@dataclass(frozen=True)
class CandidateMetadata:
    """One catalog entry returned by a metadata provider."""

    external_id: int
    title: str
    year: int | None = None
    cover_url: str | None = None
    summary: str | None = None
    genres: tuple[str, ...] = ()
    themes: tuple[str, ...] = ()
    rating: float | None = None
    developer: str | None = None
    publisher: str | None = None
    platforms: tuple[str, ...] = ()
    related: tuple[RelatedEntry, ...] = ()


@dataclass(frozen=True)
class ResolvedCandidate:
    """A candidate annotated with collection membership."""

    candidate: CandidateMetadata
    owned: bool = False


@dataclass(frozen=True)
class PopularityType:
    id: int
    name: str
    source: str | None = None


@dataclass(frozen=True)
class PopularEntry:
    candidate: CandidateMetadata
    value: float
    popularity_type: int
    rank: int


@dataclass(frozen=True)
class StorefrontItem:
    """A title owned on a storefront (Steam, GOG)."""

    store: str
    store_id: str
    title: str
    playtime_minutes: int | None = None
    cover_url: str | None = None
    last_played: int | None = None  # epoch seconds


@dataclass(frozen=True)
class ResolveProgress:
    """Emitted once per resolved batch group."""

    completed: int
    total: int
    sample_names: tuple[str, ...] = field(default_factory=tuple)
