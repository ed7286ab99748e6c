"""Port for an optional, opaque re-ranking stage."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from grabarr.domain.entities.releases import ReleaseTarget, ScoredRelease


@runtime_checkable
class ReleaseRerankerPort(Protocol):
    async def rerank(
        self, target: ReleaseTarget, ranked: list[ScoredRelease]
    ) -> list[ScoredRelease]:
        """Reorder (or drop from) an already lexically ranked list."""
        ...
