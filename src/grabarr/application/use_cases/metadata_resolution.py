"""Resolve names (or a storefront library) to catalog candidates."""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from grabarr.domain.entities.metadata import (
    CandidateMetadata,
    ResolvedCandidate,
    StorefrontItem,
)
from grabarr.domain.exceptions import NotConfiguredError
from grabarr.domain.ports.collection import CollectionStorePort
from grabarr.domain.ports.providers import StorefrontPort
from grabarr.infrastructure.matching.title_normalizer import clean_release_title
from grabarr.infrastructure.resolver.batch_resolver import (
    BatchMetadataResolver,
    ProgressCallback,
)

log = structlog.get_logger(__name__)


class MetadataResolutionUseCase:
    """Resolves names and flags candidates already in the collection.

    Configuration and authentication problems fail the whole call; any
    other provider failure only empties the affected names.
    """

    def __init__(
        self,
        resolver: BatchMetadataResolver,
        collection: CollectionStorePort | None = None,
        *,
        clean_names: bool = False,
    ) -> None:
        self._resolver = resolver
        self._collection = collection
        self._clean_names = clean_names

    async def _owned_ids(self) -> set[int]:
        if self._collection is None:
            return set()
        return await self._collection.find_all_ids()

    def _lookup_name(self, name: str, clean: bool) -> str:
        if not clean:
            return name
        return clean_release_title(name) or name

    async def execute(
        self,
        names: Sequence[str],
        per_name_limit: int,
        on_progress: ProgressCallback | None = None,
        *,
        clean: bool | None = None,
    ) -> dict[str, list[ResolvedCandidate]]:
        """Candidates per input name.

        Release-name cleaning is opt-in; *clean* overrides the instance default.
        """
        provider = self._resolver.provider
        if not provider.is_configured():
            raise NotConfiguredError(provider.name, "metadata provider is not configured")
        # Surface bad credentials once instead of as N empty batches.
        await provider.authenticate()

        if clean is None:
            clean = self._clean_names
        lookup = {name: self._lookup_name(name, clean) for name in names}
        resolved = await self._resolver.resolve_batch(
            list(lookup.values()), per_name_limit, on_progress
        )
        owned = await self._owned_ids()
        return {
            name: _annotate(resolved.get(query, []), owned)
            for name, query in lookup.items()
        }

    async def resolve_storefront(
        self,
        storefront: StorefrontPort,
        per_name_limit: int = 1,
        on_progress: ProgressCallback | None = None,
    ) -> list[tuple[StorefrontItem, list[ResolvedCandidate]]]:
        """Owned storefront titles paired with their catalog candidates."""
        if not storefront.is_configured():
            raise NotConfiguredError(storefront.name, "storefront is not configured")
        items = await storefront.owned_games()
        resolved = await self.execute(
            [item.title for item in items], per_name_limit, on_progress, clean=False
        )
        log.info("storefront_resolved", store=storefront.name, items=len(items))
        return [(item, resolved.get(item.title, [])) for item in items]


def _annotate(
    candidates: list[CandidateMetadata], owned: set[int]
) -> list[ResolvedCandidate]:
    return [
        ResolvedCandidate(candidate=c, owned=c.external_id in owned) for c in candidates
    ]
