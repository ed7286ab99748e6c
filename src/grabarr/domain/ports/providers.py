"""Ports implemented by the provider adapters."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from grabarr.domain.entities.http import RateLimitBudget
from grabarr.domain.entities.metadata import (
    CandidateMetadata,
    PopularEntry,
    PopularityType,
    StorefrontItem,
)
from grabarr.domain.entities.releases import ReleaseListing


@runtime_checkable
class CredentialProviderPort(Protocol):
    """Supplies auth headers to the resilient client and can drop them."""

    async def auth_headers(self) -> dict[str, str]:
        """Headers for the next attempt, authenticating first if needed."""
        ...

    def invalidate_credentials(self) -> None:
        """Forget the held credential so the next call re-authenticates."""
        ...


@runtime_checkable
class MetadataProviderPort(Protocol):
    """A catalog that can resolve several names in one call."""

    name: str
    max_batch_size: int

    @property
    def budget(self) -> RateLimitBudget: ...

    def is_configured(self) -> bool: ...

    async def authenticate(self) -> None:
        """Obtain credentials if none are held. Idempotent."""
        ...

    async def search_many(
        self, names: Sequence[str], limit: int
    ) -> dict[str, list[CandidateMetadata]]:
        """Resolve up to ``max_batch_size`` names in a single request."""
        ...

    async def search(self, name: str, limit: int = 10) -> list[CandidateMetadata]:
        ...

    async def get_by_id(self, external_id: int) -> CandidateMetadata | None:
        ...

    async def popularity_types(self) -> list[PopularityType]:
        ...

    async def popular(
        self, popularity_type: int, limit: int = 20
    ) -> list[PopularEntry]:
        ...


@runtime_checkable
class ReleaseIndexerPort(Protocol):
    """An indexer aggregator returning raw release listings."""

    name: str

    def is_configured(self) -> bool: ...

    async def search(
        self,
        query: str,
        categories: Sequence[int] = (),
        limit: int = 100,
    ) -> list[ReleaseListing]:
        ...

    async def rss(
        self, categories: Sequence[int] = (), limit: int = 100
    ) -> list[ReleaseListing]:
        ...


@runtime_checkable
class StorefrontPort(Protocol):
    """A storefront that can list the titles a user owns."""

    name: str

    def is_configured(self) -> bool: ...

    async def owned_games(self) -> list[StorefrontItem]:
        ...
