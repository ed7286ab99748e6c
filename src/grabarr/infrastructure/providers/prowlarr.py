"""Prowlarr indexer aggregator (API-key auth)."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog

from grabarr.domain.entities.http import RateLimitBudget
from grabarr.domain.entities.releases import ReleaseListing
from grabarr.domain.exceptions import ProviderFailure
from grabarr.infrastructure.common.converters import to_int
from grabarr.infrastructure.common.parsers import parse_datetime, parse_size_to_bytes
from grabarr.infrastructure.providers.base import ProviderAdapter

log = structlog.get_logger(__name__)


def _categories(raw: Any) -> tuple[int, ...]:
    """Prowlarr sends either bare ids or ``{"id": ..., "name": ...}`` objects."""
    if not isinstance(raw, list):
        return ()
    out: list[int] = []
    for item in raw:
        value = to_int(item.get("id") if isinstance(item, dict) else item)
        if value is not None:
            out.append(value)
    return tuple(out)


def _to_listing(row: Any) -> ReleaseListing | None:
    if not isinstance(row, dict):
        return None
    guid = row.get("guid")
    title = row.get("title")
    if not guid or not isinstance(title, str):
        log.debug("prowlarr_row_skipped", guid=guid)
        return None
    return ReleaseListing(
        guid=str(guid),
        title=title,
        indexer=str(row.get("indexer") or ""),
        size_bytes=parse_size_to_bytes(row.get("size")),
        seeders=to_int(row.get("seeders")),
        peers=to_int(row.get("leechers")),
        published_at=parse_datetime(row.get("publishDate")),
        download_url=row.get("downloadUrl") or row.get("magnetUrl") or None,
        categories=_categories(row.get("categories")),
        protocol=str(row.get("protocol") or "torrent"),
    )


class ProwlarrClient(ProviderAdapter):
    """Prowlarr client. Implements ``ReleaseIndexerPort``."""

    name = "prowlarr"
    default_budget = RateLimitBudget(max_requests=10, window_seconds=1.0)

    def __init__(
        self,
        *,
        url: str | None,
        api_key: str | None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._base = (url or "").rstrip("/")
        self._api_key = api_key or ""

    def is_configured(self) -> bool:
        return bool(self._base and self._api_key)

    def _url(self, endpoint: str) -> str:
        return f"{self._base}/api/v1/{endpoint.lstrip('/')}"

    def _static_headers(self) -> dict[str, str]:
        return {"X-Api-Key": self._api_key}

    async def _releases(self, params: dict[str, Any]) -> list[ReleaseListing]:
        rows = await self.call("GET", "search", params=params)
        if not isinstance(rows, list):
            log.warning("prowlarr_unexpected_payload", kind=type(rows).__name__)
            return []
        return [item for item in (_to_listing(r) for r in rows) if item is not None]

    async def search(
        self,
        query: str,
        categories: Sequence[int] = (),
        limit: int = 100,
        indexer_ids: Sequence[int] = (),
    ) -> list[ReleaseListing]:
        params: dict[str, Any] = {
            "query": query,
            "type": "search",
            "limit": limit,
            "offset": 0,
        }
        if categories:
            params["categories"] = list(categories)
        if indexer_ids:
            params["indexerIds"] = list(indexer_ids)
        listings = await self._releases(params)
        log.info("prowlarr_search", query=query, results=len(listings))
        return listings

    async def rss(
        self, categories: Sequence[int] = (), limit: int = 100
    ) -> list[ReleaseListing]:
        """Latest releases without a search term."""
        params: dict[str, Any] = {"type": "search", "limit": limit}
        if categories:
            params["categories"] = list(categories)
        return await self._releases(params)

    async def indexers(self) -> list[dict[str, Any]]:
        rows = await self.call("GET", "indexer")
        if not isinstance(rows, list):
            return []
        return [
            {
                "id": to_int(row.get("id")),
                "name": row.get("name", ""),
                "enable": bool(row.get("enable")),
                "protocol": row.get("protocol", ""),
            }
            for row in rows
            if isinstance(row, dict)
        ]

    async def test_connection(self) -> bool:
        try:
            await self.call("GET", "system/status")
        except ProviderFailure:
            log.warning("prowlarr_connection_test_failed", exc_info=True)
            return False
        return True
