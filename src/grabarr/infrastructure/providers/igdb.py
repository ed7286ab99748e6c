"""IGDB metadata provider (Twitch client-credentials auth, APIcalypse queries)."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog

from grabarr.domain.entities.http import RateLimitBudget
from grabarr.domain.entities.metadata import (
    CandidateMetadata,
    PopularEntry,
    PopularityType,
    RelatedEntry,
)
from grabarr.domain.exceptions import ProviderError
from grabarr.infrastructure.common.converters import epoch_to_year, to_float, to_int
from grabarr.infrastructure.providers.base import ProviderAdapter

log = structlog.get_logger(__name__)

_TOKEN_URL = "https://id.twitch.tv/oauth2/token"
_COVER_URL = "https://images.igdb.com/igdb/image/upload/t_cover_big/{image_id}.jpg"

_FIELDS = (
    "name, cover.image_id, first_release_date, summary, genres.name, "
    "themes.name, total_rating, involved_companies.company.name, "
    "involved_companies.developer, involved_companies.publisher, "
    "platforms.name, similar_games.name, similar_games.cover.image_id"
)

# Main games only (no DLC, bundles, mods).
_MAIN_GAME_FILTER = "where game_type = 0;"


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _cover(raw: Any) -> str | None:
    if isinstance(raw, dict) and raw.get("image_id"):
        return _COVER_URL.format(image_id=raw["image_id"])
    return None


def _names(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(
        item["name"] for item in raw if isinstance(item, dict) and item.get("name")
    )


def _company(raw: Any, role: str) -> str | None:
    if not isinstance(raw, list):
        return None
    for item in raw:
        if isinstance(item, dict) and item.get(role):
            company = item.get("company") or {}
            if isinstance(company, dict) and company.get("name"):
                return company["name"]
    return None


def _to_candidate(row: Any) -> CandidateMetadata | None:
    if not isinstance(row, dict):
        return None
    external_id = to_int(row.get("id"))
    title = row.get("name")
    if external_id is None or not isinstance(title, str) or not title:
        log.debug("igdb_row_skipped", row_id=row.get("id"))
        return None

    related = tuple(
        RelatedEntry(
            external_id=rid,
            title=item["name"],
            cover_url=_cover(item.get("cover")),
        )
        for item in row.get("similar_games") or []
        if isinstance(item, dict)
        and (rid := to_int(item.get("id"))) is not None
        and item.get("name")
    )
    rating = to_float(row.get("total_rating"))
    return CandidateMetadata(
        external_id=external_id,
        title=title,
        year=epoch_to_year(row.get("first_release_date")),
        cover_url=_cover(row.get("cover")),
        summary=row.get("summary") or None,
        genres=_names(row.get("genres")),
        themes=_names(row.get("themes")),
        rating=round(rating, 1) if rating is not None else None,
        developer=_company(row.get("involved_companies"), "developer"),
        publisher=_company(row.get("involved_companies"), "publisher"),
        platforms=_names(row.get("platforms")),
        related=related,
    )


def _to_candidates(rows: Any) -> list[CandidateMetadata]:
    if not isinstance(rows, list):
        return []
    return [c for c in (_to_candidate(r) for r in rows) if c is not None]


class IgdbClient(ProviderAdapter):
    """IGDB client.

    Implements ``MetadataProviderPort``. ``search_many`` packs up to
    ``max_batch_size`` searches into a single multiquery request.
    """

    name = "igdb"
    # Documented limit is 4 req/s.
    default_budget = RateLimitBudget(max_requests=3, window_seconds=1.0)
    base_url = "https://api.igdb.com/v4"
    uses_token = True
    expiry_margin_seconds = 300.0
    max_batch_size = 10

    def __init__(
        self,
        *,
        client_id: str | None,
        client_secret: str | None,
        token_url: str = _TOKEN_URL,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._client_id = client_id or ""
        self._client_secret = client_secret or ""
        self._token_url = token_url

    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def _fetch_token(self) -> tuple[str, float]:
        data = await self._token_call(
            "POST",
            self._token_url,
            params={
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "grant_type": "client_credentials",
            },
        )
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise ProviderError(self.name, "token response without access_token")
        return token, float(to_int(data.get("expires_in")) or 0)

    def _token_headers(self, token: str) -> dict[str, str]:
        return {"Client-ID": self._client_id, "Authorization": f"Bearer {token}"}

    async def _query(self, endpoint: str, body: str) -> list[Any]:
        rows = await self.call(
            "POST", endpoint, content=body, headers={"Content-Type": "text/plain"}
        )
        if not isinstance(rows, list):
            raise ProviderError(self.name, f"unexpected {endpoint} payload")
        return rows

    # ------------------------------------------------------------------
    # MetadataProviderPort
    # ------------------------------------------------------------------

    async def search_many(
        self, names: Sequence[str], limit: int
    ) -> dict[str, list[CandidateMetadata]]:
        names = list(names)
        if not names:
            return {}
        if len(names) > self.max_batch_size:
            raise ValueError(
                f"at most {self.max_batch_size} names per multiquery, got {len(names)}"
            )

        body = "\n".join(
            f'query games "{idx}" {{ search "{_escape(name)}"; '
            f"fields {_FIELDS}; {_MAIN_GAME_FILTER} limit {limit}; }};"
            for idx, name in enumerate(names)
        )
        blocks = await self._query("multiquery", body)

        out: dict[str, list[CandidateMetadata]] = {name: [] for name in names}
        for block in blocks:
            if not isinstance(block, dict):
                continue
            idx = to_int(block.get("name"))
            if idx is None or idx >= len(names):
                continue
            out[names[idx]] = _to_candidates(block.get("result"))[:limit]
        log.debug("igdb_multiquery", names=len(names), hits=sum(map(bool, out.values())))
        return out

    async def search(self, name: str, limit: int = 10) -> list[CandidateMetadata]:
        body = (
            f'search "{_escape(name)}"; fields {_FIELDS}; '
            f"{_MAIN_GAME_FILTER} limit {limit};"
        )
        return _to_candidates(await self._query("games", body))

    async def get_by_id(self, external_id: int) -> CandidateMetadata | None:
        body = f"fields {_FIELDS}; where id = {int(external_id)};"
        found = _to_candidates(await self._query("games", body))
        return found[0] if found else None

    async def popularity_types(self) -> list[PopularityType]:
        rows = await self._query(
            "popularity_types", "fields name, popularity_source; sort id asc; limit 50;"
        )
        out: list[PopularityType] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            type_id = to_int(row.get("id"))
            if type_id is None or not row.get("name"):
                continue
            source = row.get("popularity_source")
            out.append(
                PopularityType(
                    id=type_id,
                    name=row["name"],
                    source=str(source) if source is not None else None,
                )
            )
        return out

    async def popular(
        self, popularity_type: int, limit: int = 20
    ) -> list[PopularEntry]:
        """Top games for one popularity type, in provider rank order."""
        primitives = await self._query(
            "popularity_primitives",
            "fields game_id, value, popularity_type; sort value desc; "
            f"limit {limit}; where popularity_type = {int(popularity_type)};",
        )
        ranked: list[tuple[int, float]] = []
        for row in primitives:
            if not isinstance(row, dict):
                continue
            game_id = to_int(row.get("game_id"))
            if game_id is not None:
                ranked.append((game_id, to_float(row.get("value")) or 0.0))
        if not ranked:
            return []

        ids = ",".join(str(game_id) for game_id, _ in ranked)
        games = _to_candidates(
            await self._query(
                "games", f"fields {_FIELDS}; where id = ({ids}); limit {len(ranked)};"
            )
        )
        by_id = {game.external_id: game for game in games}

        out: list[PopularEntry] = []
        for game_id, value in ranked:
            candidate = by_id.get(game_id)
            if candidate is None:
                continue
            out.append(
                PopularEntry(
                    candidate=candidate,
                    value=value,
                    popularity_type=popularity_type,
                    rank=len(out) + 1,
                )
            )
        return out
