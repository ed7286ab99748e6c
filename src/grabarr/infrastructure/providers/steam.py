"""Steam Web API storefront (API key + SteamID64)."""

from __future__ import annotations

from typing import Any

import structlog

from grabarr.domain.entities.http import RateLimitBudget
from grabarr.domain.entities.metadata import StorefrontItem
from grabarr.infrastructure.common.converters import to_int
from grabarr.infrastructure.providers.base import ProviderAdapter

log = structlog.get_logger(__name__)

_ICON_URL = (
    "https://media.steampowered.com/steamcommunity/public/images/apps/"
    "{appid}/{icon}.jpg"
)


class SteamClient(ProviderAdapter):
    """Lists owned Steam games. Implements ``StorefrontPort``."""

    name = "steam"
    default_budget = RateLimitBudget(max_requests=1, window_seconds=1.0)
    base_url = "https://api.steampowered.com"

    def __init__(
        self,
        *,
        api_key: str | None,
        steam_id: str | None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key or ""
        self._steam_id = steam_id or ""

    def is_configured(self) -> bool:
        return bool(self._api_key and self._steam_id)

    async def owned_games(self) -> list[StorefrontItem]:
        data = await self.call(
            "GET",
            "IPlayerService/GetOwnedGames/v0001/",
            params={
                "key": self._api_key,
                "steamid": self._steam_id,
                "include_appinfo": 1,
                "include_played_free_games": 1,
                "format": "json",
            },
        )
        games = ((data or {}).get("response") or {}).get("games") or []
        if not games:
            # Private profiles return an empty response.
            log.info("steam_library_empty", steam_id=self._steam_id)
            return []

        out: list[StorefrontItem] = []
        for game in games:
            appid = to_int(game.get("appid")) if isinstance(game, dict) else None
            if appid is None or not game.get("name"):
                continue
            icon = game.get("img_icon_url")
            out.append(
                StorefrontItem(
                    store=self.name,
                    store_id=str(appid),
                    title=game["name"],
                    playtime_minutes=to_int(game.get("playtime_forever")),
                    cover_url=_ICON_URL.format(appid=appid, icon=icon) if icon else None,
                    last_played=to_int(game.get("rtime_last_played")) or None,
                )
            )
        log.info("steam_library_fetched", games=len(out))
        return out
