"""GOG storefront (refresh-token auth against the Galaxy client id)."""

from __future__ import annotations

from typing import Any

import structlog

from grabarr.domain.entities.http import RateLimitBudget
from grabarr.domain.entities.metadata import StorefrontItem
from grabarr.domain.exceptions import ProviderError
from grabarr.infrastructure.common.converters import to_int
from grabarr.infrastructure.providers.base import ProviderAdapter

log = structlog.get_logger(__name__)

_TOKEN_URL = "https://auth.gog.com/token"

# Public GOG Galaxy client credentials.
_GALAXY_CLIENT_ID = "46899977096215655"
_GALAXY_CLIENT_SECRET = (
    "9d85c43b1482497dbbce61f6e4aa173a433796eeae2571571f7c05b6a4221c1f"
)

_MAX_PAGES = 100


def _image_url(raw: Any) -> str | None:
    if not isinstance(raw, str) or not raw:
        return None
    base = f"https:{raw}" if raw.startswith("//") else raw
    return f"{base}_392.jpg"


class GogClient(ProviderAdapter):
    """Lists owned GOG games. Implements ``StorefrontPort``.

    GOG may rotate the refresh token on every exchange; the latest one is
    kept on the instance.
    """

    name = "gog"
    default_budget = RateLimitBudget(max_requests=2, window_seconds=1.0)
    base_url = "https://embed.gog.com"
    uses_token = True
    expiry_margin_seconds = 60.0

    def __init__(
        self,
        *,
        refresh_token: str | None,
        token_url: str = _TOKEN_URL,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._refresh_token = refresh_token or ""
        self._token_url = token_url

    @property
    def refresh_token(self) -> str:
        return self._refresh_token

    def is_configured(self) -> bool:
        return bool(self._refresh_token)

    async def _fetch_token(self) -> tuple[str, float]:
        data = await self._token_call(
            "GET",
            self._token_url,
            params={
                "client_id": _GALAXY_CLIENT_ID,
                "client_secret": _GALAXY_CLIENT_SECRET,
                "grant_type": "refresh_token",
                "refresh_token": self._refresh_token,
            },
        )
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise ProviderError(self.name, "token response without access_token")
        rotated = data.get("refresh_token")
        if rotated and rotated != self._refresh_token:
            self._refresh_token = rotated
            log.info("gog_refresh_token_rotated")
        return token, float(to_int(data.get("expires_in")) or 0)

    async def owned_games(self) -> list[StorefrontItem]:
        out: list[StorefrontItem] = []
        page, total_pages = 1, 1
        while page <= min(total_pages, _MAX_PAGES):
            data = await self.call(
                "GET",
                "account/getFilteredProducts",
                params={"mediaType": 1, "page": page},
            )
            data = data if isinstance(data, dict) else {}
            total_pages = to_int(data.get("totalPages")) or 1
            for product in data.get("products") or []:
                if not isinstance(product, dict) or not product.get("isGame"):
                    continue
                product_id = to_int(product.get("id"))
                if product_id is None or not product.get("title"):
                    continue
                out.append(
                    StorefrontItem(
                        store=self.name,
                        store_id=str(product_id),
                        title=product["title"],
                        cover_url=_image_url(product.get("image")),
                    )
                )
            log.debug("gog_page_fetched", page=page, total_pages=total_pages)
            page += 1
        log.info("gog_library_fetched", games=len(out))
        return out
