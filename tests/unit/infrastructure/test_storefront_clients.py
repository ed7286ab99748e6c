"""Tests for the Prowlarr, Steam and GOG adapters."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest
import respx

from grabarr.domain.entities import RateLimitBudget, RetryPolicy
from grabarr.domain.exceptions import NotConfiguredError
from grabarr.infrastructure.providers import GogClient, ProwlarrClient, SteamClient
from grabarr.infrastructure.settings import InMemorySettings

_PROWLARR = "http://prowlarr.local:9696"


def _common(http: httpx.AsyncClient, clock) -> dict:
    return {
        "http_client": http,
        "budget": RateLimitBudget(100, 1.0),
        "retry": RetryPolicy(max_retries=1, jitter_ratio=0),
        "clock": clock,
        "sleep": clock.sleep,
    }


class TestProwlarrClient:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_search_maps_listings(self, clock) -> None:
        route = respx.get(f"{_PROWLARR}/api/v1/search").respond(
            200,
            json=[
                {
                    "guid": "abc",
                    "title": "Hades.v1.38.GOG",
                    "indexer": "1337x",
                    "size": 15_000_000_000,
                    "seeders": 42,
                    "leechers": 3,
                    "publishDate": "2024-01-02T03:04:05Z",
                    "magnetUrl": "magnet:?xt=urn:btih:abc",
                    "categories": [{"id": 4050, "name": "PC/Games"}, 100010],
                    "protocol": "torrent",
                },
                {"title": "no guid"},
            ],
        )
        async with httpx.AsyncClient() as http:
            client = ProwlarrClient(url=f"{_PROWLARR}/", api_key="key", **_common(http, clock))
            (listing,) = await client.search("hades", categories=[4050])

        request = route.calls[0].request
        assert request.headers["X-Api-Key"] == "key"
        assert request.url.params["query"] == "hades"
        assert request.url.params["categories"] == "4050"
        assert listing.guid == "abc"
        assert listing.size_bytes == 15_000_000_000
        assert listing.seeders == 42
        assert listing.peers == 3
        assert listing.published_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert listing.download_url == "magnet:?xt=urn:btih:abc"
        assert listing.categories == (4050, 100010)

    @respx.mock
    @pytest.mark.asyncio()
    async def test_non_finite_numbers_do_not_break_search(self, clock) -> None:
        body = (
            b'[{"guid": "bad", "title": "Hades.GOG", "size": 1e400, "seeders": NaN},'
            b' {"guid": "ok", "title": "Hades.FitGirl", "size": 1024, "seeders": 7}]'
        )
        respx.get(f"{_PROWLARR}/api/v1/search").respond(
            200, content=body, headers={"Content-Type": "application/json"}
        )
        async with httpx.AsyncClient() as http:
            client = ProwlarrClient(url=_PROWLARR, api_key="key", **_common(http, clock))
            bad, ok = await client.search("hades")

        assert (bad.guid, bad.size_bytes, bad.seeders) == ("bad", 0, None)
        assert (ok.guid, ok.size_bytes, ok.seeders) == ("ok", 1024, 7)

    @respx.mock
    @pytest.mark.asyncio()
    async def test_non_list_payload_is_empty(self, clock) -> None:
        respx.get(f"{_PROWLARR}/api/v1/search").respond(200, json={"error": "?"})
        async with httpx.AsyncClient() as http:
            client = ProwlarrClient(url=_PROWLARR, api_key="key", **_common(http, clock))
            assert await client.rss() == []

    @pytest.mark.asyncio()
    async def test_unconfigured(self, clock) -> None:
        async with httpx.AsyncClient() as http:
            client = ProwlarrClient(url=None, api_key="key", **_common(http, clock))
            with pytest.raises(NotConfiguredError):
                await client.search("x")

    @respx.mock
    @pytest.mark.asyncio()
    async def test_connection_check(self, clock) -> None:
        respx.get(f"{_PROWLARR}/api/v1/system/status").respond(401)
        async with httpx.AsyncClient() as http:
            client = ProwlarrClient(url=_PROWLARR, api_key="bad", **_common(http, clock))
            assert await client.test_connection() is False

    @respx.mock
    @pytest.mark.asyncio()
    async def test_budget_override_read_per_call(self, clock) -> None:
        respx.get(f"{_PROWLARR}/api/v1/search").respond(200, json=[])
        settings = InMemorySettings()
        async with httpx.AsyncClient() as http:
            client = ProwlarrClient(
                url=_PROWLARR, api_key="key", settings=settings, **_common(http, clock)
            )
            await client.search("x")
            assert client.budget == RateLimitBudget(100, 1.0)
            settings.budgets["prowlarr"] = RateLimitBudget(2, 1.0)
            await client.search("y")
            assert client.budget == RateLimitBudget(2, 1.0)


class TestSteamClient:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_owned_games(self, clock) -> None:
        route = respx.get(
            "https://api.steampowered.com/IPlayerService/GetOwnedGames/v0001/"
        ).respond(
            200,
            json={
                "response": {
                    "game_count": 2,
                    "games": [
                        {
                            "appid": 1145360,
                            "name": "Hades",
                            "playtime_forever": 3600,
                            "img_icon_url": "abc",
                            "rtime_last_played": 0,
                        },
                        {"appid": 1},
                    ],
                }
            },
        )
        async with httpx.AsyncClient() as http:
            client = SteamClient(api_key="k", steam_id="7656", **_common(http, clock))
            (hades,) = await client.owned_games()
        assert route.calls[0].request.url.params["steamid"] == "7656"
        assert hades.store == "steam"
        assert hades.store_id == "1145360"
        assert hades.playtime_minutes == 3600
        assert hades.last_played is None
        assert hades.cover_url.endswith("/1145360/abc.jpg")

    @respx.mock
    @pytest.mark.asyncio()
    async def test_private_profile_is_empty(self, clock) -> None:
        respx.get(
            "https://api.steampowered.com/IPlayerService/GetOwnedGames/v0001/"
        ).respond(200, json={"response": {}})
        async with httpx.AsyncClient() as http:
            client = SteamClient(api_key="k", steam_id="7656", **_common(http, clock))
            assert await client.owned_games() == []


class TestGogClient:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_paginates_and_rotates_refresh_token(self, clock) -> None:
        token = respx.get("https://auth.gog.com/token").respond(
            200,
            json={"access_token": "at", "expires_in": 3600, "refresh_token": "rt-2"},
        )
        products = respx.get("https://embed.gog.com/account/getFilteredProducts")
        products.side_effect = [
            httpx.Response(
                200,
                json={
                    "totalPages": 2,
                    "products": [
                        {"id": 1, "title": "Witcher 3", "isGame": True, "image": "//img/w3"},
                        {"id": 2, "title": "Soundtrack", "isGame": False},
                    ],
                },
            ),
            httpx.Response(
                200,
                json={"totalPages": 2, "products": [{"id": 3, "title": "Hades", "isGame": True}]},
            ),
        ]
        async with httpx.AsyncClient() as http:
            client = GogClient(refresh_token="rt-1", **_common(http, clock))
            games = await client.owned_games()

        assert [g.title for g in games] == ["Witcher 3", "Hades"]
        assert games[0].cover_url == "https://img/w3_392.jpg"
        assert token.call_count == 1
        assert token.calls[0].request.url.params["refresh_token"] == "rt-1"
        assert client.refresh_token == "rt-2"
        assert products.calls[0].request.headers["Authorization"] == "Bearer at"
        assert products.calls[1].request.url.params["page"] == "2"

    def test_unconfigured_without_refresh_token(self, clock) -> None:
        assert not GogClient(refresh_token=None, **_common(httpx.AsyncClient(), clock)).is_configured()
