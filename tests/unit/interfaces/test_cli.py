"""Tests for the command-line entrypoint."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest
import respx
from structlog.testing import capture_logs

from grabarr.infrastructure.config import AppConfig
from grabarr.interfaces.cli.cli import _parse_args, _run

PROWLARR = "http://prowlarr:9696"


@pytest.fixture()
def config() -> AppConfig:
    return AppConfig.model_validate(
        {
            "cache": {"backend": "memory"},
            "providers": {"prowlarr": {"url": PROWLARR, "api_key": "k"}},
        }
    )


class TestParseArgs:
    def test_search_flags(self) -> None:
        args = _parse_args(
            ["--log-level", "DEBUG", "search", "Hades", "--platform", "PC", "--decide"]
        )
        assert args.command == "search"
        assert args.title == "Hades"
        assert args.platform == "PC"
        assert args.decide is True
        assert args.log_level == "DEBUG"

    def test_owned_import(self) -> None:
        args = _parse_args(["owned", "gog", "--import"])
        assert (args.store, args.import_owned, args.resolve) == ("gog", True, False)

    def test_resolve_cleaning_is_opt_in(self) -> None:
        assert _parse_args(["resolve", "Ultimate Chicken Horse"]).clean_names is None
        args = _parse_args(["resolve", "Hades.v1.0-GOG", "--clean-names"])
        assert args.clean_names is True

    def test_discover_defaults(self) -> None:
        args = _parse_args(["discover", "trending"])
        assert (args.list, args.popularity_type, args.refresh) == ("trending", 1, False)

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            _parse_args([])


class TestRun:
    @pytest.mark.asyncio()
    @respx.mock
    async def test_search_decide_prints_json(self, config: AppConfig, capsys) -> None:
        route = respx.get(f"{PROWLARR}/api/v1/search").mock(
            return_value=httpx.Response(
                200,
                json=[
                    {
                        "guid": "hades-gog",
                        "title": "Hades.GOG",
                        "indexer": "tracker",
                        "size": 5 * 1024**3,
                        "seeders": 50,
                        "leechers": 3,
                        "publishDate": datetime.now(timezone.utc).isoformat(),
                        "downloadUrl": f"{PROWLARR}/dl/1",
                    }
                ],
            )
        )

        with capture_logs():
            code = await _run(
                _parse_args(["search", "Hades", "--decide"]), None, config
            )

        assert code == 0
        assert route.called
        assert route.calls.last.request.headers["X-Api-Key"] == "k"
        decision = json.loads(capsys.readouterr().out)
        assert decision["grab"] is True
        assert decision["release"]["listing"]["guid"] == "hades-gog"
        assert decision["release"]["score"] == 210

    @pytest.mark.asyncio()
    async def test_unconfigured_provider_exit_code(self, capsys) -> None:
        config = AppConfig.model_validate({"cache": {"backend": "memory"}})
        with capture_logs() as logs:
            code = await _run(_parse_args(["search", "Hades"]), None, config)
        assert code == 1
        failed = [e for e in logs if e["event"] == "command_failed"]
        assert failed[0]["error_type"] == "NotConfiguredError"
        assert capsys.readouterr().out == ""
