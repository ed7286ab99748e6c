from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from grabarr.domain.entities import ReleaseTarget, ResolveProgress
from grabarr.domain.exceptions import GrabarrError, NotConfiguredError
from grabarr.infrastructure.config import AppConfig, load_config
from grabarr.infrastructure.logging.setup import configure_logging
from grabarr.interfaces.composition import Container, build_container

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="grabarr")

    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", help="Resolve names to catalog entries.")
    resolve.add_argument("names", nargs="+", help="Titles to resolve.")
    resolve.add_argument(
        "--limit", type=int, default=None, help="Candidates per name."
    )
    resolve.add_argument(
        "--clean-names",
        action="store_true",
        default=None,
        help="Strip scene/version tags from release names before resolving.",
    )

    search = commands.add_parser("search", help="Search and rank releases.")
    search.add_argument("title", help="Title to search for.")
    search.add_argument("--year", type=int, default=None)
    search.add_argument("--platform", default=None, help="Target platform name.")
    search.add_argument(
        "--decide",
        action="store_true",
        help="Also report the auto-grab decision.",
    )

    discover = commands.add_parser("discover", help="Cached discovery lists.")
    discover.add_argument(
        "list",
        choices=["types", "trending", "top-releases"],
        help="Which list to show.",
    )
    discover.add_argument(
        "--type", type=int, default=1, dest="popularity_type",
        help="Popularity type id (trending only).",
    )
    discover.add_argument(
        "--refresh",
        action="store_true",
        help="Run the refresh jobs before reading.",
    )

    owned = commands.add_parser("owned", help="List storefront-owned titles.")
    owned.add_argument("store", choices=["steam", "gog"])
    owned.add_argument(
        "--resolve",
        action="store_true",
        help="Resolve each title through the metadata provider.",
    )
    owned.add_argument(
        "--import",
        action="store_true",
        dest="import_owned",
        help="Record resolved titles in the collection (implies --resolve).",
    )

    refresh = commands.add_parser("refresh", help="Run the cache refresher.")
    refresh.add_argument(
        "--forever",
        action="store_true",
        help="Keep refreshing on the configured cadence until interrupted.",
    )

    return parser.parse_args(argv)


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


def _emit(payload: Any) -> None:
    json.dump(payload, sys.stdout, default=str, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def _log_progress(progress: ResolveProgress) -> None:
    log.info(
        "resolve_progress",
        completed=progress.completed,
        total=progress.total,
        sample=list(progress.sample_names),
    )


async def _cmd_resolve(container: Container, args: argparse.Namespace) -> Any:
    limit = args.limit or container.config.resolver.per_name_limit
    resolved = await container.metadata_resolution.execute(
        args.names, limit, _log_progress, clean=args.clean_names
    )
    return {
        name: [_to_jsonable(c) for c in candidates]
        for name, candidates in resolved.items()
    }


async def _cmd_search(container: Container, args: argparse.Namespace) -> Any:
    target = ReleaseTarget(title=args.title, year=args.year, platform=args.platform)
    if args.decide:
        return _to_jsonable(await container.release_search.decide(target))
    ranked = await container.release_search.search_for_item(target)
    return [_to_jsonable(r) for r in ranked]


async def _cmd_discover(container: Container, args: argparse.Namespace) -> Any:
    discover = container.discover
    if args.refresh:
        await container.refresher.run_once()
    if args.list == "types":
        return [_to_jsonable(t) for t in await discover.popularity_types()]
    if args.list == "trending":
        return [_to_jsonable(e) for e in await discover.trending(args.popularity_type)]
    return [_to_jsonable(r) for r in await discover.top_releases()]


async def _cmd_owned(container: Container, args: argparse.Namespace) -> Any:
    storefront = container.steam if args.store == "steam" else container.gog
    if not (args.resolve or args.import_owned):
        if not storefront.is_configured():
            raise NotConfiguredError(storefront.name, "storefront is not configured")
        return [_to_jsonable(item) for item in await storefront.owned_games()]

    pairs = await container.metadata_resolution.resolve_storefront(
        storefront, per_name_limit=1, on_progress=_log_progress
    )
    if args.import_owned:
        await container.collection.add(
            candidates[0].candidate for _, candidates in pairs if candidates
        )
    return [
        {
            "item": _to_jsonable(item),
            "match": _to_jsonable(candidates[0]) if candidates else None,
        }
        for item, candidates in pairs
    ]


async def _cmd_refresh(container: Container, args: argparse.Namespace) -> Any:
    if args.forever:
        await container.start_refresher()
        return None
    return {"ran": await container.refresher.run_once()}


_COMMANDS = {
    "resolve": _cmd_resolve,
    "search": _cmd_search,
    "discover": _cmd_discover,
    "owned": _cmd_owned,
    "refresh": _cmd_refresh,
}


async def _run(
    args: argparse.Namespace, config_path: Path | None, config: AppConfig
) -> int:
    async with build_container(config, config_path=config_path) as container:
        try:
            result = await _COMMANDS[args.command](container, args)
        except GrabarrError as exc:
            log.error(
                "command_failed",
                command=args.command,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return 1
    if result is not None:
        _emit(result)
    return 0


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Load config exactly once here, then build the container with it.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = {}
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    config = load_config(
        config_path=config_path,
        dotenv_path=dotenv_path,
        cli_overrides=cli_overrides,
    )

    configure_logging(config)

    try:
        return asyncio.run(_run(args, config_path, config))
    except KeyboardInterrupt:
        log.info("interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(start())
