from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_SECTION_KEYS: set[str] = {
    "http",
    "logging",
    "cache",
    "retry",
    "providers",
    "scoring",
    "auto_grab",
    "discover",
    "resolver",
}

_PROVIDER_KEYS: set[str] = {"igdb", "prowlarr", "steam", "gog"}

# Flat key -> (section, [sub-section,] key)
_FLAT_MAP: dict[str, tuple[str, ...]] = {
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_user_agent": ("http", "user_agent"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "cache_backend": ("cache", "backend"),
    "cache_dir": ("cache", "dir"),
    "igdb_client_id": ("providers", "igdb", "client_id"),
    "igdb_client_secret": ("providers", "igdb", "client_secret"),
    "prowlarr_url": ("providers", "prowlarr", "url"),
    "prowlarr_api_key": ("providers", "prowlarr", "api_key"),
    "steam_api_key": ("providers", "steam", "api_key"),
    "steam_id": ("providers", "steam", "steam_id"),
    "gog_refresh_token": ("providers", "gog", "refresh_token"),
    "auto_grab_min_score": ("auto_grab", "min_score"),
    "auto_grab_min_seeders": ("auto_grab", "min_seeders"),
    "dry_run": ("auto_grab", "dry_run"),
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """
    Recursively merge `override` into `base` and return `base`.

    Rules:
    - dict + dict => deep merge
    - otherwise => override wins
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, Mapping)
        ):
            _deep_merge(base[key], value)
        else:
            base[key] = deepcopy(value) if isinstance(value, dict) else value
    return base


def _normalize_layer(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Normalize a layer (defaults/YAML/ENV/CLI) into the canonical *sectioned* shape.

    Canonical top-level keys:
    - app_name, environment, release_categories
    - http.*, logging.*, cache.*, retry.*
    - providers.{igdb,prowlarr,steam,gog}.*
    - scoring.*, auto_grab.*, discover.*, resolver.*
    """
    out: dict[str, Any] = {}

    # Pass through already sectioned blocks
    for section in _SECTION_KEYS:
        if section in data and isinstance(data[section], Mapping):
            out[section] = deepcopy(dict(data[section]))

    # Provider sections may also appear at top level
    for provider in _PROVIDER_KEYS:
        if provider in data and isinstance(data[provider], Mapping):
            out.setdefault("providers", {})
            out["providers"].setdefault(provider, {})
            _deep_merge(out["providers"][provider], data[provider])

    for key in ("app_name", "environment", "release_categories"):
        if key in data:
            out[key] = data[key]

    for flat_key, path in _FLAT_MAP.items():
        if flat_key not in data:
            continue
        node = out
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = data[flat_key]

    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    raw = config_path.read_text(encoding="utf-8")
    parsed = yaml.safe_load(raw)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Load configuration with strict precedence:
    defaults < YAML file < env vars < cli overrides

    This function MUST NOT create files or directories (no filesystem side-effects).
    """
    cli_overrides = cli_overrides or {}

    # Load .env first so it participates as "env vars" layer.
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    base = _normalize_layer(deepcopy(DEFAULT_CONFIG))

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(config_path)
        _deep_merge(base, _normalize_layer(_read_yaml_config(config_path)))

    env_layer = _normalize_layer(EnvOverrides().to_update_dict())
    _deep_merge(base, env_layer)

    _deep_merge(base, _normalize_layer(cli_overrides))

    # Validate final merged config (single source of truth).
    return AppConfig.model_validate(base)
