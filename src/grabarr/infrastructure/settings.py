"""RuntimeSettingsPort implementations.

Both are read on every call by their consumers, so changes apply without
a restart.
"""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from grabarr.domain.entities.http import RateLimitBudget
from grabarr.infrastructure.config import AppConfig, load_config

log = structlog.get_logger(__name__)

_DEFAULT_TTL_MINUTES = 15.0


class InMemorySettings:
    """Mutable settings held in memory."""

    def __init__(
        self,
        *,
        min_score: int = 100,
        min_seeders: int = 5,
        ttl_minutes: dict[str, float] | None = None,
        categories: list[int] | None = None,
        budgets: dict[str, RateLimitBudget] | None = None,
        dry_run: bool = False,
    ) -> None:
        self.min_score = min_score
        self.min_seeders = min_seeders
        self.ttl_minutes = dict(ttl_minutes or {})
        self.categories = list(categories if categories is not None else [4050])
        self.budgets = dict(budgets or {})
        self.dry_run_enabled = dry_run

    @classmethod
    def from_config(cls, config: AppConfig) -> InMemorySettings:
        return cls(
            min_score=config.auto_grab.min_score,
            min_seeders=config.auto_grab.min_seeders,
            ttl_minutes={
                "trending": config.discover.trending_ttl_minutes,
                "top_releases": config.discover.top_releases_ttl_minutes,
                "popularity_types": config.discover.popularity_types_ttl_minutes,
            },
            categories=config.release_categories,
            budgets=config.provider_budgets(),
            dry_run=config.auto_grab.dry_run,
        )

    def auto_grab_thresholds(self) -> tuple[int, int]:
        return self.min_score, self.min_seeders

    def cache_ttl_minutes(self, key: str) -> float:
        return self.ttl_minutes.get(key, _DEFAULT_TTL_MINUTES)

    def release_categories(self) -> list[int]:
        return list(self.categories)

    def rate_budget_override(self, provider: str) -> RateLimitBudget | None:
        return self.budgets.get(provider)

    def dry_run(self) -> bool:
        return self.dry_run_enabled


class FileBackedSettings:
    """Settings that follow a YAML config file.

    The file is re-loaded whenever its mtime changes. An invalid edit is
    logged and the last good values stay in effect.
    """

    def __init__(
        self,
        config_path: Path,
        *,
        initial: AppConfig | None = None,
    ) -> None:
        self._path = config_path
        self._mtime: float | None = None
        self._current = InMemorySettings.from_config(initial or AppConfig())
        self._maybe_reload()

    def _maybe_reload(self) -> InMemorySettings:
        try:
            mtime = self._path.stat().st_mtime
        except OSError:
            log.warning("settings_file_unreadable", path=str(self._path))
            return self._current
        if mtime == self._mtime:
            return self._current
        try:
            config = load_config(config_path=self._path)
        except (ValidationError, ValueError, OSError, yaml.YAMLError) as exc:
            log.warning("settings_reload_failed", path=str(self._path), error=str(exc))
        else:
            self._current = InMemorySettings.from_config(config)
            log.info("settings_reloaded", path=str(self._path))
        self._mtime = mtime
        return self._current

    def auto_grab_thresholds(self) -> tuple[int, int]:
        return self._maybe_reload().auto_grab_thresholds()

    def cache_ttl_minutes(self, key: str) -> float:
        return self._maybe_reload().cache_ttl_minutes(key)

    def release_categories(self) -> list[int]:
        return self._maybe_reload().release_categories()

    def rate_budget_override(self, provider: str) -> RateLimitBudget | None:
        return self._maybe_reload().rate_budget_override(provider)

    def dry_run(self) -> bool:
        return self._maybe_reload().dry_run()
