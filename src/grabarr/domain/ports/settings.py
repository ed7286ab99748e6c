"""Port for runtime-tunable settings.

Every value may change between calls; consumers re-read instead of caching.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from grabarr.domain.entities.http import RateLimitBudget


@runtime_checkable
class RuntimeSettingsPort(Protocol):
    def auto_grab_thresholds(self) -> tuple[int, int]:
        """Return ``(min_score, min_seeders)``."""
        ...

    def cache_ttl_minutes(self, key: str) -> float:
        """TTL in minutes for a cache key family (e.g. ``"trending"``)."""
        ...

    def release_categories(self) -> list[int]:
        """Category ids passed through to release searches."""
        ...

    def rate_budget_override(self, provider: str) -> RateLimitBudget | None:
        ...

    def dry_run(self) -> bool:
        ...
