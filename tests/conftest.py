"""Shared test fixtures for the grabarr test suite."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from grabarr.domain.entities import ReleaseListing, ReleaseTarget
from grabarr.infrastructure.settings import InMemorySettings

GIB = 1024**3

# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def now() -> datetime:
    return datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


def _listing(title: str, **overrides: Any) -> ReleaseListing:
    fields: dict[str, Any] = {
        "guid": f"guid-{title}",
        "title": title,
        "indexer": "test-indexer",
        "size_bytes": 10 * GIB,
        "seeders": 10,
        "peers": 12,
        "published_at": datetime(2025, 5, 25, tzinfo=timezone.utc),
        "download_url": f"https://indexer.example/dl/{title}",
        "categories": (4050,),
    }
    fields.update(overrides)
    return ReleaseListing(**fields)


@pytest.fixture()
def make_listing() -> Callable[..., ReleaseListing]:
    """Healthy listing factory: 10 GiB, 10 seeders, published a week before ``now``."""
    return _listing


@pytest.fixture()
def target() -> ReleaseTarget:
    return ReleaseTarget(title="Baldur's Gate 3", year=2023, platform="PC")


@pytest.fixture()
def settings() -> InMemorySettings:
    return InMemorySettings(
        min_score=100,
        min_seeders=5,
        ttl_minutes={"trending": 15, "top_releases": 5, "popularity_types": 1440},
        categories=[4050],
    )


@pytest.fixture()
def old_date(now: datetime) -> datetime:
    return now - timedelta(days=1000)
