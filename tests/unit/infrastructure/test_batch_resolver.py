"""Tests for BatchMetadataResolver."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import pytest

from grabarr.domain.entities import CandidateMetadata, RateLimitBudget, ResolveProgress
from grabarr.domain.exceptions import RateLimitedError
from grabarr.infrastructure.resolver.batch_resolver import BatchMetadataResolver


class _FakeProvider:
    """Multi-search provider double recording batches and concurrency."""

    name = "fake"

    def __init__(
        self,
        *,
        max_batch_size: int = 2,
        max_requests: int = 2,
        known: dict[str, list[CandidateMetadata]] | None = None,
        fail_on: set[str] | None = None,
    ) -> None:
        self.max_batch_size = max_batch_size
        self._budget = RateLimitBudget(max_requests, 1.0)
        self.known = known or {}
        self.fail_on = fail_on or set()
        self.batches: list[list[str]] = []
        self.active = 0
        self.peak = 0

    @property
    def budget(self) -> RateLimitBudget:
        return self._budget

    def is_configured(self) -> bool:
        return True

    async def authenticate(self) -> None:
        return None

    async def search_many(
        self, names: Sequence[str], limit: int
    ) -> dict[str, list[CandidateMetadata]]:
        self.batches.append(list(names))
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(0)
            if self.fail_on & set(names):
                raise RateLimitedError(self.name, "throttled", status=429)
            return {n: self.known.get(n, [])[:limit] for n in names if n in self.known}
        finally:
            self.active -= 1


def _candidate(external_id: int, title: str) -> CandidateMetadata:
    return CandidateMetadata(external_id=external_id, title=title)


class TestBatchMetadataResolver:
    @pytest.mark.asyncio()
    async def test_every_name_is_a_key(self) -> None:
        provider = _FakeProvider(
            known={
                "Half-Life 2": [_candidate(233, "Half-Life 2")],
                "DOOM Eternal": [_candidate(103298, "DOOM Eternal")],
            }
        )
        names = ["Half-Life 2", "DOOM Eternal", "Nonexistent Game XYZ123"]
        result = await BatchMetadataResolver(provider).resolve_batch(names, 5)
        assert list(result) == names
        assert result["Half-Life 2"][0].external_id == 233
        assert result["DOOM Eternal"][0].external_id == 103298
        assert result["Nonexistent Game XYZ123"] == []

    @pytest.mark.asyncio()
    async def test_total_even_when_every_batch_fails(self) -> None:
        names = [f"game {i}" for i in range(7)]
        provider = _FakeProvider(fail_on=set(names))
        result = await BatchMetadataResolver(provider).resolve_batch(names, 5)
        assert result == {name: [] for name in names}

    @pytest.mark.asyncio()
    async def test_failed_batch_does_not_poison_others(self) -> None:
        provider = _FakeProvider(
            max_batch_size=1,
            known={"a": [_candidate(1, "a")], "b": [_candidate(2, "b")]},
            fail_on={"b"},
        )
        result = await BatchMetadataResolver(provider).resolve_batch(["a", "b"], 5)
        assert [c.external_id for c in result["a"]] == [1]
        assert result["b"] == []

    @pytest.mark.asyncio()
    async def test_batches_respect_max_batch_size(self) -> None:
        provider = _FakeProvider(max_batch_size=3)
        await BatchMetadataResolver(provider).resolve_batch(
            [str(i) for i in range(8)], 1
        )
        assert [len(b) for b in provider.batches] == [3, 3, 2]

    @pytest.mark.asyncio()
    async def test_concurrency_bounded_by_budget(self) -> None:
        provider = _FakeProvider(max_batch_size=1, max_requests=3)
        await BatchMetadataResolver(provider).resolve_batch(
            [str(i) for i in range(10)], 1
        )
        assert len(provider.batches) == 10
        assert provider.peak <= 3

    @pytest.mark.asyncio()
    async def test_duplicates_resolved_once(self) -> None:
        provider = _FakeProvider(max_batch_size=10)
        result = await BatchMetadataResolver(provider).resolve_batch(
            ["x", "y", "x"], 1
        )
        assert provider.batches == [["x", "y"]]
        assert list(result) == ["x", "y"]

    @pytest.mark.asyncio()
    async def test_per_name_limit_enforced(self) -> None:
        provider = _FakeProvider(
            known={"x": [_candidate(i, f"x{i}") for i in range(10)]}
        )

        async def greedy(names, limit):
            return {"x": provider.known["x"]}

        provider.search_many = greedy  # type: ignore[method-assign]
        result = await BatchMetadataResolver(provider).resolve_batch(["x"], 2)
        assert len(result["x"]) == 2

    @pytest.mark.asyncio()
    async def test_progress_once_per_group_in_order(self) -> None:
        provider = _FakeProvider(max_batch_size=2, max_requests=2)
        events: list[ResolveProgress] = []
        names = [f"n{i}" for i in range(9)]
        await BatchMetadataResolver(provider).resolve_batch(names, 1, events.append)
        # 5 batches, 2 per group -> 3 groups
        assert [(e.completed, e.total) for e in events] == [(4, 9), (8, 9), (9, 9)]
        assert events[0].sample_names == ("n0", "n1")

    @pytest.mark.asyncio()
    async def test_progress_callback_errors_are_contained(self) -> None:
        def explode(_: ResolveProgress) -> None:
            raise RuntimeError("ui gone")

        provider = _FakeProvider(known={"a": [_candidate(1, "a")]})
        result = await BatchMetadataResolver(provider).resolve_batch(["a"], 1, explode)
        assert result["a"][0].external_id == 1

    @pytest.mark.asyncio()
    async def test_pacing_between_groups(self) -> None:
        sleeps: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        provider = _FakeProvider(max_batch_size=1, max_requests=1)
        await BatchMetadataResolver(
            provider, pacing_seconds=0.5, sleep=fake_sleep
        ).resolve_batch(["a", "b", "c"], 1)
        assert sleeps == [0.5, 0.5]

    @pytest.mark.asyncio()
    async def test_empty_input(self) -> None:
        assert await BatchMetadataResolver(_FakeProvider()).resolve_batch([], 5) == {}
