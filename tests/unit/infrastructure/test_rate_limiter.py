"""Tests for the sliding-window rate limiter."""

from __future__ import annotations

import asyncio

import pytest

from grabarr.domain.entities import RateLimitBudget
from grabarr.infrastructure.common.rate_limiter import SlidingWindowRateLimiter


def _limiter(clock, max_requests: int = 3, window: float = 1.0) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(
        RateLimitBudget(max_requests, window),
        name="test",
        clock=clock,
        sleep=clock.sleep,
    )


def _assert_window_invariant(times: list[float], max_requests: int, window: float) -> None:
    for i in range(len(times) - max_requests):
        assert times[i + max_requests] - times[i] >= window


class TestSlidingWindowRateLimiter:
    @pytest.mark.asyncio()
    async def test_admits_up_to_budget_without_waiting(self, clock) -> None:
        limiter = _limiter(clock)
        for _ in range(3):
            await limiter.acquire()
        assert clock.sleeps == []

    @pytest.mark.asyncio()
    async def test_waits_for_oldest_admission_to_leave_window(self, clock) -> None:
        limiter = _limiter(clock)
        for _ in range(3):
            await limiter.acquire()
        clock.advance(0.25)
        await limiter.acquire()
        assert clock.sleeps == [pytest.approx(0.75)]

    @pytest.mark.asyncio()
    async def test_window_invariant_under_burst(self, clock) -> None:
        limiter = _limiter(clock, max_requests=4, window=1.0)
        times: list[float] = []
        for i in range(25):
            await limiter.acquire()
            times.append(clock())
            if i % 3 == 0:
                clock.advance(0.1)
        _assert_window_invariant(times, 4, 1.0)

    @pytest.mark.asyncio()
    async def test_window_invariant_with_concurrent_callers(self, clock) -> None:
        limiter = _limiter(clock, max_requests=2, window=0.5)
        times: list[float] = []

        async def worker() -> None:
            for _ in range(5):
                await limiter.acquire()
                times.append(clock())

        await asyncio.gather(*(worker() for _ in range(4)))
        assert len(times) == 20
        _assert_window_invariant(sorted(times), 2, 0.5)

    @pytest.mark.asyncio()
    async def test_admissions_older_than_window_are_forgotten(self, clock) -> None:
        limiter = _limiter(clock)
        for _ in range(3):
            await limiter.acquire()
        clock.advance(1.0)
        for _ in range(3):
            await limiter.acquire()
        assert clock.sleeps == []

    @pytest.mark.asyncio()
    async def test_reconfigure_tightens_budget(self, clock) -> None:
        limiter = _limiter(clock, max_requests=3)
        await limiter.acquire()
        await limiter.acquire()
        limiter.reconfigure(RateLimitBudget(1, 1.0))
        assert limiter.budget == RateLimitBudget(1, 1.0)
        await limiter.acquire()
        assert len(clock.sleeps) == 1
