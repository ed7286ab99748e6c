"""Sliding-window rate limiter for outgoing provider requests.

A token bucket lets a full bucket burst on top of a just-refilled one,
so admissions are tracked as a log of timestamps instead.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable

import structlog

from grabarr.domain.entities.http import RateLimitBudget

log = structlog.get_logger(__name__)


class SlidingWindowRateLimiter:
    """Admits at most ``budget.max_requests`` calls per sliding window.

    Callers suspend inside :meth:`acquire` until capacity frees up.
    Waiters are served in arrival order (the lock is FIFO).

    Args:
        budget: Initial request budget.
        name: Label used in log events.
        clock: Monotonic clock, injectable for tests.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        budget: RateLimitBudget,
        *,
        name: str = "",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._budget = budget
        self._name = name
        self._clock = clock
        self._sleep = sleep
        self._admitted: deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def budget(self) -> RateLimitBudget:
        return self._budget

    def reconfigure(self, budget: RateLimitBudget) -> None:
        """Swap the budget. Past admissions still count against the new one."""
        if budget != self._budget:
            log.info(
                "rate_limit_reconfigured",
                provider=self._name,
                max_requests=budget.max_requests,
                window_seconds=budget.window_seconds,
            )
            self._budget = budget

    async def acquire(self) -> None:
        """Wait until the window has room, then record the admission."""
        async with self._lock:
            while True:
                now = self._clock()
                self._evict(now)
                if len(self._admitted) < self._budget.max_requests:
                    self._admitted.append(now)
                    return
                wait = self._admitted[0] + self._budget.window_seconds - now
                log.debug(
                    "rate_limit_wait",
                    provider=self._name,
                    wait=round(wait, 3),
                    in_window=len(self._admitted),
                )
                await self._sleep(wait)

    def _evict(self, now: float) -> None:
        window = self._budget.window_seconds
        while self._admitted and self._admitted[0] + window <= now:
            self._admitted.popleft()
