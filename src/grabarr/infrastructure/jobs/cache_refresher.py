"""Background cache refresher - runs discovery refreshes on their TTL cadence."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from grabarr.domain.ports.settings import RuntimeSettingsPort
from grabarr.infrastructure.cache.ttl_cache import TtlCache

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RefreshJob:
    """A named periodic refresh.

    ``ttl_key`` names the settings entry whose TTL minutes double as the
    job's interval; it is re-read before every scheduling decision.
    """

    name: str
    run: Callable[[], Awaitable[object]]
    ttl_key: str


class CacheRefresher:
    """Runs refresh jobs periodically.

    Call :meth:`run_forever` as an asyncio task. :meth:`stop` prevents
    further runs but lets an in-flight refresh finish. A job that is still
    running is never started a second time.
    """

    def __init__(
        self,
        *,
        jobs: list[RefreshJob],
        settings: RuntimeSettingsPort,
        cache: TtlCache | None = None,
        sweep_interval_seconds: float = 3600.0,
        tick_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._jobs = {job.name: job for job in jobs}
        self._settings = settings
        self._cache = cache
        self._sweep_interval = sweep_interval_seconds
        self._tick = tick_seconds
        self._clock = clock
        self._sleep = sleep
        self._last_run: dict[str, float] = {}
        self._last_sweep: float | None = None
        self._running: set[str] = set()
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """No new runs after this; an in-flight refresh completes."""
        if not self._stopped:
            log.info("cache_refresher_stopping")
        self._stopped = True

    async def trigger(self, name: str) -> bool:
        """Run one job now. False if stopped or already running."""
        job = self._jobs[name]
        if self._stopped:
            return False
        if name in self._running:
            log.info("cache_refresh_already_running", job=name)
            return False
        self._running.add(name)
        started = self._clock()
        try:
            await job.run()
        except Exception:
            log.error("cache_refresh_failed", job=name, exc_info=True)
        else:
            log.info(
                "cache_refresh_done",
                job=name,
                duration_ms=round((self._clock() - started) * 1000, 1),
            )
        finally:
            self._last_run[name] = self._clock()
            self._running.discard(name)
        return True

    def _due(self, name: str, now: float) -> bool:
        last = self._last_run.get(name)
        if last is None:
            return True
        interval = self._settings.cache_ttl_minutes(self._jobs[name].ttl_key) * 60
        return now - last >= interval

    async def run_once(self) -> list[str]:
        """Run every due job sequentially. Returns the names that ran."""
        ran: list[str] = []
        for name in self._jobs:
            if self._stopped:
                break
            if self._due(name, self._clock()) and await self.trigger(name):
                ran.append(name)
        await self._maybe_sweep()
        return ran

    async def _maybe_sweep(self) -> None:
        if self._cache is None:
            return
        now = self._clock()
        if self._last_sweep is not None and now - self._last_sweep < self._sweep_interval:
            return
        self._last_sweep = now
        try:
            await self._cache.delete_expired()
        except Exception:
            log.warning("cache_sweep_failed", exc_info=True)

    async def run_forever(self) -> None:
        """Main loop: run due jobs, sleep, repeat until stopped."""
        log.info("cache_refresher_started", jobs=sorted(self._jobs))
        try:
            while not self._stopped:
                await self.run_once()
                if self._stopped:
                    break
                await self._sleep(self._tick)
        except asyncio.CancelledError:
            log.info("cache_refresher_cancelled")
            raise
        log.info("cache_refresher_stopped")
