"""Batched, rate-bounded resolution of free-text names to catalog candidates."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from grabarr.domain.entities.metadata import CandidateMetadata, ResolveProgress
from grabarr.domain.ports.providers import MetadataProviderPort

log = structlog.get_logger(__name__)

ProgressCallback = Callable[[ResolveProgress], None]

_SAMPLE_SIZE = 3

T = TypeVar("T")


def _chunks(items: list[T], size: int) -> list[list[T]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class BatchMetadataResolver:
    """Maps names to candidate lists using the provider's multi-search call.

    Names are split into batches of ``provider.max_batch_size``; batches run
    in concurrent groups no larger than the provider's per-window budget,
    so every batch is one admitted request. A failing batch resolves its
    names to ``[]`` and never aborts the rest.

    Args:
        provider: Metadata provider with a ``search_many`` call.
        pacing_seconds: Pause between groups.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        provider: MetadataProviderPort,
        *,
        pacing_seconds: float = 0.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._pacing = pacing_seconds
        self._sleep = sleep

    @property
    def provider(self) -> MetadataProviderPort:
        return self._provider

    def _group_size(self) -> int:
        return max(1, math.floor(self._provider.budget.max_requests))

    async def _resolve_one(
        self, batch: list[str], per_name_limit: int
    ) -> dict[str, list[CandidateMetadata]]:
        return await self._provider.search_many(batch, per_name_limit)

    async def resolve_batch(
        self,
        names: Sequence[str],
        per_name_limit: int,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, list[CandidateMetadata]]:
        """Resolve *names*; every input name is a key of the result."""
        unique = list(dict.fromkeys(names))
        if not unique:
            return {}

        batches = _chunks(unique, max(1, self._provider.max_batch_size))
        groups = _chunks(batches, self._group_size())
        total = len(unique)
        completed = 0
        results: dict[str, list[CandidateMetadata]] = {}

        log.info(
            "resolve_batch_start",
            provider=self._provider.name,
            names=total,
            batches=len(batches),
            groups=len(groups),
        )

        for index, group in enumerate(groups):
            if index and self._pacing > 0:
                await self._sleep(self._pacing)

            outcomes = await asyncio.gather(
                *(self._resolve_one(batch, per_name_limit) for batch in group),
                return_exceptions=True,
            )

            # Single-owner merge after the whole group has settled.
            for batch, outcome in zip(group, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    log.warning(
                        "resolve_batch_failed",
                        provider=self._provider.name,
                        names=len(batch),
                        error=f"{type(outcome).__name__}: {outcome}",
                    )
                    outcome = {}
                for name in batch:
                    results[name] = list(outcome.get(name) or [])[:per_name_limit]
                completed += len(batch)

            if on_progress is not None:
                sample = tuple(group[0][:_SAMPLE_SIZE])
                try:
                    on_progress(ResolveProgress(completed, total, sample))
                except Exception:
                    log.warning("resolve_progress_callback_failed", exc_info=True)

        log.info(
            "resolve_batch_done",
            provider=self._provider.name,
            names=total,
            resolved=sum(1 for v in results.values() if v),
        )
        return {name: results.get(name, []) for name in unique}
