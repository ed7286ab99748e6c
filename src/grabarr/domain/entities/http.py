"""Value types describing outbound provider calls.

Pure value objects, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

_RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})

AttemptOutcome = Literal[
    "success", "retry", "reauth", "auth_failed", "rate_limited", "failed"
]


@dataclass(frozen=True)
class RateLimitBudget:
    """At most *max_requests* admissions in any window of *window_seconds*."""

    max_requests: int
    window_seconds: float

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")


@dataclass(frozen=True)
class RetryPolicy:
    """How a single request is retried.

    ``max_retries`` counts retries after the first attempt, so a request is
    dispatched at most ``1 + max_retries`` times (re-auth retries excluded).
    """

    max_retries: int = 3
    backoff_base: float = 1.0
    max_backoff: float = 10.0
    jitter_ratio: float = 0.25
    retryable_statuses: frozenset[int] = _RETRYABLE_STATUSES
    rate_limit_statuses: frozenset[int] = frozenset({429})
    auth_statuses: frozenset[int] = frozenset({401, 403})
    retry_server_errors: bool = True

    def is_retryable(self, status: int) -> bool:
        """Listed statuses, plus any 5xx when ``retry_server_errors`` is set."""
        if status in self.retryable_statuses:
            return True
        return self.retry_server_errors and 500 <= status < 600


@dataclass(frozen=True)
class ResilientRequest:
    """One outbound call. Built per call, never persisted."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] | None = None
    content: str | bytes | None = None
    json: Any = None
    timeout: float | None = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)


@dataclass(frozen=True)
class AttemptEvent:
    """Observable record of one dispatch attempt."""

    provider: str
    method: str
    url: str
    attempt: int
    outcome: AttemptOutcome
    status: int | None = None
    error: str | None = None
    delay: float | None = None
