"""Cache entry value type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload with its creation time (epoch seconds) and TTL."""

    key: str
    payload: Any
    created_at: float
    ttl_seconds: float

    def age(self, now: float) -> float:
        return now - self.created_at

    def is_expired(self, now: float) -> bool:
        """True once the entry is older than its TTL."""
        return self.age(now) > self.ttl_seconds
