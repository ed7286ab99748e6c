from __future__ import annotations

from .cache import CacheEntry
from .http import AttemptEvent, RateLimitBudget, ResilientRequest, RetryPolicy
from .metadata import (
    CandidateMetadata,
    PopularEntry,
    PopularityType,
    RelatedEntry,
    ResolvedCandidate,
    ResolveProgress,
    StorefrontItem,
)
from .releases import (
    Confidence,
    GrabDecision,
    ReleaseListing,
    ReleaseTarget,
    ScoredRelease,
)

__all__ = [
    "AttemptEvent",
    "CacheEntry",
    "CandidateMetadata",
    "Confidence",
    "GrabDecision",
    "PopularEntry",
    "PopularityType",
    "RateLimitBudget",
    "RelatedEntry",
    "ReleaseListing",
    "ReleaseTarget",
    "ResilientRequest",
    "ResolveProgress",
    "ResolvedCandidate",
    "RetryPolicy",
    "ScoredRelease",
    "StorefrontItem",
]
