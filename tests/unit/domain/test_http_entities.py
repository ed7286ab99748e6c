"""Tests for outbound-call value types."""

from __future__ import annotations

import pytest

from grabarr.domain.entities import RateLimitBudget, ResilientRequest, RetryPolicy


class TestRateLimitBudget:
    def test_valid_budget(self) -> None:
        budget = RateLimitBudget(3, 1.0)
        assert budget.max_requests == 3
        assert budget.window_seconds == 1.0

    def test_rejects_zero_requests(self) -> None:
        with pytest.raises(ValueError, match="max_requests"):
            RateLimitBudget(0, 1.0)

    def test_rejects_non_positive_window(self) -> None:
        with pytest.raises(ValueError, match="window_seconds"):
            RateLimitBudget(1, 0)

    def test_is_hashable_value(self) -> None:
        assert RateLimitBudget(4, 1.0) == RateLimitBudget(4, 1.0)
        assert len({RateLimitBudget(4, 1.0), RateLimitBudget(4, 1.0)}) == 1


class TestRetryPolicy:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.backoff_base == 1.0
        assert policy.max_backoff == 10.0
        assert 429 in policy.retryable_statuses
        assert 503 in policy.retryable_statuses
        assert policy.rate_limit_statuses == frozenset({429})
        assert policy.auth_statuses == frozenset({401, 403})

    def test_client_errors_not_retryable(self) -> None:
        policy = RetryPolicy()
        for status in (400, 401, 403, 404, 422):
            assert status not in policy.retryable_statuses

    def test_any_server_error_retryable(self) -> None:
        policy = RetryPolicy()
        assert all(policy.is_retryable(s) for s in (500, 501, 520, 522, 599))
        assert not policy.is_retryable(404)
        assert not policy.is_retryable(600)

    def test_server_error_retry_can_be_disabled(self) -> None:
        policy = RetryPolicy(retry_server_errors=False)
        assert not policy.is_retryable(520)
        assert policy.is_retryable(503)
        assert policy.is_retryable(429)


class TestResilientRequest:
    def test_defaults(self) -> None:
        req = ResilientRequest("GET", "https://api.example/x")
        assert req.headers == {}
        assert req.params is None
        assert req.retry == RetryPolicy()

    def test_headers_not_shared_between_instances(self) -> None:
        a = ResilientRequest("GET", "https://a")
        b = ResilientRequest("GET", "https://b")
        a.headers["X"] = "1"
        assert b.headers == {}
