"""Outbound HTTP with admission control, retry/backoff and a single re-auth.

Every provider adapter owns one ResilientClient. The client never follows
business logic: it turns HTTP outcomes into responses or typed errors.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog

from grabarr.domain.entities.http import AttemptEvent, ResilientRequest, RetryPolicy
from grabarr.domain.exceptions import (
    AuthFailedError,
    ProviderError,
    RateLimitedError,
    TransientConnectionError,
)
from grabarr.domain.ports.providers import CredentialProviderPort
from grabarr.infrastructure.common.rate_limiter import SlidingWindowRateLimiter

log = structlog.get_logger(__name__)

AttemptHook = Callable[[AttemptEvent], None]

_BODY_PREVIEW = 200


def _parse_retry_after(headers: httpx.Headers) -> float | None:
    """Parse ``Retry-After`` header value (seconds only).

    HTTP-date values are ignored; providers send the integer-seconds form.
    """
    raw = headers.get("retry-after")
    if raw is None:
        return None
    try:
        value = float(raw)
    except (ValueError, TypeError):
        return None
    return value if value >= 0 else None


def compute_delay(
    policy: RetryPolicy,
    retry: int,
    headers: httpx.Headers | None = None,
    *,
    uniform: Callable[[float, float], float] = random.uniform,
) -> float:
    """Delay before retry number *retry* (1-based).

    ``Retry-After`` wins when present; otherwise exponential backoff with up
    to ``jitter_ratio`` extra jitter. Both are capped at ``max_backoff``.
    """
    if headers is not None:
        retry_after = _parse_retry_after(headers)
        if retry_after is not None:
            return min(retry_after, policy.max_backoff)

    delay = policy.backoff_base * (2 ** (retry - 1))
    jitter = uniform(0, delay * policy.jitter_ratio)
    return min(delay + jitter, policy.max_backoff)


class ResilientClient:
    """Executes ResilientRequests on behalf of one provider.

    **Admission:** awaits the limiter before every dispatch, retries included.

    **Retry:** network errors and retryable statuses are retried up to
    ``policy.max_retries`` times with backoff.

    **Re-auth:** an auth status with a credential provider attached triggers
    exactly one invalidate-and-retry per call chain. That retry does not
    consume a transient attempt; a second auth status raises AuthFailedError.

    Args:
        provider: Provider name carried by every error and event.
        http_client: Shared httpx client.
        limiter: The owning adapter's limiter.
        credentials: Optional source of auth headers.
        on_attempt: Optional hook receiving every AttemptEvent.
        sleep: Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        provider: str,
        http_client: httpx.AsyncClient,
        limiter: SlidingWindowRateLimiter,
        *,
        credentials: CredentialProviderPort | None = None,
        on_attempt: AttemptHook | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._http = http_client
        self._limiter = limiter
        self._credentials = credentials
        self._on_attempt = on_attempt
        self._sleep = sleep

    @property
    def provider(self) -> str:
        return self._provider

    async def execute(self, request: ResilientRequest) -> httpx.Response:
        """Dispatch *request* until it succeeds or fails for good."""
        policy = request.retry
        retries = 0
        reauthed = False
        attempt = 0

        while True:
            attempt += 1
            await self._limiter.acquire()
            headers = dict(request.headers)
            if self._credentials is not None:
                headers.update(await self._credentials.auth_headers())

            try:
                response = await self._send(request, headers)
            except httpx.TransportError as exc:
                error = f"{type(exc).__name__}: {exc}"
                if retries >= policy.max_retries:
                    self._emit(request, attempt, "failed", error=error)
                    raise TransientConnectionError(
                        self._provider, f"{request.method} {request.url} failed: {error}"
                    ) from exc
                retries += 1
                delay = compute_delay(policy, retries)
                self._emit(request, attempt, "retry", error=error, delay=delay)
                await self._sleep(delay)
                continue
            except httpx.RequestError as exc:
                error = f"{type(exc).__name__}: {exc}"
                self._emit(request, attempt, "failed", error=error)
                raise ProviderError(
                    self._provider, f"{request.method} {request.url} failed: {error}"
                ) from exc

            status = response.status_code
            if 200 <= status < 300:
                self._emit(request, attempt, "success", status=status)
                return response

            if status in policy.auth_statuses:
                if self._credentials is not None and not reauthed:
                    reauthed = True
                    self._credentials.invalidate_credentials()
                    self._emit(request, attempt, "reauth", status=status)
                    continue
                self._emit(request, attempt, "auth_failed", status=status)
                raise AuthFailedError(
                    self._provider, "credentials rejected", status=status
                )

            if policy.is_retryable(status):
                if retries < policy.max_retries:
                    retries += 1
                    delay = compute_delay(policy, retries, response.headers)
                    self._emit(request, attempt, "retry", status=status, delay=delay)
                    await self._sleep(delay)
                    continue
                if status in policy.rate_limit_statuses:
                    self._emit(request, attempt, "rate_limited", status=status)
                    raise RateLimitedError(
                        self._provider, "still throttled after retries", status=status
                    )

            self._emit(request, attempt, "failed", status=status)
            raise ProviderError(self._provider, _preview(response), status=status)

    # -- helpers --

    async def _send(
        self, request: ResilientRequest, headers: dict[str, str]
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {"headers": headers}
        if request.params is not None:
            kwargs["params"] = request.params
        if request.content is not None:
            kwargs["content"] = request.content
        if request.json is not None:
            kwargs["json"] = request.json
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout
        return await self._http.request(request.method, request.url, **kwargs)

    def _emit(
        self,
        request: ResilientRequest,
        attempt: int,
        outcome: str,
        *,
        status: int | None = None,
        error: str | None = None,
        delay: float | None = None,
    ) -> None:
        event = AttemptEvent(
            provider=self._provider,
            method=request.method,
            url=request.url,
            attempt=attempt,
            outcome=outcome,  # type: ignore[arg-type]
            status=status,
            error=error,
            delay=round(delay, 3) if delay is not None else None,
        )
        level = log.debug if outcome == "success" else log.info
        if outcome in ("failed", "auth_failed", "rate_limited"):
            level = log.warning
        level(
            "provider_attempt",
            provider=self._provider,
            method=request.method,
            url=request.url,
            attempt=attempt,
            outcome=outcome,
            status=status,
            error=error,
            delay=event.delay,
        )
        if self._on_attempt is None:
            return
        try:
            self._on_attempt(event)
        except Exception:
            log.warning("attempt_hook_failed", provider=self._provider, exc_info=True)


def _preview(response: httpx.Response) -> str:
    try:
        text = response.text
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return ""
    return text[:_BODY_PREVIEW]
