"""Shared scaffolding for provider adapters.

An adapter owns its rate budget, its ResilientClient and its credential
pair. Callers never reach the client directly.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any, ClassVar

import httpx
import structlog

from grabarr.domain.entities.http import RateLimitBudget, ResilientRequest, RetryPolicy
from grabarr.domain.exceptions import AuthFailedError, NotConfiguredError, ProviderError
from grabarr.domain.ports.settings import RuntimeSettingsPort
from grabarr.infrastructure.common.rate_limiter import SlidingWindowRateLimiter
from grabarr.infrastructure.common.resilient_client import AttemptHook, ResilientClient

log = structlog.get_logger(__name__)


class ProviderAdapter:
    """Base class for one external system.

    Subclasses set ``name``, ``default_budget`` and ``base_url`` and
    implement :meth:`is_configured`. Token-based providers set
    ``uses_token = True`` and implement :meth:`_fetch_token`; static-key
    providers override :meth:`_static_headers` instead.

    Args:
        http_client: Shared httpx client.
        budget: Budget override; defaults to ``default_budget``.
        retry: Retry policy applied to every call.
        settings: Optional runtime settings, consulted on every call for
            a budget override.
        on_attempt: Hook receiving every attempt event.
        clock: Wall clock used for token expiry.
        sleep: Awaitable sleep shared by limiter and retries.
    """

    name: ClassVar[str] = ""
    default_budget: ClassVar[RateLimitBudget]
    base_url: ClassVar[str] = ""
    uses_token: ClassVar[bool] = False
    expiry_margin_seconds: ClassVar[float] = 0.0

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        budget: RateLimitBudget | None = None,
        retry: RetryPolicy | None = None,
        settings: RuntimeSettingsPort | None = None,
        on_attempt: AttemptHook | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._base_budget = budget or self.default_budget
        self._retry = retry or RetryPolicy()
        self._settings = settings
        self._clock = clock
        self._limiter = SlidingWindowRateLimiter(
            self._base_budget, name=self.name, sleep=sleep
        )
        self._client = ResilientClient(
            self.name,
            http_client,
            self._limiter,
            credentials=self,
            on_attempt=on_attempt,
            sleep=sleep,
        )
        # Token endpoints are called without credentials attached.
        self._token_client = ResilientClient(
            self.name,
            http_client,
            self._limiter,
            on_attempt=on_attempt,
            sleep=sleep,
        )
        self._token: str | None = None
        self._expires_at = 0.0
        self._auth_lock = asyncio.Lock()

    @property
    def budget(self) -> RateLimitBudget:
        return self._limiter.budget

    def is_configured(self) -> bool:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Credentials (CredentialProviderPort)
    # ------------------------------------------------------------------

    def _token_valid(self) -> bool:
        return self._token is not None and self._clock() < self._expires_at

    async def authenticate(self) -> None:
        """Obtain a token unless the held one is still valid. Idempotent."""
        if not self.is_configured():
            raise NotConfiguredError(self.name, "credentials missing")
        if not self.uses_token:
            return

        async with self._auth_lock:
            if self._token_valid():
                return
            log.info("provider_authenticating", provider=self.name)
            try:
                token, expires_in = await self._fetch_token()
            except ProviderError as exc:
                if exc.status is not None and 400 <= exc.status < 500:
                    raise AuthFailedError(
                        self.name, "token request rejected", status=exc.status
                    ) from exc
                raise
            if not token:
                raise AuthFailedError(self.name, "token response carried no token")
            self._token = token
            self._expires_at = self._clock() + max(
                expires_in - self.expiry_margin_seconds, 0.0
            )
            log.info(
                "provider_authenticated", provider=self.name, expires_in=expires_in
            )

    def invalidate_credentials(self) -> None:
        if self._token is not None:
            log.info("provider_credentials_invalidated", provider=self.name)
        self._token = None
        self._expires_at = 0.0

    async def auth_headers(self) -> dict[str, str]:
        if not self.uses_token:
            return self._static_headers()
        await self.authenticate()
        if self._token is None:
            raise AuthFailedError(self.name, "no token after authentication")
        return self._token_headers(self._token)

    async def _fetch_token(self) -> tuple[str, float]:
        """Return ``(access_token, expires_in_seconds)``."""
        raise NotImplementedError

    def _token_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def _static_headers(self) -> dict[str, str]:
        return {}

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def _refresh_budget(self) -> None:
        override = None
        if self._settings is not None:
            override = self._settings.rate_budget_override(self.name)
        self._limiter.reconfigure(override or self._base_budget)

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    async def call(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        content: str | bytes | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Perform one rate-limited, retried call and decode the JSON body."""
        if not self.is_configured():
            raise NotConfiguredError(self.name, "credentials missing")
        self._refresh_budget()
        request = ResilientRequest(
            method=method,
            url=self._url(endpoint),
            headers=headers or {},
            params=params,
            content=content,
            json=json,
            retry=self._retry,
        )
        response = await self._client.execute(request)
        return self._decode(response)

    async def _token_call(
        self, method: str, url: str, *, params: dict[str, Any] | None = None
    ) -> Any:
        request = ResilientRequest(
            method=method, url=url, params=params, retry=self._retry
        )
        response = await self._token_client.execute(request)
        return self._decode(response)

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(
                self.name, "response is not valid JSON", status=response.status_code
            ) from exc
