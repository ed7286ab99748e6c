"""Typed provider failures raised by the HTTP layer and the adapters."""

from __future__ import annotations


class GrabarrError(Exception):
    """Base class for all grabarr errors."""


class ProviderFailure(GrabarrError):
    """A call to an external provider failed.

    Carries the provider name and, where one was received, the HTTP status
    so callers can log or branch without parsing the message.
    """

    def __init__(
        self,
        provider: str,
        message: str = "",
        *,
        status: int | None = None,
    ) -> None:
        self.provider = provider
        self.status = status
        detail = message or self.__class__.__name__
        if status is not None:
            detail = f"{detail} (status={status})"
        super().__init__(f"{provider}: {detail}")


class NotConfiguredError(ProviderFailure):
    """Raised when an adapter lacks the credentials it needs. Never retried."""


class AuthFailedError(ProviderFailure):
    """Raised when authentication fails after the single re-auth attempt."""


class RateLimitedError(ProviderFailure):
    """Raised when a provider keeps throttling after all retries."""


class TransientConnectionError(ProviderFailure):
    """Raised when network/timeout errors persist after all retries."""


class ProviderError(ProviderFailure):
    """Raised for any other non-2xx response. Not retried."""
