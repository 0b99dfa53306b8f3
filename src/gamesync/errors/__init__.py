"""Custom error types used in gamesync."""

from __future__ import annotations


class GameSyncError(Exception):
    """Base class for gamesync errors."""


class PgnParseError(GameSyncError, ValueError):
    """A single record (PGN text or JSON line) could not be parsed."""


class ProviderError(GameSyncError):
    """HTTP failure talking to a game provider."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        status_code: int | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.url = url


class RateLimitError(ProviderError):
    """HTTP 429 from a provider."""

    def __init__(self, message: str, *, retry_after: float | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class NetworkError(ProviderError):
    """Transport failure: connection reset, timeout, broken stream."""


class ProviderServerError(ProviderError):
    """Non-retryable 5xx response."""


class FatalProviderError(ProviderError):
    """Non-retryable 4xx response such as an unknown user."""


class InvalidUsernameError(GameSyncError, ValueError):
    """Raised before a sync starts when the username is unusable."""


class UnsupportedProviderError(GameSyncError, ValueError):
    """Raised before a sync starts when no adapter exists for the provider."""


class SyncCancelled(GameSyncError):
    """Cooperative cancellation signal raised at a chunk boundary or during a wait."""


RETRYABLE_ERRORS: tuple[type[ProviderError], ...] = (RateLimitError, NetworkError)
CHUNK_ERRORS: tuple[type[ProviderError], ...] = (
    RateLimitError,
    NetworkError,
    ProviderServerError,
)

__all__ = [
    "CHUNK_ERRORS",
    "FatalProviderError",
    "GameSyncError",
    "InvalidUsernameError",
    "NetworkError",
    "PgnParseError",
    "ProviderError",
    "ProviderServerError",
    "RETRYABLE_ERRORS",
    "RateLimitError",
    "SyncCancelled",
    "UnsupportedProviderError",
]
