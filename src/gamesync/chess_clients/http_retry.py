"""HTTP status mapping and retry policy shared by the provider clients."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from gamesync.errors import (
    RETRYABLE_ERRORS,
    FatalProviderError,
    NetworkError,
    ProviderServerError,
    RateLimitError,
)

HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_SERVER_ERROR = 500
HTTP_STATUS_CLIENT_ERROR = 400

TRANSPORT_ERRORS: tuple[type[Exception], ...] = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


@dataclass(slots=True)
class RetryPolicy:
    """Exponential backoff for retryable provider errors.

    Attributes:
        max_retries: Retries after the first attempt.
        network_backoff_s: First delay after a transport failure.
        rate_limit_backoff_s: First delay after a 429.
    """

    max_retries: int
    network_backoff_s: float
    rate_limit_backoff_s: float

    def delay_for(self, exc: BaseException | None, attempt_number: int) -> float:
        """Delay before retry number `attempt_number` (1-based), doubling each time."""
        base = (
            self.rate_limit_backoff_s
            if isinstance(exc, RateLimitError)
            else self.network_backoff_s
        )
        delay = base * (2 ** (attempt_number - 1))
        retry_after = getattr(exc, "retry_after", None)
        return max(delay, retry_after or 0.0)


class wait_provider_backoff(wait_base):  # noqa: N801 - tenacity naming
    """Tenacity wait strategy that picks the base delay from the failure kind."""

    def __init__(self, policy: RetryPolicy) -> None:
        self.policy = policy

    def __call__(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        return self.policy.delay_for(exc, retry_state.attempt_number)


def call_with_retry[T](
    fn: Callable[[], T],
    policy: RetryPolicy,
    logger: logging.Logger,
    sleep: Callable[[float], None],
) -> T:
    """Run `fn`, retrying rate limits and transport failures per `policy`.

    Args:
        fn: Zero-argument callable performing one request.
        policy: Backoff policy.
        logger: Logger for retry warnings.
        sleep: Wait function; cancellation-aware sleepers abort the retry loop.

    Returns:
        The value returned by `fn`.

    Raises:
        RateLimitError: Retries exhausted on 429 responses.
        NetworkError: Retries exhausted on transport failures.
        ProviderError: Any non-retryable provider failure, immediately.
    """

    retrying = Retrying(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        stop=stop_after_attempt(max(policy.max_retries, 0) + 1),
        wait=wait_provider_backoff(policy),
        sleep=sleep,
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    return retrying(fn)


def parse_retry_after(value: str | None) -> float | None:
    """Parse Retry-After header values.

    Args:
        value: Retry-After header value.

    Returns:
        Number of seconds to wait, or None.
    """

    if not value:
        return None
    seconds = _parse_retry_after_seconds(value)
    if seconds is not None:
        return seconds
    return _parse_retry_after_date(value)


def _parse_retry_after_seconds(value: str) -> float | None:
    try:
        seconds = float(value)
    except ValueError:
        return None
    return max(seconds, 0.0)


def _parse_retry_after_date(value: str) -> float | None:
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    delta = (dt - datetime.now(UTC)).total_seconds()
    return max(delta, 0.0)


def extract_status_code(exc: BaseException) -> int | None:
    """Extract status codes from API exceptions.

    Args:
        exc: Exception raised by the API.

    Returns:
        Status code if available.
    """

    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    return status_code if isinstance(status_code, int) else None


def raise_for_provider_status(response: requests.Response, provider: str, url: str) -> None:
    """Translate an error response into the provider error taxonomy.

    Raises:
        RateLimitError: HTTP 429, with `retry_after` from the header.
        ProviderServerError: Any other 5xx.
        FatalProviderError: Any other 4xx.
    """

    status = response.status_code
    if status == HTTP_STATUS_TOO_MANY_REQUESTS:
        raise RateLimitError(
            f"{provider} rate limit exceeded",
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
            provider=provider,
            status_code=status,
            url=url,
        )
    if status >= HTTP_STATUS_SERVER_ERROR:
        raise ProviderServerError(
            f"{provider} server error {status}", provider=provider, status_code=status, url=url
        )
    if status >= HTTP_STATUS_CLIENT_ERROR:
        raise FatalProviderError(
            f"{provider} request failed with {status}",
            provider=provider,
            status_code=status,
            url=url,
        )


def network_error(exc: Exception, provider: str, url: str) -> NetworkError:
    return NetworkError(f"{provider} network error: {exc}", provider=provider, url=url)
