from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import requests

from gamesync.cancellation import CancellationToken, Sleeper, make_sleeper
from gamesync.chess_clients.chess_fetch_request import ChessFetchRequest
from gamesync.chess_clients.chess_fetch_result import ChessFetchResult
from gamesync.chess_clients.http_retry import (
    TRANSPORT_ERRORS,
    RetryPolicy,
    call_with_retry,
    network_error,
    raise_for_provider_status,
)
from gamesync.config import Settings
from gamesync.models import Provider


@dataclass(slots=True)
class BaseChessClientContext:
    """Shared context for chess API clients.

    Attributes:
        settings: Application settings used for API calls.
        logger: Logger for client-specific messages.
        session: HTTP session; a fresh `requests.Session` when omitted.
        sleep: Wait function for backoff; cancellation-aware when omitted.
    """

    settings: Settings
    logger: logging.Logger
    session: requests.Session | None = None
    sleep: Callable[[float], None] | None = None


class BaseChessClient:
    """Base class for chess API clients.

    Subclasses set `provider` and implement `fetch_incremental_games`, which
    fetches one chunk described by a `ChessFetchRequest`.
    """

    provider: Provider

    def __init__(self, context: BaseChessClientContext) -> None:
        """Initialize the client with shared context.

        Args:
            context: Base context containing settings and logger.
        """

        self._context = context
        self._session = context.session

    @property
    def settings(self) -> Settings:
        """Expose the settings from the context.

        Returns:
            The active `Settings` instance.
        """

        return self._context.settings

    @property
    def logger(self) -> logging.Logger:
        """Expose the logger from the context.

        Returns:
            Logger used by the client.
        """

        return self._context.logger

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def fetch_incremental_games(
        self,
        request: ChessFetchRequest,
        cancel_token: CancellationToken | None = None,
    ) -> ChessFetchResult:
        """Fetch one chunk of games.

        Args:
            request: Request parameters for the chunk.
            cancel_token: Token checked during waits and between records.

        Returns:
            A `ChessFetchResult` with the mapped records and parse error count.

        Raises:
            NotImplementedError: When the subclass does not implement this method.

        Example:
            >>> client.fetch_incremental_games(ChessFetchRequest(username="a", until_ms=1))
        """

        raise NotImplementedError("Subclasses must implement fetch_incremental_games")

    def sleeper(self, cancel_token: CancellationToken | None = None) -> Sleeper:
        """Return the wait function for backoff and pacing."""
        return make_sleeper(cancel_token, self._context.sleep)

    def _retry_policy(self) -> RetryPolicy:
        raise NotImplementedError("Subclasses must define a retry policy")

    def _request_headers(self) -> dict[str, str]:
        return {}

    def _get(
        self,
        url: str,
        *,
        params: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: int,
        stream: bool = False,
    ) -> requests.Response:
        """Issue one GET, mapping transport failures and error statuses."""
        merged_headers = {**self._request_headers(), **(headers or {})}
        try:
            response = self.session.get(
                url,
                params=params,
                headers=merged_headers,
                timeout=timeout,
                stream=stream,
            )
        except TRANSPORT_ERRORS as exc:
            raise network_error(exc, self.provider.value, url) from exc
        raise_for_provider_status(response, self.provider.value, url)
        return response

    def _get_with_backoff(
        self,
        url: str,
        *,
        timeout: int,
        cancel_token: CancellationToken | None = None,
        params: Mapping[str, object] | None = None,
    ) -> requests.Response:
        """Fetch a URL, retrying rate limits and transport failures.

        Args:
            url: URL to request.
            timeout: Timeout in seconds.
            cancel_token: Token that interrupts backoff waits.
            params: Query parameters.

        Returns:
            Response object.
        """

        return call_with_retry(
            lambda: self._get(url, params=params, timeout=timeout),
            self._retry_policy(),
            self.logger,
            self.sleeper(cancel_token),
        )
