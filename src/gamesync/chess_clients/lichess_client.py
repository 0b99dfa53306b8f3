"""Lichess client: NDJSON game export stream and account lookup."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import quote

import berserk
import requests
from berserk.exceptions import BerserkError
from pydantic import BaseModel

from gamesync.cancellation import CancellationToken
from gamesync.chess_clients.base_chess_client import BaseChessClient, BaseChessClientContext
from gamesync.chess_clients.chess_fetch_request import ChessFetchRequest
from gamesync.chess_clients.chess_fetch_result import ChessFetchResult
from gamesync.chess_clients.http_retry import (
    HTTP_STATUS_CLIENT_ERROR,
    HTTP_STATUS_SERVER_ERROR,
    HTTP_STATUS_TOO_MANY_REQUESTS,
    TRANSPORT_ERRORS,
    RetryPolicy,
    call_with_retry,
    extract_status_code,
    network_error,
)
from gamesync.chess_clients.ndjson_stream import ParseErrorHandler, iter_ndjson
from gamesync.config import Settings
from gamesync.errors import (
    FatalProviderError,
    PgnParseError,
    ProviderServerError,
    RateLimitError,
)
from gamesync.map_lichess_game__lichess_client import map_lichess_game
from gamesync.models import Provider
from gamesync.utils import Now, get_logger

logger = get_logger(__name__)

NDJSON_CONTENT_TYPE = "application/x-ndjson"
STREAM_CHUNK_BYTES = 8192

_PERF_TYPES: set[str] = {
    "ultraBullet",
    "bullet",
    "blitz",
    "rapid",
    "classical",
    "correspondence",
    "chess960",
    "kingOfTheHill",
    "threeCheck",
    "antichess",
    "atomic",
    "horde",
    "racingKings",
    "crazyhouse",
    "fromPosition",
}


def _coerce_perf_type(value: str | None) -> str | None:
    """Return a comma-separated perf filter with unknown perf types dropped."""
    if not value:
        return None
    perfs = [perf.strip() for perf in value.split(",") if perf.strip() in _PERF_TYPES]
    return ",".join(perfs) or None


def build_client(settings: Settings) -> berserk.Client:
    """Build a Berserk client for the Lichess API.

    Args:
        settings: Settings for the request.

    Returns:
        Berserk client instance.
    """

    token = settings.lichess.token
    session = berserk.TokenSession(token) if token else requests.Session()
    return berserk.Client(session=session, base_url=settings.lichess.base_url)


class LichessAccount(BaseModel):
    """Public Lichess account data used by the sync service."""

    username: str
    created_at_ms: int | None = None
    title: str = ""
    url: str = ""


def _created_at_ms(value: object) -> int | None:
    if isinstance(value, datetime):
        return Now.to_milliseconds(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


@dataclass(slots=True)
class LichessClientContext(BaseChessClientContext):
    """Context for Lichess API interactions."""


class LichessClient(BaseChessClient):
    """Client for Lichess API interactions.

    One chunk is one time window of the user's game export.
    """

    provider = Provider.LICHESS

    def __init__(self, context: LichessClientContext) -> None:
        """Initialize the client with Lichess-specific context.

        Args:
            context: Client context containing settings and logger.
        """

        super().__init__(context)

    def _retry_policy(self) -> RetryPolicy:
        lichess = self.settings.lichess
        return RetryPolicy(
            max_retries=lichess.max_retries,
            network_backoff_s=max(lichess.retry_backoff_ms, 0) / 1000.0,
            rate_limit_backoff_s=max(lichess.rate_limit_backoff_ms, 0) / 1000.0,
        )

    def _request_headers(self) -> dict[str, str]:
        if not self.settings.lichess.token:
            return {}
        return {"Authorization": f"Bearer {self.settings.lichess.token}"}

    def _export_params(self, since_ms: int, until_ms: int) -> dict[str, object]:
        params: dict[str, object] = {
            "since": since_ms,
            "until": until_ms,
            "pgnInJson": "true",
            "opening": "true",
            "clocks": "false",
            "evals": "false",
        }
        if self.settings.lichess.max_games:
            params["max"] = self.settings.lichess.max_games
        perf_type = _coerce_perf_type(self.settings.lichess.perf_type)
        if perf_type:
            params["perfType"] = perf_type
        return params

    def stream_games(
        self,
        username: str,
        since_ms: int,
        until_ms: int,
        cancel_token: CancellationToken | None = None,
        *,
        on_error: ParseErrorHandler | None = None,
    ) -> Iterator[dict]:
        """Stream raw games exported for a user within a time window.

        The generator is lazy and single-use. Malformed lines go to `on_error`;
        cancellation is checked between lines.

        Args:
            username: Lichess username.
            since_ms: Window start in epoch milliseconds.
            until_ms: Window end in epoch milliseconds.
            cancel_token: Token checked between decoded lines.
            on_error: Receives a `PgnParseError` per malformed line.

        Yields:
            Decoded game objects.

        Raises:
            RateLimitError: HTTP 429.
            NetworkError: Transport failure while connecting or reading.
            FatalProviderError: Unknown user or other non-retryable 4xx.
            ProviderServerError: Non-retryable 5xx.
        """

        base = self.settings.lichess.base_url.rstrip("/")
        url = f"{base}/api/games/user/{quote(username.strip())}"
        response = self._get(
            url,
            params=self._export_params(since_ms, until_ms),
            headers={"Accept": NDJSON_CONTENT_TYPE},
            timeout=self.settings.lichess.timeout_s,
            stream=True,
        )
        try:
            for game in iter_ndjson(
                self._iter_body(response, url), on_error=on_error
            ):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                yield game
        finally:
            response.close()

    def _iter_body(self, response: requests.Response, url: str) -> Iterator[bytes]:
        try:
            yield from response.iter_content(chunk_size=STREAM_CHUNK_BYTES)
        except TRANSPORT_ERRORS as exc:
            raise network_error(exc, self.provider.value, url) from exc

    def fetch_incremental_games(
        self,
        request: ChessFetchRequest,
        cancel_token: CancellationToken | None = None,
    ) -> ChessFetchResult:
        """Fetch and map every game in one window, retrying the whole window.

        Args:
            request: Username and inclusive window for the chunk.
            cancel_token: Token checked between lines and during backoff.

        Returns:
            Mapped records plus the count of malformed lines and unmappable games.

        Example:
            >>> client.fetch_incremental_games(
            ...     ChessFetchRequest(username="alice", since_ms=0, until_ms=now)
            ... )
        """

        return call_with_retry(
            lambda: self._collect_window(request, cancel_token),
            self._retry_policy(),
            self.logger,
            self.sleeper(cancel_token),
        )

    def _collect_window(
        self, request: ChessFetchRequest, cancel_token: CancellationToken | None
    ) -> ChessFetchResult:
        line_errors: list[PgnParseError] = []
        records = []
        unmapped = 0
        raw_count = 0
        for raw in self.stream_games(
            request.username,
            request.since_ms,
            request.until_ms,
            cancel_token,
            on_error=line_errors.append,
        ):
            raw_count += 1
            record = map_lichess_game(
                raw, request.username, import_tag=self.settings.sync.hero_import_tag
            )
            if record is None:
                unmapped += 1
                continue
            records.append(record)
        for error in line_errors:
            self.logger.debug("Skipped Lichess line: %s", error)
        parse_errors = len(line_errors) + unmapped
        self.logger.info(
            "Fetched %s Lichess games for %s (%s parse errors)",
            len(records),
            request.username,
            parse_errors,
        )
        return ChessFetchResult(records=records, parse_errors=parse_errors, raw_count=raw_count)

    def fetch_account(self, username: str) -> LichessAccount:
        """Look up public account data with berserk.

        Raises:
            FatalProviderError: Unknown or closed account.
            RateLimitError: HTTP 429.
            ProviderServerError: Any other API failure.
        """

        client = build_client(self.settings)
        try:
            data = client.users.get_public_data(username)
        except BerserkError as exc:
            raise self._account_error(exc, username) from exc
        except TRANSPORT_ERRORS as exc:
            raise network_error(exc, self.provider.value, username) from exc
        if data.get("disabled") or data.get("closed"):
            raise FatalProviderError(
                f"Lichess account {username} is closed", provider=self.provider.value
            )
        return LichessAccount(
            username=str(data.get("username") or username),
            created_at_ms=_created_at_ms(data.get("createdAt")),
            title=str(data.get("title") or ""),
            url=str(data.get("url") or ""),
        )

    def _account_error(self, exc: Exception, username: str) -> Exception:
        status = extract_status_code(exc)
        message = f"Lichess account lookup failed for {username}: {exc}"
        if status == HTTP_STATUS_TOO_MANY_REQUESTS:
            return RateLimitError(message, provider=self.provider.value, status_code=status)
        if status is not None and HTTP_STATUS_CLIENT_ERROR <= status < HTTP_STATUS_SERVER_ERROR:
            return FatalProviderError(message, provider=self.provider.value, status_code=status)
        return ProviderServerError(message, provider=self.provider.value, status_code=status)
