"""Chess.com published-data API client (monthly archives)."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import quote

from pydantic import BaseModel

from gamesync.cancellation import CancellationToken
from gamesync.chess_clients.base_chess_client import BaseChessClient, BaseChessClientContext
from gamesync.chess_clients.chess_fetch_request import ChessFetchRequest
from gamesync.chess_clients.chess_fetch_result import ChessFetchResult
from gamesync.chess_clients.http_retry import RetryPolicy
from gamesync.errors import ProviderError
from gamesync.map_chesscom_game__chesscom_client import chesscom_end_time_ms, map_chesscom_game
from gamesync.models import ImportWindow, Provider
from gamesync.utils import get_logger, to_int

logger = get_logger(__name__)

ARCHIVE_RE = re.compile(r"/games/(\d{4})/(\d{2})/?$")
STATS_BUCKETS = (
    "chess_blitz",
    "chess_rapid",
    "chess_bullet",
    "chess_daily",
    "chess960_daily",
    "chess_variant",
)

__all__ = [
    "ARCHIVE_RE",
    "ChesscomClient",
    "ChesscomClientContext",
    "ChesscomProfile",
    "filter_archives_by_window",
    "parse_archive_range",
]


def _month_start_ms(year: int, month: int) -> int:
    return int(datetime(year, month, 1, tzinfo=UTC).timestamp() * 1000)


def parse_archive_range(url: str) -> tuple[int, int] | None:
    """Return the UTC month `[start, end)` covered by an archive URL.

    Args:
        url: Archive URL ending in ``/games/YYYY/MM``.

    Returns:
        Start and exclusive end in epoch milliseconds, or None when the URL does
        not name a valid month.
    """

    match = ARCHIVE_RE.search(url)
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not year or not 1 <= month <= 12:
        return None
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    return _month_start_ms(year, month), _month_start_ms(next_year, next_month)


def filter_archives_by_window(urls: Iterable[str], since_ms: int, until_ms: int) -> list[str]:
    """Keep archives whose month overlaps the inclusive window; unparseable URLs are kept."""
    kept: list[str] = []
    for url in urls:
        month = parse_archive_range(url)
        if month is None:
            logger.debug("Keeping archive with unrecognised URL: %s", url)
            kept.append(url)
            continue
        start, end = month
        if end > since_ms and start <= until_ms:
            kept.append(url)
    return kept


def _in_window(raw: Mapping[str, object], window: ImportWindow) -> bool:
    end_ms = chesscom_end_time_ms(raw)
    if end_ms is None:
        return True
    return window.since_ms <= end_ms <= window.until_ms


class ChesscomProfile(BaseModel):
    """Chess.com player profile with lifetime totals summed across stats buckets."""

    username: str
    created_at_ms: int | None = None
    avatar: str = ""
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @property
    def total(self) -> int:
        return self.wins + self.losses + self.draws


@dataclass(slots=True)
class ChesscomClientContext(BaseChessClientContext):
    """Context for Chess.com API interactions."""


class ChesscomClient(BaseChessClient):
    """Client for Chess.com API interactions.

    One chunk is one monthly archive; the archive URL travels in
    `ChessFetchRequest.cursor`.
    """

    provider = Provider.CHESSCOM

    def __init__(self, context: ChesscomClientContext) -> None:
        """Initialize the client with Chess.com-specific context.

        Args:
            context: Client context containing settings and logger.
        """

        super().__init__(context)

    def _retry_policy(self) -> RetryPolicy:
        backoff = max(self.settings.chesscom.retry_backoff_ms, 0) / 1000.0
        return RetryPolicy(
            max_retries=self.settings.chesscom.max_retries,
            network_backoff_s=backoff,
            rate_limit_backoff_s=backoff,
        )

    def _request_headers(self) -> dict[str, str]:
        return {"User-Agent": self.settings.chesscom.user_agent, "Accept": "application/json"}

    def _player_url(self, username: str, suffix: str = "") -> str:
        base = self.settings.chesscom.base_url.rstrip("/")
        return f"{base}/player/{quote(username.strip().lower())}{suffix}"

    def _get_json(self, url: str, cancel_token: CancellationToken | None = None) -> dict:
        response = self._get_with_backoff(
            url, timeout=self.settings.chesscom.timeout_s, cancel_token=cancel_token
        )
        payload = response.json()
        return payload if isinstance(payload, dict) else {}

    def fetch_archive_index(
        self, username: str, cancel_token: CancellationToken | None = None
    ) -> list[str]:
        """Fetch the archive list for a user, oldest first.

        Args:
            username: Chess.com username.
            cancel_token: Token that interrupts backoff waits.

        Returns:
            List of archive URLs.

        Raises:
            FatalProviderError: Unknown user (404) or other non-retryable 4xx.
        """

        payload = self._get_json(self._player_url(username, "/games/archives"), cancel_token)
        archives = [str(url) for url in payload.get("archives", []) if url]
        if not archives:
            self.logger.info("No archives returned for %s", username)
        return archives

    def fetch_archive_games(
        self,
        url: str,
        window: ImportWindow,
        cancel_token: CancellationToken | None = None,
        *,
        username: str = "",
    ) -> ChessFetchResult:
        """Fetch one monthly archive and map the games inside the window.

        Args:
            url: Archive URL.
            window: Inclusive window applied to each game's `end_time`.
            cancel_token: Token checked during waits and between games.
            username: Imported user, used to flag hero games.

        Returns:
            Mapped records and the number of games that failed to parse.
        """

        payload = self._get_json(url, cancel_token)
        raw_games = [game for game in payload.get("games", []) if isinstance(game, Mapping)]
        records = []
        parse_errors = 0
        for raw in raw_games:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            if not _in_window(raw, window):
                continue
            record = map_chesscom_game(
                raw, username, import_tag=self.settings.sync.hero_import_tag
            )
            if record is None:
                parse_errors += 1
                continue
            records.append(record)
        if parse_errors:
            self.logger.info("Skipped %s unparseable games in %s", parse_errors, url)
        return ChessFetchResult(records=records, parse_errors=parse_errors, raw_count=len(raw_games))

    def fetch_incremental_games(
        self,
        request: ChessFetchRequest,
        cancel_token: CancellationToken | None = None,
    ) -> ChessFetchResult:
        """Fetch the archive named by `request.cursor`.

        Example:
            >>> client.fetch_incremental_games(
            ...     ChessFetchRequest(username="alice", until_ms=now, cursor=archive_url)
            ... )
        """

        if not request.cursor:
            raise ValueError("Chess.com fetches require an archive URL cursor")
        window = ImportWindow(since_ms=request.since_ms, until_ms=request.until_ms)
        return self.fetch_archive_games(
            request.cursor, window, cancel_token, username=request.username
        )

    def fetch_profile(self, username: str) -> ChesscomProfile:
        """Fetch a player's profile and lifetime win/loss/draw totals.

        A failing stats endpoint is tolerated and leaves the totals at zero.
        """

        profile = self._get_json(self._player_url(username))
        try:
            stats = self._get_json(self._player_url(username, "/stats"))
        except ProviderError as exc:
            self.logger.warning("Chess.com stats unavailable for %s: %s", username, exc)
            stats = {}
        wins = losses = draws = 0
        for bucket in STATS_BUCKETS:
            entry = stats.get(bucket)
            record = entry.get("record") if isinstance(entry, Mapping) else None
            if not isinstance(record, Mapping):
                continue
            wins += to_int(record.get("win")) or 0
            losses += to_int(record.get("loss")) or 0
            draws += to_int(record.get("draw")) or 0
        joined = to_int(profile.get("joined"))
        return ChesscomProfile(
            username=str(profile.get("username") or username),
            created_at_ms=joined * 1000 if joined else None,
            avatar=str(profile.get("avatar") or ""),
            wins=wins,
            losses=losses,
            draws=draws,
        )

    def has_new_games(self, username: str, since_ms: int | None) -> bool:
        """Check the latest archive for a game that ended after `since_ms`."""
        if not since_ms:
            return False
        archives = self.fetch_archive_index(username)
        if not archives:
            return False
        payload = self._get_json(archives[-1])
        for raw in payload.get("games", []):
            if not isinstance(raw, Mapping):
                continue
            end_ms = chesscom_end_time_ms(raw)
            if end_ms is not None and end_ms > since_ms:
                return True
        return False
