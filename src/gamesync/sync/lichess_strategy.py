"""Lichess chunking: fixed-width time windows over the export stream."""

from __future__ import annotations

from gamesync.chess_clients import LichessClient
from gamesync.errors import FatalProviderError, ProviderError, RateLimitError
from gamesync.models import ImportCheckpoint, Provider
from gamesync.sync.base_strategy import ChunkPlan, SyncStrategy
from gamesync.sync.progress import ratio_percentage
from gamesync.sync.range_selection import DAY_MS
from gamesync.utils import Now, get_logger

logger = get_logger(__name__)


class LichessSyncStrategy(SyncStrategy):
    """Walk the window in `chunk_days` slices.

    Chunks are inclusive and disjoint: `[s, s + width - 1]`, except that the last
    chunk absorbs everything up to `target_until`. The next chunk starts one
    millisecond after the previous end; the loop runs while `s <= target_until`.
    """

    provider = Provider.LICHESS
    client: LichessClient

    def __init__(
        self,
        client: LichessClient,
        pacing_ms: int,
        *,
        chunk_days: int = 90,
        abort_on_rate_limit: bool = False,
    ) -> None:
        super().__init__(client, pacing_ms)
        self.chunk_ms = max(chunk_days, 1) * DAY_MS
        self.abort_on_rate_limit = abort_on_rate_limit

    def full_history_start(self, username: str) -> int | None:
        """Use the account creation time as the start of a full sync.

        Raises:
            FatalProviderError: The account does not exist.
        """

        try:
            account = self.client.fetch_account(username)
        except FatalProviderError:
            raise
        except ProviderError as exc:
            logger.warning(
                "Lichess account lookup failed for %s, importing from 0: %s", username, exc
            )
            return None
        return account.created_at_ms

    def has_next(self, checkpoint: ImportCheckpoint) -> bool:
        return checkpoint.current_since <= checkpoint.target_until

    def next_chunk(self, checkpoint: ImportCheckpoint) -> ChunkPlan:
        since = checkpoint.current_since
        end = since + self.chunk_ms
        until = checkpoint.target_until if end >= checkpoint.target_until else end - 1
        return ChunkPlan(
            since_ms=since,
            until_ms=until,
            label=f"{Now.format_date(since)} to {Now.format_date(until)}",
        )

    def advance(self, checkpoint: ImportCheckpoint, plan: ChunkPlan) -> None:
        checkpoint.current_since = plan.until_ms + 1

    def percentage(self, checkpoint: ImportCheckpoint) -> float:
        return ratio_percentage(
            checkpoint.current_since - checkpoint.target_since,
            checkpoint.target_until - checkpoint.target_since + 1,
        )

    def aborts_on(self, exc: ProviderError) -> bool:
        if self.abort_on_rate_limit and isinstance(exc, RateLimitError):
            return True
        return super().aborts_on(exc)
