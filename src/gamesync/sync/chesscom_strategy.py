"""Chess.com chunking: one monthly archive per chunk."""

from __future__ import annotations

from gamesync.cancellation import CancellationToken
from gamesync.chess_clients import ChesscomClient, filter_archives_by_window
from gamesync.errors import ProviderError
from gamesync.models import ImportCheckpoint, Provider
from gamesync.sync.base_strategy import ChunkPlan, SyncStrategy
from gamesync.sync.progress import ratio_percentage
from gamesync.utils import get_logger

logger = get_logger(__name__)


class ChesscomSyncStrategy(SyncStrategy):
    """Walk the archives overlapping the window, oldest first.

    The checkpoint cursor is an index into the filtered archive list. The list is
    rebuilt from the persisted window on resume, so the index stays valid as
    long as Chess.com does not drop past archives. Lists are kept per username
    so one strategy can serve concurrent syncs for different players.
    """

    provider = Provider.CHESSCOM
    client: ChesscomClient

    def __init__(self, client: ChesscomClient, pacing_ms: int) -> None:
        super().__init__(client, pacing_ms)
        self._archives: dict[str, list[str]] = {}

    def _archives_for(self, checkpoint: ImportCheckpoint) -> list[str]:
        return self._archives.get(checkpoint.username.strip().lower(), [])

    def prepare(
        self,
        checkpoint: ImportCheckpoint,
        username: str,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        archives = self.client.fetch_archive_index(username, cancel_token)
        kept = filter_archives_by_window(
            archives, checkpoint.target_since, checkpoint.target_until
        )
        self._archives[username.strip().lower()] = kept
        if checkpoint.cursor is None:
            checkpoint.cursor = 0
        logger.info(
            "%s of %s Chess.com archives overlap the window for %s",
            len(kept),
            len(archives),
            username,
        )

    def has_next(self, checkpoint: ImportCheckpoint) -> bool:
        return (checkpoint.cursor or 0) < len(self._archives_for(checkpoint))

    def next_chunk(self, checkpoint: ImportCheckpoint) -> ChunkPlan:
        archives = self._archives_for(checkpoint)
        index = checkpoint.cursor or 0
        url = archives[index]
        return ChunkPlan(
            since_ms=checkpoint.target_since,
            until_ms=checkpoint.target_until,
            cursor=url,
            label=f"archive {index + 1}/{len(archives)}",
        )

    def advance(self, checkpoint: ImportCheckpoint, plan: ChunkPlan) -> None:
        checkpoint.cursor = (checkpoint.cursor or 0) + 1

    def percentage(self, checkpoint: ImportCheckpoint) -> float:
        return ratio_percentage(checkpoint.cursor or 0, len(self._archives_for(checkpoint)))

    def aborts_on(self, exc: ProviderError) -> bool:
        # A missing or forbidden archive only loses that month.
        return False
