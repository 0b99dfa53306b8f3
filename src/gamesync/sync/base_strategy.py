"""Per-provider chunking plugged into the sync service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from gamesync.cancellation import CancellationToken
from gamesync.chess_clients import BaseChessClient, ChessFetchRequest, ChessFetchResult
from gamesync.errors import CHUNK_ERRORS, ProviderError
from gamesync.models import ImportCheckpoint, ImportWindow, Provider


@dataclass(slots=True)
class ChunkPlan:
    """One unit of fetch work.

    Attributes:
        since_ms: Chunk start, inclusive.
        until_ms: Chunk end, inclusive.
        cursor: Provider token for the chunk (the archive URL for Chess.com).
        label: Human-readable chunk description for progress messages.
    """

    since_ms: int
    until_ms: int
    cursor: str | None = None
    label: str = ""


class SyncStrategy(ABC):
    """How one provider splits a window into chunks and tracks resume state.

    The service drives the loop; a strategy owns the meaning of the checkpoint's
    `cursor` / `current_since` fields and the percentage reported for them.
    """

    provider: Provider

    def __init__(self, client: BaseChessClient, pacing_ms: int) -> None:
        self.client = client
        self.pacing_ms = max(pacing_ms, 0)

    @property
    def pacing_s(self) -> float:
        return self.pacing_ms / 1000.0

    def full_history_start(self, username: str) -> int | None:
        """Start of history for a `full` sync when the caller gives none."""
        return None

    def prepare(
        self,
        checkpoint: ImportCheckpoint,
        username: str,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """Load whatever the strategy needs before the first chunk."""

    def start_checkpoint(
        self, username: str, window: ImportWindow, mode: str
    ) -> ImportCheckpoint:
        return ImportCheckpoint(
            provider=self.provider,
            username=username,
            mode=mode,
            target_since=window.since_ms,
            target_until=window.until_ms,
            current_since=window.since_ms,
            cursor=None,
        )

    @abstractmethod
    def has_next(self, checkpoint: ImportCheckpoint) -> bool: ...

    @abstractmethod
    def next_chunk(self, checkpoint: ImportCheckpoint) -> ChunkPlan: ...

    @abstractmethod
    def advance(self, checkpoint: ImportCheckpoint, plan: ChunkPlan) -> None:
        """Move the checkpoint past `plan`, whether it succeeded or failed."""

    @abstractmethod
    def percentage(self, checkpoint: ImportCheckpoint) -> float: ...

    def fetch(
        self,
        plan: ChunkPlan,
        username: str,
        cancel_token: CancellationToken | None = None,
    ) -> ChessFetchResult:
        request = ChessFetchRequest(
            username=username,
            since_ms=plan.since_ms,
            until_ms=plan.until_ms,
            cursor=plan.cursor,
        )
        return self.client.fetch_incremental_games(request, cancel_token)

    def aborts_on(self, exc: ProviderError) -> bool:
        """Whether a chunk failure ends the sync after being recorded.

        The failed chunk is skipped either way, so a resumed sync continues
        with the next one.
        """
        return not isinstance(exc, CHUNK_ERRORS)
