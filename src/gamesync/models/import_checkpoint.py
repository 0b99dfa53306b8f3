"""Persisted, resumable import state for one provider/username pair."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from gamesync.models.enums import ImportStatus, Provider, SyncMode
from gamesync.utils import Now


class FailedChunk(BaseModel):
    """A chunk that failed after exhausting retries.

    Attributes:
        since: Start of the chunk window in epoch milliseconds.
        until: End of the chunk window in epoch milliseconds.
        error: Error message.
        timestamp: When the failure was recorded.
    """

    since: int
    until: int
    error: str
    timestamp: int = Field(default_factory=Now.as_milliseconds)


class ImportCheckpoint(BaseModel):
    """Resumable sync state.

    Attributes:
        target_since: Inclusive start of the import window.
        target_until: Inclusive end of the import window.
        current_since: Next window start for streaming providers.
        cursor: Index into the filtered archive list for archive providers.
        total_imported: Records merged so far during this session.
        status: Lifecycle status.
        failed_chunks: Chunks that failed after retries, in order.

    Example:
        >>> ImportCheckpoint(provider="lichess", username="alice", target_since=0,
        ...                  target_until=10, current_since=0)
    """

    model_config = ConfigDict(use_enum_values=True)

    provider: Provider
    username: str
    mode: SyncMode = SyncMode.SMART
    target_since: int
    target_until: int
    current_since: int
    cursor: int | None = None
    total_imported: int = 0
    status: ImportStatus = ImportStatus.IN_PROGRESS
    failed_chunks: list[FailedChunk] = Field(default_factory=list)
    last_updated: int = Field(default_factory=Now.as_milliseconds)

    def touch(self) -> None:
        self.last_updated = Now.as_milliseconds()

    @property
    def is_resumable(self) -> bool:
        return self.status != ImportStatus.COMPLETED
