from __future__ import annotations

from pydantic import BaseModel, Field

from gamesync.models.import_checkpoint import FailedChunk


class SyncResult(BaseModel):
    """Final outcome of a provider sync.

    Attributes:
        total_imported: Records merged during the session, including resumed totals.
        failed_chunks: Chunks that failed after retries.
        success: True when the window was exhausted with no failed chunks.
        cancelled: True when the sync paused on a cancellation request.
        parse_errors: Records skipped because they could not be parsed.
        error: Message for a sync aborted by a fatal provider error.
    """

    total_imported: int = 0
    failed_chunks: list[FailedChunk] = Field(default_factory=list)
    success: bool = False
    cancelled: bool = False
    parse_errors: int = 0
    error: str | None = None


class PgnImportSummary(BaseModel):
    """Counts reported by a raw PGN import."""

    imported: int = 0
    skipped: int = 0
    errors: int = 0


class ImportWindow(BaseModel):
    """Inclusive time window selected for a sync."""

    since_ms: int
    until_ms: int
    reason: str = ""


class UpsertSummary(BaseModel):
    """Counts reported by a bulk merge into the local store."""

    inserted: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.updated
