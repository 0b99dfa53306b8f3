"""Data models exchanged between adapters, the merge layer and the store."""

from gamesync.models.canonical_game_record import CanonicalGameRecord, GameResultTag
from gamesync.models.enums import (
    ImportStatus,
    ProgressEventType,
    Provider,
    SpeedClass,
    SyncMode,
    SyncState,
)
from gamesync.models.import_checkpoint import FailedChunk, ImportCheckpoint
from gamesync.models.progress_event import ProgressCallback, ProgressEvent, clamp_percentage
from gamesync.models.sync_result import ImportWindow, PgnImportSummary, SyncResult, UpsertSummary

__all__ = [
    "CanonicalGameRecord",
    "FailedChunk",
    "GameResultTag",
    "ImportCheckpoint",
    "ImportStatus",
    "ImportWindow",
    "PgnImportSummary",
    "ProgressCallback",
    "ProgressEvent",
    "ProgressEventType",
    "Provider",
    "SpeedClass",
    "SyncMode",
    "SyncResult",
    "SyncState",
    "UpsertSummary",
    "clamp_percentage",
]
