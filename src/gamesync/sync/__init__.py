"""Provider sync: range selection, chunking strategies and the sync service."""

from gamesync.sync.base_strategy import ChunkPlan, SyncStrategy
from gamesync.sync.chesscom_strategy import ChesscomSyncStrategy
from gamesync.sync.lichess_strategy import LichessSyncStrategy
from gamesync.sync.orchestrator import GameSyncService
from gamesync.sync.progress import ProgressEmitter, ratio_percentage
from gamesync.sync.range_selection import (
    DAY_MS,
    determine_import_range,
    validate_custom_range,
)

__all__ = [
    "ChesscomSyncStrategy",
    "ChunkPlan",
    "DAY_MS",
    "GameSyncService",
    "LichessSyncStrategy",
    "ProgressEmitter",
    "SyncStrategy",
    "determine_import_range",
    "ratio_percentage",
    "validate_custom_range",
]
