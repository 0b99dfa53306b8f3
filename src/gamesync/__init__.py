"""gamesync package entrypoints."""

import sys

from gamesync.cancellation import CancellationToken
from gamesync.chess_game_result import ChessGameResult
from gamesync.models import (
    CanonicalGameRecord,
    ImportCheckpoint,
    ProgressEvent,
    Provider,
    SyncMode,
    SyncResult,
)
from gamesync.pgn_import import import_pgn_games
from gamesync.sync import GameSyncService
from gamesync.wiring import build_sync_service


def main() -> None:
    """Run the command-line interface."""
    from gamesync.cli import main as cli_main  # pylint: disable=import-outside-toplevel

    sys.exit(cli_main())


__all__ = [
    "CancellationToken",
    "CanonicalGameRecord",
    "ChessGameResult",
    "GameSyncService",
    "ImportCheckpoint",
    "ProgressEvent",
    "Provider",
    "SyncMode",
    "SyncResult",
    "build_sync_service",
    "import_pgn_games",
    "main",
]
