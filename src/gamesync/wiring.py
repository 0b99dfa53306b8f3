"""Default construction of the sync service from settings."""

from __future__ import annotations

from gamesync.chess_clients import (
    ChesscomClient,
    ChesscomClientContext,
    LichessClient,
    LichessClientContext,
)
from gamesync.config import Settings, get_settings
from gamesync.db import DuckDbLocalStore
from gamesync.models import Provider
from gamesync.sync import ChesscomSyncStrategy, GameSyncService, LichessSyncStrategy
from gamesync.utils import funclogger, get_logger, set_level

logger = get_logger(__name__)


def build_strategies(
    settings: Settings,
) -> dict[Provider, LichessSyncStrategy | ChesscomSyncStrategy]:
    """Create one client and chunking strategy per supported provider."""

    lichess = LichessClient(
        LichessClientContext(settings=settings, logger=get_logger("gamesync.lichess"))
    )
    chesscom = ChesscomClient(
        ChesscomClientContext(settings=settings, logger=get_logger("gamesync.chesscom"))
    )
    return {
        Provider.LICHESS: LichessSyncStrategy(
            lichess,
            settings.lichess.pacing_ms,
            chunk_days=settings.lichess.chunk_days,
            abort_on_rate_limit=settings.lichess.abort_on_rate_limit,
        ),
        Provider.CHESSCOM: ChesscomSyncStrategy(chesscom, settings.chesscom.pacing_ms),
    }


@funclogger
def build_sync_service(settings: Settings | None = None) -> GameSyncService:
    """Build a `GameSyncService` backed by the configured DuckDB file.

    Args:
        settings: Settings to use; loaded from the environment when omitted.

    Returns:
        Service ready to run syncs for Lichess and Chess.com.
    """

    settings = settings or get_settings()
    set_level(settings.log_level)
    settings.ensure_dirs()
    store = DuckDbLocalStore.open(settings.duckdb_path)
    logger.info("Using game store at %s", settings.duckdb_path)
    return GameSyncService(
        store,
        build_strategies(settings),
        sync_settings=settings.sync,
    )
