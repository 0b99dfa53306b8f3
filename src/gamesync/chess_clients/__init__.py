"""Public exports for chess client abstractions."""

from __future__ import annotations

from gamesync.chess_clients.base_chess_client import BaseChessClient, BaseChessClientContext
from gamesync.chess_clients.chess_fetch_request import ChessFetchRequest
from gamesync.chess_clients.chess_fetch_result import ChessFetchResult
from gamesync.chess_clients.chesscom_client import (
    ChesscomClient,
    ChesscomClientContext,
    ChesscomProfile,
    filter_archives_by_window,
)
from gamesync.chess_clients.lichess_client import (
    LichessAccount,
    LichessClient,
    LichessClientContext,
)
from gamesync.chess_clients.ndjson_stream import iter_ndjson

__all__ = [
    "BaseChessClient",
    "BaseChessClientContext",
    "ChessFetchRequest",
    "ChessFetchResult",
    "ChesscomClient",
    "ChesscomClientContext",
    "ChesscomProfile",
    "LichessAccount",
    "LichessClient",
    "LichessClientContext",
    "filter_archives_by_window",
    "iter_ndjson",
]
