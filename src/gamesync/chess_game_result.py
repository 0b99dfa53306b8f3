from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gamesync.models import CanonicalGameRecord


class ChessGameResult(StrEnum):
    """
    Enumeration representing possible outcomes of a chess game for one player.

    Attributes:
        WIN: Indicates a win.
        LOSS: Indicates a loss.
        DRAW: Indicates a draw.
        INCOMPLETE: The player did not take part in the game.

    Methods:
        from_result_tag(result, is_white) -> ChessGameResult:
            Converts a PGN result tag and side to a ChessGameResult value.
        for_player(record, username) -> ChessGameResult:
            Resolves the outcome of a canonical record from a player's perspective.
    """

    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"
    INCOMPLETE = "incomplete"

    @classmethod
    def from_result_tag(cls, result: str, is_white: bool) -> ChessGameResult:
        if result == "1/2-1/2":
            return cls.DRAW
        if result == "1-0":
            return cls.WIN if is_white else cls.LOSS
        if result == "0-1":
            return cls.LOSS if is_white else cls.WIN
        raise ValueError(f"Invalid game result string: {result}")

    @classmethod
    def for_player(cls, record: CanonicalGameRecord, username: str) -> ChessGameResult:
        name = username.strip().lower()
        if record.white.lower() == name:
            return cls.from_result_tag(record.result, is_white=True)
        if record.black.lower() == name:
            return cls.from_result_tag(record.result, is_white=False)
        return cls.INCOMPLETE
