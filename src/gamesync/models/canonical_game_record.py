"""Canonical, storage-ready representation of one chess game."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from gamesync.models.enums import Provider, SpeedClass

GameResultTag = Literal["1-0", "0-1", "1/2-1/2"]


class CanonicalGameRecord(BaseModel):
    """Represents a normalized chess game regardless of source provider.

    Attributes:
        provider_game_id: Provider identifier (Lichess id, Chess.com uuid/url).
        pgn_content_hash: Hash of the normalized PGN text.
        timestamp_ms: Game end time in epoch milliseconds.
        white: White player name.
        black: Black player name.
        result: PGN result tag.
        speed_class: Bucket derived from the time control or provider label.
        pgn: Full PGN text.
        provider: Source of the record.
        is_hero: Whether the imported user played in the game.
        import_tag: Free-form grouping label.
        analyzed: Analysis flag, owned by the analysis collaborator after import.
        analysis_status: Analysis status, owned by the analysis collaborator.
    """

    model_config = ConfigDict(use_enum_values=True)

    provider_game_id: str | None = None
    pgn_content_hash: str
    timestamp_ms: int

    white: str
    black: str
    white_title: str = ""
    black_title: str = ""
    white_rating: int | None = None
    black_rating: int | None = None

    result: GameResultTag = "1/2-1/2"
    eco: str = ""
    opening_name: str = ""
    time_control_raw: str = ""
    speed_class: SpeedClass = SpeedClass.STANDARD
    variant: str = "standard"
    rated: bool | None = None
    pgn: str
    site: str = ""
    source_url: str = ""
    event: str = ""
    date: str | None = None
    provider: Provider
    is_hero: bool = False
    import_tag: str = ""

    analyzed: bool = False
    analysis_status: str = Field(default="idle")
