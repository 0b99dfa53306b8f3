"""PGN header parsing and normalization."""

from __future__ import annotations

from dataclasses import dataclass, field
from io import StringIO

import chess.pgn

from gamesync.models.enums import SpeedClass
from gamesync.pgn_utils import (
    classify_speed,
    iso_to_timestamp_ms,
    normalize_header_value,
    parse_pgn_tags,
    parse_rated,
    parse_rating,
    resolve_iso_datetime,
)
from gamesync.utils import Now, get_logger

logger = get_logger(__name__)

_RESULTS = {"1-0", "0-1", "1/2-1/2"}


@dataclass
class ParsedPgn:  # pylint: disable=too-many-instance-attributes
    """Structured metadata extracted from one PGN game.

    `date` is None when the date tags were unparseable; `timestamp_ms` is then
    the parse time so callers always have a usable value.
    """

    pgn: str
    tags: dict[str, str] = field(default_factory=dict)
    date: str | None = None
    timestamp_ms: int = 0
    date_from_tags: bool = False
    white: str = ""
    black: str = ""
    white_title: str = ""
    black_title: str = ""
    white_rating: int | None = None
    black_rating: int | None = None
    result: str | None = None
    eco: str = ""
    opening_name: str = ""
    site: str = ""
    event: str = ""
    time_control: str = ""
    speed_class: SpeedClass = SpeedClass.STANDARD
    variant: str = ""
    rated: bool | None = None

    @classmethod
    def from_tags(cls, pgn: str, tags: dict[str, str], now_ms: int | None = None) -> ParsedPgn:
        """Derive normalized fields from a tag mapping."""
        iso_date = resolve_iso_datetime(tags)
        tag_timestamp = iso_to_timestamp_ms(iso_date)
        result = tags.get("Result", "").strip()
        return cls(
            pgn=pgn,
            tags=tags,
            date=iso_date,
            timestamp_ms=tag_timestamp if tag_timestamp is not None else _now(now_ms),
            date_from_tags=tag_timestamp is not None,
            white=normalize_header_value(tags.get("White")),
            black=normalize_header_value(tags.get("Black")),
            white_title=normalize_header_value(tags.get("WhiteTitle")),
            black_title=normalize_header_value(tags.get("BlackTitle")),
            white_rating=parse_rating(tags.get("WhiteElo")),
            black_rating=parse_rating(tags.get("BlackElo")),
            result=result if result in _RESULTS else None,
            eco=normalize_header_value(tags.get("ECO")),
            opening_name=normalize_header_value(tags.get("Opening")),
            site=normalize_header_value(tags.get("Site")),
            event=normalize_header_value(tags.get("Event")),
            time_control=normalize_header_value(tags.get("TimeControl")),
            speed_class=classify_speed(tags.get("TimeControl")),
            variant=normalize_header_value(tags.get("Variant")).lower(),
            rated=parse_rated(tags.get("Rated")),
        )


def _now(now_ms: int | None) -> int:
    return Now.as_milliseconds() if now_ms is None else now_ms


def is_legal_pgn(pgn: str) -> bool:
    """Check that python-chess reads a game without move errors."""
    try:
        game = chess.pgn.read_game(StringIO(pgn))
    except (ValueError, IndexError) as exc:
        logger.debug("python-chess rejected PGN: %s", exc)
        return False
    if game is None:
        return False
    if game.errors:
        logger.debug("PGN has %s move errors: %s", len(game.errors), game.errors[0])
        return False
    return True


def parse_pgn(pgn: str | None, now_ms: int | None = None) -> ParsedPgn | None:
    """Parse PGN text into structured metadata.

    Args:
        pgn: Raw PGN text of one game.
        now_ms: Clock override used when the date tags are unparseable.

    Returns:
        Parsed metadata, or None when the text is empty or the move text is not
        a legal sequence. Callers count None as a parse error and skip the game.
    """

    if not pgn or not pgn.strip():
        return None
    if not is_legal_pgn(pgn):
        return None
    return ParsedPgn.from_tags(pgn, parse_pgn_tags(pgn), now_ms=now_ms)
