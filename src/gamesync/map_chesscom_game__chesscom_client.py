"""Map Chess.com archive JSON onto canonical game records."""

from __future__ import annotations

from collections.abc import Mapping

from gamesync.models import CanonicalGameRecord, Provider
from gamesync.normalizer import ProviderFields, build_canonical_record
from gamesync.pgn_headers import parse_pgn
from gamesync.utils import get_logger, to_int

logger = get_logger(__name__)

CHESSCOM_SITE = "Chess.com"


def chesscom_end_time_ms(raw: Mapping[str, object]) -> int | None:
    """Return `end_time` (epoch seconds) as milliseconds, or None when absent."""
    end_time = to_int(raw.get("end_time"))
    if end_time is None:
        return None
    return end_time * 1000


def _side(raw: Mapping[str, object], color: str) -> Mapping[str, object]:
    side = raw.get(color)
    return side if isinstance(side, Mapping) else {}


def _chesscom_fields(raw: Mapping[str, object]) -> ProviderFields:
    white, black = _side(raw, "white"), _side(raw, "black")
    game_id = raw.get("uuid") or raw.get("url")
    rated = raw.get("rated")
    return ProviderFields(
        provider=Provider.CHESSCOM,
        provider_game_id=str(game_id) if game_id else None,
        end_time_ms=chesscom_end_time_ms(raw),
        white=str(white.get("username") or ""),
        black=str(black.get("username") or ""),
        white_rating=to_int(white.get("rating")),
        black_rating=to_int(black.get("rating")),
        time_control=str(raw.get("time_control") or ""),
        speed_label=str(raw.get("time_class") or "") or None,
        variant=str(raw.get("rules") or ""),
        rated=rated if isinstance(rated, bool) else None,
        site=CHESSCOM_SITE,
        source_url=str(raw.get("url") or ""),
    )


def map_chesscom_game(
    raw: Mapping[str, object],
    username: str,
    import_tag: str = "",
    now_ms: int | None = None,
) -> CanonicalGameRecord | None:
    """Map one game from a Chess.com monthly archive.

    Chess.com always ships PGN text; a game without it (or with PGN that does
    not parse) maps to None.
    """

    pgn = raw.get("pgn")
    if not isinstance(pgn, str) or not pgn.strip():
        logger.debug("Chess.com game %s has no PGN", raw.get("url"))
        return None
    parsed = parse_pgn(pgn, now_ms=now_ms)
    if parsed is None:
        logger.debug("Unparseable PGN for Chess.com game %s", raw.get("url"))
        return None
    return build_canonical_record(
        parsed,
        _chesscom_fields(raw),
        username=username,
        import_tag=import_tag,
        now_ms=now_ms,
    )
