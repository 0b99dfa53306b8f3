"""Map Lichess export JSON onto canonical game records."""

from __future__ import annotations

from collections.abc import Mapping

from gamesync.models import CanonicalGameRecord, Provider
from gamesync.normalizer import ProviderFields, build_canonical_record, synthesize_pgn
from gamesync.pgn_headers import parse_pgn
from gamesync.utils import Now, get_logger, to_int

logger = get_logger(__name__)

LICHESS_SITE = "https://lichess.org"


def _player(raw: Mapping[str, object], color: str) -> Mapping[str, object]:
    players = raw.get("players")
    if not isinstance(players, Mapping):
        return {}
    player = players.get(color)
    return player if isinstance(player, Mapping) else {}


def _player_name(player: Mapping[str, object]) -> str:
    user = player.get("user")
    if isinstance(user, Mapping) and user.get("name"):
        return str(user["name"])
    if player.get("name"):
        return str(player["name"])
    if player.get("aiLevel") is not None:
        return f"Stockfish level {player['aiLevel']}"
    return ""


def _player_title(player: Mapping[str, object]) -> str:
    user = player.get("user")
    if isinstance(user, Mapping) and user.get("title"):
        return str(user["title"])
    return ""


def _winner_result(raw: Mapping[str, object]) -> str | None:
    winner = raw.get("winner")
    if winner == "white":
        return "1-0"
    if winner == "black":
        return "0-1"
    status = raw.get("status")
    if status in {"draw", "stalemate"}:
        return "1/2-1/2"
    return None


def _opening(raw: Mapping[str, object]) -> Mapping[str, object]:
    opening = raw.get("opening")
    return opening if isinstance(opening, Mapping) else {}


def _time_control(raw: Mapping[str, object]) -> str:
    clock = raw.get("clock")
    if not isinstance(clock, Mapping):
        return ""
    initial = to_int(clock.get("initial"))
    increment = to_int(clock.get("increment"))
    if initial is None:
        return ""
    return f"{initial}+{increment or 0}"


def construct_lichess_pgn(raw: Mapping[str, object]) -> str | None:
    """Synthesize PGN headers for a Lichess game exported without `pgn`.

    Returns:
        PGN text, or None when the game has no moves or no identifiable players.
    """

    moves = raw.get("moves")
    white_player, black_player = _player(raw, "white"), _player(raw, "black")
    white, black = _player_name(white_player), _player_name(black_player)
    if not isinstance(moves, str) or not moves.strip() or not (white or black):
        return None
    created_at = to_int(raw.get("createdAt"))
    started = Now.from_milliseconds(created_at) if created_at else None
    opening = _opening(raw)
    game_id = raw.get("id")
    headers: dict[str, object] = {
        "Event": raw.get("tournament") or ("Rated game" if raw.get("rated") else "Casual game"),
        "Site": f"{LICHESS_SITE}/{game_id}" if game_id else LICHESS_SITE,
        "Date": started.strftime("%Y.%m.%d") if started else None,
        "White": white or "Anonymous",
        "Black": black or "Anonymous",
        "Result": _winner_result(raw) or "*",
        "UTCDate": started.strftime("%Y.%m.%d") if started else None,
        "UTCTime": started.strftime("%H:%M:%S") if started else None,
        "WhiteElo": white_player.get("rating"),
        "BlackElo": black_player.get("rating"),
        "Variant": raw.get("variant") or "Standard",
        "TimeControl": _time_control(raw) or "-",
        "ECO": opening.get("eco"),
        "Opening": opening.get("name"),
    }
    if _player_title(white_player):
        headers["WhiteTitle"] = _player_title(white_player)
    if _player_title(black_player):
        headers["BlackTitle"] = _player_title(black_player)
    return synthesize_pgn(headers, moves)


def _lichess_fields(raw: Mapping[str, object]) -> ProviderFields:
    white_player, black_player = _player(raw, "white"), _player(raw, "black")
    opening = _opening(raw)
    game_id = str(raw["id"]) if raw.get("id") else None
    rated = raw.get("rated")
    end_time = to_int(raw.get("lastMoveAt")) or to_int(raw.get("createdAt"))
    variant = raw.get("variant")
    return ProviderFields(
        provider=Provider.LICHESS,
        provider_game_id=game_id,
        end_time_ms=end_time,
        white=_player_name(white_player),
        black=_player_name(black_player),
        white_title=_player_title(white_player),
        black_title=_player_title(black_player),
        white_rating=to_int(white_player.get("rating")),
        black_rating=to_int(black_player.get("rating")),
        result=_winner_result(raw),
        eco=str(opening.get("eco") or ""),
        opening_name=str(opening.get("name") or ""),
        time_control=_time_control(raw),
        speed_label=str(raw.get("speed") or raw.get("perf") or "") or None,
        variant=str(variant) if isinstance(variant, str) else "",
        rated=rated if isinstance(rated, bool) else None,
        site=LICHESS_SITE,
        source_url=f"{LICHESS_SITE}/{game_id}" if game_id else "",
        event=str(raw.get("tournament") or ""),
    )


def map_lichess_game(
    raw: Mapping[str, object],
    username: str,
    import_tag: str = "",
    now_ms: int | None = None,
) -> CanonicalGameRecord | None:
    """Map one Lichess NDJSON game onto a canonical record.

    Args:
        raw: Decoded game object from the export stream.
        username: Imported user.
        import_tag: Grouping label stored on the record.
        now_ms: Clock override for the timestamp fallback.

    Returns:
        Canonical record, or None when there is neither usable PGN text nor
        enough structured data to synthesize it.
    """

    pgn = raw.get("pgn")
    if isinstance(pgn, (bytes, bytearray)):
        pgn = pgn.decode("utf-8", errors="replace")
    if not isinstance(pgn, str) or not pgn.strip():
        pgn = construct_lichess_pgn(raw)
    if pgn is None:
        logger.debug("Lichess game %s has no PGN and no moves", raw.get("id"))
        return None
    parsed = parse_pgn(pgn, now_ms=now_ms)
    if parsed is None:
        logger.debug("Unparseable PGN for Lichess game %s", raw.get("id"))
        return None
    return build_canonical_record(
        parsed,
        _lichess_fields(raw),
        username=username,
        import_tag=import_tag,
        now_ms=now_ms,
    )
