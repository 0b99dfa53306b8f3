"""Shared pieces for mapping provider payloads onto `CanonicalGameRecord`.

Each provider module supplies a `GameMapper` that extracts `ProviderFields`
from its raw payload; everything else (PGN parsing, gap filling, hashing and
the analysis defaults) happens here so that all providers produce the same
shape.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from gamesync.models import CanonicalGameRecord, Provider, SpeedClass
from gamesync.pgn_headers import ParsedPgn
from gamesync.pgn_utils import classify_speed
from gamesync.utils import Now, hash_pgn_text, normalize_string

DEFAULT_RESULT = "1/2-1/2"
_VALID_RESULTS = {"1-0", "0-1", "1/2-1/2"}

_SPEED_LABELS: dict[str, SpeedClass] = {
    "ultrabullet": SpeedClass.BULLET,
    "bullet": SpeedClass.BULLET,
    "blitz": SpeedClass.BLITZ,
    "rapid": SpeedClass.RAPID,
    "classical": SpeedClass.CLASSICAL,
    "correspondence": SpeedClass.CLASSICAL,
    "daily": SpeedClass.CLASSICAL,
}

_VARIANT_ALIASES = {"chess": "standard", "": "standard"}


class GameMapper(Protocol):
    """Maps one raw provider payload to a canonical record, or None when unusable."""

    def __call__(
        self,
        raw: Mapping[str, object],
        username: str,
        import_tag: str = "",
        now_ms: int | None = None,
    ) -> CanonicalGameRecord | None: ...


@dataclass(slots=True)
class ProviderFields:  # pylint: disable=too-many-instance-attributes
    """Structured values a provider reports alongside (or instead of) PGN text."""

    provider: Provider
    provider_game_id: str | None = None
    end_time_ms: int | None = None
    white: str = ""
    black: str = ""
    white_title: str = ""
    black_title: str = ""
    white_rating: int | None = None
    black_rating: int | None = None
    result: str | None = None
    eco: str = ""
    opening_name: str = ""
    time_control: str = ""
    speed_label: str | None = None
    variant: str = ""
    rated: bool | None = None
    site: str = ""
    source_url: str = ""
    event: str = ""


def synthesize_pgn(headers: Mapping[str, object], moves: str) -> str:
    """Build PGN text from header values and a SAN move string.

    Empty or None header values are written as ``?``. The result tag is appended
    to the move text when the moves do not already end with it.
    """

    lines = []
    for key, value in headers.items():
        text = "?" if value is None or value == "" else str(value)
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        lines.append(f'[{key} "{escaped}"]')
    move_text = moves.strip()
    result = headers.get("Result")
    if isinstance(result, str) and result in _VALID_RESULTS and not move_text.endswith(result):
        move_text = f"{move_text} {result}".strip()
    return "\n".join(lines) + "\n\n" + move_text + "\n"


def resolve_timestamp(
    provider_end_ms: int | None,
    parsed: ParsedPgn | None,
    now_ms: int | None = None,
) -> int:
    """Pick the game time: provider end time, then PGN date, then now."""
    if provider_end_ms is not None and provider_end_ms > 0:
        return provider_end_ms
    if parsed is not None and parsed.date_from_tags:
        return parsed.timestamp_ms
    return Now.as_milliseconds() if now_ms is None else now_ms


def resolve_speed_class(provider_label: str | None, time_control: str | None) -> SpeedClass:
    """Map a provider speed label, falling back to the time-control buckets."""
    if provider_label:
        mapped = _SPEED_LABELS.get(provider_label.strip().lower())
        if mapped is not None:
            return mapped
    return classify_speed(time_control)


def resolve_result(*candidates: str | None) -> str:
    for candidate in candidates:
        if candidate in _VALID_RESULTS:
            return candidate  # type: ignore[return-value]
    return DEFAULT_RESULT


def normalize_variant(value: str | None) -> str:
    variant = (value or "").strip().lower()
    return _VARIANT_ALIASES.get(variant, variant)


def is_hero_game(white: str, black: str, username: str) -> bool:
    name = normalize_string(username)
    return bool(name) and name in {normalize_string(white), normalize_string(black)}


def build_canonical_record(
    parsed: ParsedPgn,
    fields: ProviderFields,
    *,
    username: str = "",
    import_tag: str = "",
    now_ms: int | None = None,
) -> CanonicalGameRecord:
    """Merge parsed PGN metadata with provider fields into a canonical record.

    PGN values win; provider values fill what the PGN leaves empty. The
    timestamp and speed class follow their own precedence rules.

    Args:
        parsed: Parsed PGN metadata.
        fields: Provider-reported values.
        username: Imported user, used for `is_hero`.
        import_tag: Grouping label stored on the record.
        now_ms: Clock override for the timestamp fallback.

    Returns:
        Canonical record with the content hash and analysis defaults set.
    """

    white = parsed.white or fields.white or "Unknown"
    black = parsed.black or fields.black or "Unknown"
    time_control = parsed.time_control or fields.time_control
    return CanonicalGameRecord(
        provider_game_id=fields.provider_game_id or None,
        pgn_content_hash=hash_pgn_text(parsed.pgn),
        timestamp_ms=resolve_timestamp(fields.end_time_ms, parsed, now_ms),
        white=white,
        black=black,
        white_title=parsed.white_title or fields.white_title,
        black_title=parsed.black_title or fields.black_title,
        white_rating=(
            parsed.white_rating if parsed.white_rating is not None else fields.white_rating
        ),
        black_rating=(
            parsed.black_rating if parsed.black_rating is not None else fields.black_rating
        ),
        result=resolve_result(parsed.result, fields.result),
        eco=parsed.eco or fields.eco,
        opening_name=parsed.opening_name or fields.opening_name,
        time_control_raw=time_control,
        speed_class=resolve_speed_class(fields.speed_label, time_control),
        variant=normalize_variant(parsed.variant or fields.variant),
        rated=fields.rated if fields.rated is not None else parsed.rated,
        pgn=parsed.pgn,
        site=fields.site or parsed.site,
        source_url=fields.source_url,
        event=parsed.event or fields.event,
        date=parsed.date,
        provider=fields.provider,
        is_hero=is_hero_game(white, black, username),
        import_tag=import_tag,
    )
