from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import UTC, datetime

from gamesync.models.enums import SpeedClass
from gamesync.utils import to_int

TAG_PATTERN = re.compile(r'\[([A-Za-z0-9_]+)\s+"((?:[^"\\]|\\.)*)"\]')
PGN_SPLIT_RE = re.compile(r"\n\s*\n(?=\s*\[)")
TIME_CONTROL_RE = re.compile(r"^(\d+)(?:\+(\d+))?$")

_BULLET_MAX_SECONDS = 180
_BLITZ_MAX_SECONDS = 600
_RAPID_MAX_SECONDS = 1800


def split_pgn_chunks(text: str) -> list[str]:
    """Split a multi-game PGN export into one chunk per game."""
    if not text:
        return []
    normalized = text.replace("\r\n", "\n").strip()
    if not normalized:
        return []
    return [chunk.strip() for chunk in PGN_SPLIT_RE.split(normalized) if chunk.strip()]


def parse_pgn_tags(pgn: str | None) -> dict[str, str]:
    """Extract every `[Key "Value"]` header tag; the last occurrence of a key wins."""
    tags: dict[str, str] = {}
    if not pgn:
        return tags
    for key, value in TAG_PATTERN.findall(pgn):
        tags[key] = value.replace('\\"', '"').replace("\\\\", "\\")
    return tags


def _normalize_date_parts(value: str | None) -> tuple[int, int, int] | None:
    if not value:
        return None
    raw = value.strip()
    if not raw or "?" in raw:
        return None
    parts = raw.split(".") if "." in raw else raw.split("-")
    if len(parts) < 3:
        return None
    year, month, day = (to_int(part) for part in parts[:3])
    if not year or not month or not day:
        return None
    return year, month, day


def _normalize_time(value: str | None) -> str:
    if not value or "?" in value:
        return "00:00:00"
    return value.strip() or "00:00:00"


def to_iso_datetime(date_tag: str | None, time_tag: str | None) -> str | None:
    """Combine PGN date/time tags into an ISO-8601 UTC timestamp.

    Args:
        date_tag: `UTCDate` or `Date` value (``YYYY.MM.DD``).
        time_tag: `UTCTime` or `Time` value (``HH:MM:SS``).

    Returns:
        ISO string such as ``2024-01-02T03:04:05Z``, or None when the date has an
        unknown component, fewer than three parts, or is not a real date.
    """

    parts = _normalize_date_parts(date_tag)
    if parts is None:
        return None
    year, month, day = parts
    time_text = _normalize_time(time_tag)
    try:
        parsed = datetime.strptime(
            f"{year:04d}-{month:02d}-{day:02d} {time_text}", "%Y-%m-%d %H:%M:%S"
        ).replace(tzinfo=UTC)
    except ValueError:
        return None
    return parsed.strftime("%Y-%m-%dT%H:%M:%SZ")


def iso_to_timestamp_ms(value: str | None) -> int | None:
    if not value:
        return None
    parsed = datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=UTC)
    return int(parsed.timestamp() * 1000)


def resolve_iso_datetime(tags: Mapping[str, str]) -> str | None:
    """Prefer `UTCDate`/`UTCTime` and fall back to `Date`/`Time`."""
    return to_iso_datetime(
        tags.get("UTCDate") or tags.get("Date"),
        tags.get("UTCTime") or tags.get("Time"),
    )


def parse_time_control(value: str | None) -> tuple[int, int] | None:
    """Parse a ``base+increment`` time control in seconds."""
    if not value:
        return None
    match = TIME_CONTROL_RE.match(value.strip())
    if not match:
        return None
    base = int(match.group(1))
    increment = int(match.group(2) or 0)
    return base, increment


def classify_speed(time_control: str | None) -> SpeedClass:
    """Bucket a `TimeControl` tag by its base time; malformed or absent is standard."""
    parsed = parse_time_control(time_control)
    if parsed is None:
        return SpeedClass.STANDARD
    base, _increment = parsed
    if base < _BULLET_MAX_SECONDS:
        return SpeedClass.BULLET
    if base < _BLITZ_MAX_SECONDS:
        return SpeedClass.BLITZ
    if base < _RAPID_MAX_SECONDS:
        return SpeedClass.RAPID
    return SpeedClass.CLASSICAL


def parse_rating(value: object) -> int | None:
    """Parse a rating leniently; non-numeric values yield None."""
    return to_int(value)


def normalize_header_value(value: str | None) -> str:
    """Return a tag value with unknown markers (``?``, ``-``) mapped to empty."""
    if not value:
        return ""
    stripped = value.strip()
    if stripped in {"?", "-"}:
        return ""
    return stripped


def parse_rated(value: str | None) -> bool | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip().lower() == "true"
