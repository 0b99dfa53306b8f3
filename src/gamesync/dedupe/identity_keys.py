"""Identity keys used to recognise the same game across imports."""

from __future__ import annotations

from enum import StrEnum
from typing import NamedTuple

from gamesync.models import CanonicalGameRecord
from gamesync.utils import normalize_string


class IdentityKind(StrEnum):
    """Identity key kinds, in priority order."""

    PROVIDER_ID = "provider-id"
    PGN_HASH = "pgn-hash"
    TIME_PLAYERS = "time-players"


class IdentityKey(NamedTuple):
    kind: IdentityKind
    value: tuple | str


def provider_id_key(provider: str, provider_game_id: str) -> tuple[str, str]:
    return (str(provider), provider_game_id)


def players_key(timestamp_ms: int, white: str, black: str) -> tuple[int, str, str]:
    return (int(timestamp_ms), normalize_string(white), normalize_string(black))


def identity_keys(record: CanonicalGameRecord) -> list[IdentityKey]:
    """Return the record's available identity keys, highest priority first.

    Example:
        >>> [key.kind for key in identity_keys(record)]
        ['provider-id', 'pgn-hash', 'time-players']
    """

    keys: list[IdentityKey] = []
    if record.provider_game_id:
        keys.append(
            IdentityKey(
                IdentityKind.PROVIDER_ID,
                provider_id_key(record.provider, record.provider_game_id),
            )
        )
    if record.pgn_content_hash:
        keys.append(IdentityKey(IdentityKind.PGN_HASH, record.pgn_content_hash))
    if record.timestamp_ms and record.white and record.black:
        keys.append(
            IdentityKey(
                IdentityKind.TIME_PLAYERS,
                players_key(record.timestamp_ms, record.white, record.black),
            )
        )
    return keys
