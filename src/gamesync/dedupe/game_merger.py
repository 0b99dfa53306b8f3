"""Idempotent merge of canonical records into stored game rows."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from gamesync.dedupe.identity_keys import IdentityKey, IdentityKind, identity_keys
from gamesync.models import CanonicalGameRecord, Provider, UpsertSummary
from gamesync.ports import GameRowStore
from gamesync.utils import get_logger

logger = get_logger(__name__)

ANALYSIS_FIELDS = frozenset({"analyzed", "analysis_status"})
IDENTITY_FIELDS = ("provider_game_id", "pgn_content_hash")


def record_to_row(record: CanonicalGameRecord) -> dict[str, object]:
    """Column values for a newly inserted row."""
    return record.model_dump(mode="json")


def _merge_identity(
    existing: Mapping[str, object], incoming: dict[str, object]
) -> dict[str, object]:
    merged = dict(incoming)
    existing_provider = existing.get("provider")
    if merged.get("provider") == Provider.PGN and existing_provider not in (None, Provider.PGN):
        merged["provider"] = existing_provider
        merged["provider_game_id"] = existing.get("provider_game_id")
    for field in IDENTITY_FIELDS:
        if not merged.get(field) and existing.get(field):
            merged[field] = existing[field]
    if existing.get("is_hero"):
        merged["is_hero"] = True
    if not merged.get("import_tag") and existing.get("import_tag"):
        merged["import_tag"] = existing["import_tag"]
    return merged


def update_values(
    existing: Mapping[str, object], record: CanonicalGameRecord
) -> dict[str, object]:
    """Column values for updating `existing` with `record`.

    Identity fields are never cleared, a raw PGN import never replaces a real
    provider, and analysis fields are left untouched.
    """

    values = _merge_identity(existing, record_to_row(record))
    for field in ANALYSIS_FIELDS:
        values.pop(field, None)
    return values


def _shares_key(known: dict[IdentityKey, int], keys: Iterable[IdentityKey]) -> int | None:
    for key in keys:
        if key in known:
            return known[key]
    return None


def collapse_batch(records: Iterable[CanonicalGameRecord]) -> list[CanonicalGameRecord]:
    """Collapse records that share any identity key; the later record wins.

    Identity fields the later record lacks are carried over from the earlier one.
    """

    collapsed: list[CanonicalGameRecord] = []
    index_by_key: dict[IdentityKey, int] = {}
    for record in records:
        keys = identity_keys(record)
        index = _shares_key(index_by_key, keys)
        if index is None:
            collapsed.append(record)
            index = len(collapsed) - 1
        else:
            merged = _merge_identity(record_to_row(collapsed[index]), record_to_row(record))
            record = CanonicalGameRecord.model_validate(merged)
            collapsed[index] = record
            keys = identity_keys(record)
        for key in keys:
            index_by_key.setdefault(key, index)
    return collapsed


class GameMerger:
    """Insert-or-update canonical records against a `GameRowStore`.

    The fallback chain is provider id, then PGN content hash, then
    `(timestamp_ms, white, black)`. Each record matches the stored row found by
    its highest-priority available key. Applying the same batch twice leaves
    the stored rows unchanged.
    """

    def __init__(self, rows: GameRowStore) -> None:
        self._rows = rows

    def upsert(self, records: Iterable[CanonicalGameRecord]) -> UpsertSummary:
        batch = collapse_batch(records)
        if not batch:
            return UpsertSummary()
        existing = self._lookup_existing(batch)
        summary = UpsertSummary()
        for record in batch:
            keys = identity_keys(record)
            match = self._first_match(existing, keys)
            if match is None:
                row_id = self._rows.insert_game(record_to_row(record))
                stored = {**record_to_row(record), "id": row_id}
                summary.inserted += 1
            else:
                values = update_values(match, record)
                self._rows.update_game(int(match["id"]), values)
                stored = {**match, **values}
                summary.updated += 1
            for key in identity_keys(CanonicalGameRecord.model_validate(stored)):
                existing[key] = stored
        logger.debug("Merged %s records: %s", len(batch), summary)
        return summary

    def _lookup_existing(self, batch: list[CanonicalGameRecord]) -> dict[IdentityKey, dict]:
        by_kind: dict[IdentityKind, list] = {kind: [] for kind in IdentityKind}
        for record in batch:
            for key in identity_keys(record):
                by_kind[key.kind].append(key.value)
        found: dict[IdentityKey, dict] = {}
        lookups = (
            (IdentityKind.PROVIDER_ID, self._rows.find_by_provider_ids),
            (IdentityKind.PGN_HASH, self._rows.find_by_hashes),
            (IdentityKind.TIME_PLAYERS, self._rows.find_by_players),
        )
        for kind, lookup in lookups:
            values = list(dict.fromkeys(by_kind[kind]))
            if not values:
                continue
            for value, row in lookup(values).items():
                found[IdentityKey(kind, value)] = row
        return found

    @staticmethod
    def _first_match(existing: dict[IdentityKey, dict], keys: list[IdentityKey]) -> dict | None:
        for key in keys:
            row = existing.get(key)
            if row is not None:
                return row
        return None
