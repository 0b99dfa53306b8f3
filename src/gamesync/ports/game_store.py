"""Storage port interfaces used by the sync service and the merge layer."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol

from gamesync.models import CanonicalGameRecord, ImportCheckpoint, Provider, UpsertSummary

ProviderIdKey = tuple[str, str]
PlayersKey = tuple[int, str, str]


class LocalGameStore(Protocol):
    """Local persistence consumed by the sync service.

    Usernames are matched case-insensitively.
    """

    def get_latest_game_timestamp(self, provider: Provider, username: str) -> int | None:
        """Return the newest stored game time for a player, or None."""

    def bulk_upsert_games(self, records: Sequence[CanonicalGameRecord]) -> UpsertSummary:
        """Merge records into storage and report inserted/updated counts."""

    def save_import_progress(
        self, provider: Provider, username: str, checkpoint: ImportCheckpoint
    ) -> None:
        """Persist the checkpoint for a provider/username pair."""

    def load_import_progress(self, provider: Provider, username: str) -> ImportCheckpoint | None:
        """Return the stored checkpoint, if any."""

    def clear_import_progress(self, provider: Provider, username: str) -> None:
        """Delete the stored checkpoint, if any."""


class PgnImportStore(LocalGameStore, Protocol):
    """Local store that can also report which PGN hashes are already stored."""

    def find_existing_hashes(self, hashes: Iterable[str]) -> set[str]:
        """Return the subset of `hashes` already stored."""


class GameRowStore(Protocol):
    """Row-level game access used by `GameMerger`."""

    def find_by_provider_ids(self, keys: Sequence[ProviderIdKey]) -> dict[ProviderIdKey, dict]:
        """Return stored rows keyed by `(provider, provider_game_id)`."""

    def find_by_hashes(self, hashes: Sequence[str]) -> dict[str, dict]:
        """Return stored rows keyed by PGN content hash."""

    def find_by_players(self, keys: Sequence[PlayersKey]) -> dict[PlayersKey, dict]:
        """Return stored rows keyed by `(timestamp_ms, white, black)`, names lowercased."""

    def insert_game(self, values: Mapping[str, object]) -> int:
        """Insert a row and return its id."""

    def update_game(self, game_id: int, values: Mapping[str, object]) -> None:
        """Update columns of an existing row."""
