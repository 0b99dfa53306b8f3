"""DuckDB implementation of the local game store."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

import duckdb

from gamesync.db.duckdb_game_repository import DuckDbGameRepository
from gamesync.db.duckdb_import_progress_repository import DuckDbImportProgressRepository
from gamesync.db.duckdb_store import get_connection, init_schema
from gamesync.dedupe import GameMerger
from gamesync.models import CanonicalGameRecord, ImportCheckpoint, Provider, UpsertSummary
from gamesync.utils import get_logger

logger = get_logger(__name__)


class DuckDbLocalStore:
    """Local game store backed by a single DuckDB connection.

    Every operation holds a re-entrant lock, so syncs running on different
    threads can share one store. Bulk upserts run inside a transaction and roll
    back as a unit on failure.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn
        self._lock = threading.RLock()
        self.games = DuckDbGameRepository(conn)
        self.progress = DuckDbImportProgressRepository(conn)
        self._merger = GameMerger(self.games)
        init_schema(conn)

    @classmethod
    def open(cls, db_path: Path | str) -> DuckDbLocalStore:
        return cls(get_connection(db_path))

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        with self._lock:
            self._conn.execute("BEGIN TRANSACTION")
            try:
                yield self._conn
                self._conn.execute("COMMIT")
            except Exception:
                self._conn.execute("ROLLBACK")
                raise

    def get_latest_game_timestamp(self, provider: Provider, username: str) -> int | None:
        with self._lock:
            return self.games.latest_timestamp_for_player(str(provider), username)

    def bulk_upsert_games(self, records: Sequence[CanonicalGameRecord]) -> UpsertSummary:
        """Merge records into the games table in one transaction."""
        if not records:
            return UpsertSummary()
        with self.transaction():
            summary = self._merger.upsert(records)
        logger.debug(
            "Upserted %s games (%s inserted, %s updated)",
            len(records),
            summary.inserted,
            summary.updated,
        )
        return summary

    def find_existing_hashes(self, hashes: Iterable[str]) -> set[str]:
        with self._lock:
            return self.games.existing_hashes(hashes)

    def save_import_progress(
        self, provider: Provider, username: str, checkpoint: ImportCheckpoint
    ) -> None:
        with self._lock:
            self.progress.save(provider, username, checkpoint)

    def load_import_progress(self, provider: Provider, username: str) -> ImportCheckpoint | None:
        with self._lock:
            return self.progress.load(provider, username)

    def clear_import_progress(self, provider: Provider, username: str) -> None:
        with self._lock:
            self.progress.clear(provider, username)
