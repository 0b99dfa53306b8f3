"""Import checkpoint persistence for DuckDB."""

from __future__ import annotations

import json

import duckdb
from pydantic import TypeAdapter, ValidationError

from gamesync.db.duckdb_store import fetch_dicts
from gamesync.models import FailedChunk, ImportCheckpoint, Provider
from gamesync.utils import get_logger

logger = get_logger(__name__)

_FAILED_CHUNKS = TypeAdapter(list[FailedChunk])


def _decode_failed_chunks(raw: object) -> list[FailedChunk]:
    if not raw:
        return []
    try:
        return _FAILED_CHUNKS.validate_python(json.loads(str(raw)))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Discarding unreadable failed_chunks payload: %s", exc)
        return []


class DuckDbImportProgressRepository:
    """One checkpoint row per `(provider, lower(username))`."""

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    def save(self, provider: Provider, username: str, checkpoint: ImportCheckpoint) -> None:
        self._conn.execute(
            """
            INSERT OR REPLACE INTO import_progress (
                provider, username_lower, username, mode, target_since, target_until,
                current_since, cursor, total_imported, status, failed_chunks, last_updated
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                str(provider),
                username.strip().lower(),
                checkpoint.username,
                str(checkpoint.mode),
                checkpoint.target_since,
                checkpoint.target_until,
                checkpoint.current_since,
                checkpoint.cursor,
                checkpoint.total_imported,
                str(checkpoint.status),
                _FAILED_CHUNKS.dump_json(checkpoint.failed_chunks).decode("utf-8"),
                checkpoint.last_updated,
            ],
        )

    def load(self, provider: Provider, username: str) -> ImportCheckpoint | None:
        rows = fetch_dicts(
            self._conn,
            "SELECT * FROM import_progress WHERE provider = ? AND username_lower = ?",
            [str(provider), username.strip().lower()],
        )
        if not rows:
            return None
        row = rows[0]
        return ImportCheckpoint(
            provider=Provider(str(row["provider"])),
            username=str(row["username"] or username),
            mode=str(row["mode"]),
            target_since=int(row["target_since"]),
            target_until=int(row["target_until"]),
            current_since=int(row["current_since"]),
            cursor=row["cursor"],
            total_imported=int(row["total_imported"] or 0),
            status=str(row["status"]),
            failed_chunks=_decode_failed_chunks(row["failed_chunks"]),
            last_updated=int(row["last_updated"] or 0),
        )

    def clear(self, provider: Provider, username: str) -> None:
        self._conn.execute(
            "DELETE FROM import_progress WHERE provider = ? AND username_lower = ?",
            [str(provider), username.strip().lower()],
        )
