"""Game row repository for DuckDB-backed storage."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

import duckdb

from gamesync.db.duckdb_store import fetch_dicts, placeholders
from gamesync.dedupe.identity_keys import players_key
from gamesync.ports import PlayersKey, ProviderIdKey

GAME_COLUMNS = (
    "provider",
    "provider_game_id",
    "pgn_content_hash",
    "timestamp_ms",
    "white",
    "black",
    "white_title",
    "black_title",
    "white_rating",
    "black_rating",
    "result",
    "eco",
    "opening_name",
    "time_control_raw",
    "speed_class",
    "variant",
    "rated",
    "pgn",
    "site",
    "source_url",
    "event",
    "date",
    "is_hero",
    "import_tag",
    "analyzed",
    "analysis_status",
)
_UPDATABLE_COLUMNS = frozenset(GAME_COLUMNS) - {"analyzed", "analysis_status"}
LOOKUP_BATCH_SIZE = 500


def _batched[T](values: Sequence[T], size: int = LOOKUP_BATCH_SIZE) -> Iterable[Sequence[T]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


class DuckDbGameRepository:
    """Encapsulates game row reads and writes for DuckDB.

    Transactions are owned by the caller; see `DuckDbLocalStore`.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    def find_by_provider_ids(self, keys: Sequence[ProviderIdKey]) -> dict[ProviderIdKey, dict]:
        wanted = set(keys)
        ids = list(dict.fromkeys(game_id for _provider, game_id in keys))
        found: dict[ProviderIdKey, dict] = {}
        for chunk in _batched(ids):
            rows = fetch_dicts(
                self._conn,
                "SELECT * FROM games WHERE provider_game_id IN "
                f"({placeholders(len(chunk))}) ORDER BY id",
                chunk,
            )
            for row in rows:
                key = (str(row["provider"]), str(row["provider_game_id"]))
                if key in wanted:
                    found.setdefault(key, row)
        return found

    def find_by_hashes(self, hashes: Sequence[str]) -> dict[str, dict]:
        found: dict[str, dict] = {}
        for chunk in _batched(list(dict.fromkeys(hashes))):
            rows = fetch_dicts(
                self._conn,
                "SELECT * FROM games WHERE pgn_content_hash IN "
                f"({placeholders(len(chunk))}) ORDER BY id",
                chunk,
            )
            for row in rows:
                found.setdefault(str(row["pgn_content_hash"]), row)
        return found

    def find_by_players(self, keys: Sequence[PlayersKey]) -> dict[PlayersKey, dict]:
        wanted = set(keys)
        timestamps = list(dict.fromkeys(timestamp for timestamp, _white, _black in keys))
        found: dict[PlayersKey, dict] = {}
        for chunk in _batched(timestamps):
            rows = fetch_dicts(
                self._conn,
                "SELECT * FROM games WHERE timestamp_ms IN "
                f"({placeholders(len(chunk))}) ORDER BY id",
                chunk,
            )
            for row in rows:
                key = players_key(
                    int(row["timestamp_ms"]), str(row["white"] or ""), str(row["black"] or "")
                )
                if key in wanted:
                    found.setdefault(key, row)
        return found

    def insert_game(self, values: Mapping[str, object]) -> int:
        columns = [column for column in GAME_COLUMNS if column in values]
        row = self._conn.execute(
            f"INSERT INTO games ({', '.join(columns)}) "
            f"VALUES ({placeholders(len(columns))}) RETURNING id",
            [values[column] for column in columns],
        ).fetchone()
        if row is None:
            raise duckdb.Error("INSERT INTO games returned no id")
        return int(row[0])

    def update_game(self, game_id: int, values: Mapping[str, object]) -> None:
        columns = [
            column for column in GAME_COLUMNS if column in values and column in _UPDATABLE_COLUMNS
        ]
        if not columns:
            return
        assignments = ", ".join(f"{column} = ?" for column in columns)
        self._conn.execute(
            f"UPDATE games SET {assignments} WHERE id = ?",
            [*(values[column] for column in columns), game_id],
        )

    def existing_hashes(self, hashes: Iterable[str]) -> set[str]:
        return set(self.find_by_hashes(list(hashes)))

    def latest_timestamp_for_player(self, provider: str, username: str) -> int | None:
        name = username.strip().lower()
        row = self._conn.execute(
            "SELECT MAX(timestamp_ms) FROM games "
            "WHERE provider = ? AND (lower(white) = ? OR lower(black) = ?)",
            [provider, name, name],
        ).fetchone()
        if row is None or row[0] is None:
            return None
        return int(row[0])

    def count_games(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM games").fetchone()
        return int(row[0]) if row else 0

    def fetch_games(self) -> list[dict[str, object]]:
        return fetch_dicts(self._conn, "SELECT * FROM games ORDER BY id")
