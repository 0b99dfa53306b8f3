"""DuckDB-backed storage."""

from gamesync.db.duckdb_game_repository import DuckDbGameRepository
from gamesync.db.duckdb_import_progress_repository import DuckDbImportProgressRepository
from gamesync.db.duckdb_local_store import DuckDbLocalStore
from gamesync.db.duckdb_store import get_connection, init_schema

__all__ = [
    "DuckDbGameRepository",
    "DuckDbImportProgressRepository",
    "DuckDbLocalStore",
    "get_connection",
    "init_schema",
]
