"""DuckDB connection handling and schema for the local game store."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import duckdb

from gamesync.utils.logger import get_logger

logger = get_logger(__name__)

MEMORY_PATH = ":memory:"

GAMES_SEQUENCE = "CREATE SEQUENCE IF NOT EXISTS games_id_seq START 1;"

GAMES_SCHEMA = """
CREATE TABLE IF NOT EXISTS games (
    id BIGINT PRIMARY KEY DEFAULT nextval('games_id_seq'),
    provider TEXT NOT NULL,
    provider_game_id TEXT,
    pgn_content_hash TEXT NOT NULL,
    timestamp_ms BIGINT NOT NULL,
    white TEXT,
    black TEXT,
    white_title TEXT,
    black_title TEXT,
    white_rating INTEGER,
    black_rating INTEGER,
    result TEXT,
    eco TEXT,
    opening_name TEXT,
    time_control_raw TEXT,
    speed_class TEXT,
    variant TEXT,
    rated BOOLEAN,
    pgn TEXT,
    site TEXT,
    source_url TEXT,
    event TEXT,
    date TEXT,
    is_hero BOOLEAN DEFAULT FALSE,
    import_tag TEXT,
    analyzed BOOLEAN DEFAULT FALSE,
    analysis_status TEXT DEFAULT 'idle',
    imported_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

IMPORT_PROGRESS_SCHEMA = """
CREATE TABLE IF NOT EXISTS import_progress (
    provider TEXT NOT NULL,
    username_lower TEXT NOT NULL,
    username TEXT,
    mode TEXT,
    target_since BIGINT,
    target_until BIGINT,
    current_since BIGINT,
    cursor INTEGER,
    total_imported BIGINT,
    status TEXT,
    failed_chunks TEXT,
    last_updated BIGINT,
    PRIMARY KEY (provider, username_lower)
);
"""


def get_connection(db_path: Path | str) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection, creating the parent directory for file databases."""
    if str(db_path) == MEMORY_PATH:
        return duckdb.connect(MEMORY_PATH)
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Opening DuckDB at %s", path)
    return duckdb.connect(str(path))


def init_schema(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute(GAMES_SEQUENCE)
    conn.execute(GAMES_SCHEMA)
    conn.execute(IMPORT_PROGRESS_SCHEMA)


def fetch_dicts(
    conn: duckdb.DuckDBPyConnection,
    sql: str,
    params: Sequence[object] | None = None,
) -> list[dict[str, object]]:
    """Run a query and return rows as dictionaries."""
    result = conn.execute(sql, list(params or []))
    columns = [desc[0] for desc in result.description]
    return [dict(zip(columns, row, strict=True)) for row in result.fetchall()]


def placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))
