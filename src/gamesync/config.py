from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_DATA_DIR = Path("data")
DEFAULT_USER_AGENT = "gamesync/0.1 (+https://github.com/gamesync/gamesync)"


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip()


def _env_optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    return int(value)


def _env_optional_int(name: str) -> int | None:
    value = os.getenv(name, "").strip()
    return int(value) if value else None


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class LichessSettings:
    """Lichess-specific configuration."""

    token: str | None = field(default_factory=lambda: _env_optional("LICHESS_TOKEN"))
    base_url: str = field(
        default_factory=lambda: _env_str("LICHESS_BASE_URL", "https://lichess.org")
    )
    max_retries: int = field(default_factory=lambda: _env_int("LICHESS_MAX_RETRIES", 3))
    retry_backoff_ms: int = field(
        default_factory=lambda: _env_int("LICHESS_RETRY_BACKOFF_MS", 1000)
    )
    rate_limit_backoff_ms: int = field(
        default_factory=lambda: _env_int("LICHESS_RATE_LIMIT_BACKOFF_MS", 2000)
    )
    chunk_days: int = field(default_factory=lambda: _env_int("LICHESS_CHUNK_DAYS", 90))
    pacing_ms: int = field(default_factory=lambda: _env_int("LICHESS_PACING_MS", 1000))
    max_games: int | None = field(default_factory=lambda: _env_optional_int("LICHESS_MAX_GAMES"))
    perf_type: str | None = field(default_factory=lambda: _env_optional("LICHESS_PERF_TYPE"))
    abort_on_rate_limit: bool = field(
        default_factory=lambda: _env_flag("LICHESS_ABORT_ON_RATE_LIMIT", False)
    )
    timeout_s: int = field(default_factory=lambda: _env_int("LICHESS_TIMEOUT_S", 30))


@dataclass(slots=True)
class ChesscomSettings:
    """Chess.com-specific configuration."""

    base_url: str = field(
        default_factory=lambda: _env_str("CHESSCOM_BASE_URL", "https://api.chess.com/pub")
    )
    max_retries: int = field(default_factory=lambda: _env_int("CHESSCOM_MAX_RETRIES", 2))
    retry_backoff_ms: int = field(
        default_factory=lambda: _env_int("CHESSCOM_RETRY_BACKOFF_MS", 1000)
    )
    pacing_ms: int = field(default_factory=lambda: _env_int("CHESSCOM_PACING_MS", 350))
    timeout_s: int = field(default_factory=lambda: _env_int("CHESSCOM_TIMEOUT_S", 20))
    user_agent: str = field(
        default_factory=lambda: _env_str("CHESSCOM_USER_AGENT", DEFAULT_USER_AGENT)
    )


@dataclass(slots=True)
class SyncSettings:
    """Range selection and labelling for provider syncs."""

    smart_window_days: int = field(
        default_factory=lambda: _env_int("GAMESYNC_SMART_WINDOW_DAYS", 90)
    )
    hero_import_tag: str = field(
        default_factory=lambda: _env_str("GAMESYNC_HERO_IMPORT_TAG", "hero")
    )


@dataclass(slots=True)
class Settings:
    """Central configuration for provider syncs and the local store."""

    duckdb_path: Path = field(
        default_factory=lambda: Path(
            os.getenv("GAMESYNC_DUCKDB_PATH", str(DEFAULT_DATA_DIR / "gamesync.duckdb"))
        )
    )
    log_level: str = field(default_factory=lambda: _env_str("GAMESYNC_LOG_LEVEL", "INFO"))

    lichess: LichessSettings = field(default_factory=LichessSettings)
    chesscom: ChesscomSettings = field(default_factory=ChesscomSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)

    @property
    def data_dir(self) -> Path:
        return self.duckdb_path.parent

    def ensure_dirs(self) -> None:
        if str(self.duckdb_path) == ":memory:":
            return
        self.data_dir.mkdir(parents=True, exist_ok=True)


def _raise_on_unexpected_kwargs(kwargs: dict[str, object]) -> None:
    known = {f.name for f in fields(Settings)}
    unexpected = [name for name in kwargs if name not in known]
    if unexpected:
        raise TypeError(f"get_settings() got an unexpected keyword argument '{unexpected[0]}'")


def get_settings(**overrides: object) -> Settings:
    """Load `.env`, build settings from the environment and apply overrides.

    Args:
        **overrides: Top-level `Settings` fields to replace.

    Returns:
        Configured settings with the data directory created.
    """

    load_dotenv()
    _raise_on_unexpected_kwargs(overrides)
    settings = Settings()
    for name, value in overrides.items():
        if name == "duckdb_path" and not isinstance(value, Path):
            value = Path(str(value))
        setattr(settings, name, value)
    settings.ensure_dirs()
    return settings
