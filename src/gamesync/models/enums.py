"""String enums shared across providers, the store and the sync loop."""

from __future__ import annotations

from enum import StrEnum


class Provider(StrEnum):
    """Origin of a canonical game record."""

    LICHESS = "lichess"
    CHESSCOM = "chesscom"
    PGN = "pgn"

    @classmethod
    def coerce(cls, value: str | Provider) -> Provider:
        """Resolve a provider from a case-insensitive label such as ``"Chess.com"``."""
        if isinstance(value, Provider):
            return value
        normalized = value.strip().lower().replace(".", "").replace("-", "").replace("_", "")
        return cls(normalized)


class SpeedClass(StrEnum):
    """Time-control bucket derived from the PGN `TimeControl` tag."""

    BULLET = "bullet"
    BLITZ = "blitz"
    RAPID = "rapid"
    CLASSICAL = "classical"
    STANDARD = "standard"


class SyncMode(StrEnum):
    """How the import window is chosen."""

    SMART = "smart"
    CUSTOM = "custom"
    FULL = "full"


class ImportStatus(StrEnum):
    """Lifecycle status of a persisted checkpoint."""

    IN_PROGRESS = "in-progress"
    PAUSED = "paused"
    COMPLETED = "completed"


class ProgressEventType(StrEnum):
    """Tags carried by progress events."""

    START = "start"
    RANGE_DETERMINED = "range-determined"
    PROGRESS = "progress"
    CHUNK_COMPLETE = "chunk-complete"
    CHUNK_ERROR = "chunk-error"
    RESUME = "resume"
    CANCELLED = "cancelled"
    SUCCESS = "success"
    FAILED = "failed"


class SyncState(StrEnum):
    """States of the per-provider sync state machine."""

    IDLE = "idle"
    RANGE_DETERMINED = "range-determined"
    FETCHING_CHUNK = "fetching-chunk"
    CHUNK_SUCCESS = "chunk-success"
    CHUNK_ERROR = "chunk-error"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
