"""Progress events streamed to the caller during a sync."""

from __future__ import annotations

import math
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, field_validator

from gamesync.models.enums import ProgressEventType


def clamp_percentage(value: float | None) -> float:
    """Clamp a percentage into [0, 100]; NaN and infinities become 0."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(0.0, min(100.0, number))


class ProgressEvent(BaseModel):
    """One progress notification.

    Attributes:
        type: Event tag.
        message: Human-readable message.
        total: Running count of imported records.
        percentage: Completion estimate, always within [0, 100].
        count: Records imported by the chunk that just completed.
        error: Error message for chunk failures.
    """

    model_config = ConfigDict(use_enum_values=True)

    type: ProgressEventType
    message: str
    total: int = 0
    percentage: float = 0.0
    count: int | None = None
    error: str | None = None
    since: int | None = None
    until: int | None = None
    provider: str | None = None
    username: str | None = None

    @field_validator("percentage", mode="before")
    @classmethod
    def _clamp(cls, value: object) -> float:
        return clamp_percentage(value)  # type: ignore[arg-type]


ProgressCallback = Callable[[ProgressEvent], None]
