"""Progress reporting for a running sync."""

from __future__ import annotations

from gamesync.models import ProgressCallback, ProgressEvent, ProgressEventType, clamp_percentage
from gamesync.utils import get_logger

logger = get_logger(__name__)

_RUNNING_EVENTS = frozenset({ProgressEventType.PROGRESS, ProgressEventType.CHUNK_COMPLETE})


def ratio_percentage(done: int, total: int) -> float:
    """Percentage of `done` out of `total`; 0 when there is nothing to do."""
    if total <= 0:
        return 0.0
    return clamp_percentage(100.0 * done / total)


class ProgressEmitter:
    """Build and deliver `ProgressEvent`s for one sync.

    Percentages on running events never decrease, and `success` always
    reports 100. A failing callback is logged and does not stop the sync.
    """

    def __init__(
        self, callback: ProgressCallback | None, provider: str, username: str
    ) -> None:
        self._callback = callback
        self._provider = provider
        self._username = username
        self._last_percentage = 0.0

    def emit(
        self,
        event_type: ProgressEventType,
        message: str,
        *,
        total: int = 0,
        percentage: float | None = None,
        **fields: object,
    ) -> ProgressEvent:
        if event_type == ProgressEventType.SUCCESS:
            value = 100.0
        elif event_type in _RUNNING_EVENTS:
            value = max(self._last_percentage, clamp_percentage(percentage))
        else:
            value = clamp_percentage(
                self._last_percentage if percentage is None else percentage
            )
        if event_type in _RUNNING_EVENTS or event_type == ProgressEventType.SUCCESS:
            self._last_percentage = value
        event = ProgressEvent(
            type=event_type,
            message=message,
            total=total,
            percentage=value,
            provider=self._provider,
            username=self._username,
            **fields,
        )
        self._deliver(event)
        return event

    def _deliver(self, event: ProgressEvent) -> None:
        if self._callback is None:
            return
        try:
            self._callback(event)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Progress callback failed for %s event", event.type)
