"""Choose the import window for a sync."""

from __future__ import annotations

from gamesync.models import ImportWindow, SyncMode

DAY_MS = 24 * 60 * 60 * 1000


def validate_custom_range(since_ms: int | None, until_ms: int | None) -> None:
    """Reject a custom range without both bounds or with `since > until`."""
    if since_ms is None or until_ms is None:
        raise ValueError("custom sync requires both since_ms and until_ms")
    if since_ms > until_ms:
        raise ValueError(f"custom sync range is inverted: since={since_ms} > until={until_ms}")


def determine_import_range(
    mode: SyncMode | str,
    *,
    now_ms: int,
    latest_local_ms: int | None = None,
    since_ms: int | None = None,
    until_ms: int | None = None,
    start_time_ms: int | None = None,
    smart_window_days: int = 90,
) -> ImportWindow:
    """Resolve the inclusive `[since, until]` window for a sync mode.

    Args:
        mode: `smart`, `custom` or `full`.
        now_ms: Current time; the upper bound for smart and full syncs.
        latest_local_ms: Newest stored game for the player (smart mode).
        since_ms: Caller window start (custom mode).
        until_ms: Caller window end (custom mode).
        start_time_ms: Start of history for full mode (explicit or account creation).
        smart_window_days: How far back a smart sync may reach.

    Returns:
        The window and a short reason for logging.

    Raises:
        ValueError: Unknown mode or invalid custom range.
    """

    resolved = SyncMode(mode)
    if resolved == SyncMode.CUSTOM:
        validate_custom_range(since_ms, until_ms)
        return ImportWindow(
            since_ms=since_ms,  # type: ignore[arg-type]
            until_ms=until_ms,  # type: ignore[arg-type]
            reason="custom range",
        )
    if resolved == SyncMode.FULL:
        start = start_time_ms if start_time_ms and start_time_ms > 0 else 0
        return ImportWindow(
            since_ms=min(start, now_ms),
            until_ms=now_ms,
            reason="full history" if start == 0 else "full history from account start",
        )
    floor = now_ms - smart_window_days * DAY_MS
    if latest_local_ms is None:
        return ImportWindow(
            since_ms=floor, until_ms=now_ms, reason=f"last {smart_window_days} days"
        )
    since = min(max(latest_local_ms + 1, floor), now_ms)
    reason = "after latest local game" if since > floor else f"last {smart_window_days} days"
    return ImportWindow(since_ms=since, until_ms=now_ms, reason=reason)
