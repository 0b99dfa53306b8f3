"""Cooperative cancellation for long-running syncs."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from gamesync.errors import SyncCancelled

Sleeper = Callable[[float], None]


class CancellationToken:
    """Thread-safe cancellation flag shared between a caller and a running sync.

    Waits go through `sleep`, which returns early and raises `SyncCancelled`
    as soon as `cancel()` is called from another thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SyncCancelled("Sync cancelled")

    def sleep(self, seconds: float) -> None:
        """Wait up to `seconds`, raising `SyncCancelled` if cancelled meanwhile."""
        if seconds <= 0:
            self.raise_if_cancelled()
            return
        if self._event.wait(seconds):
            raise SyncCancelled("Sync cancelled during wait")


def make_sleeper(
    cancel_token: CancellationToken | None,
    sleep: Sleeper | None = None,
) -> Sleeper:
    """Build the wait function used for backoff and pacing.

    Args:
        cancel_token: Token checked before and during each wait.
        sleep: Injected sleep (tests record delays with this).

    Returns:
        A callable taking seconds. Zero or negative waits only check cancellation.
    """

    if sleep is None:
        if cancel_token is not None:
            return cancel_token.sleep
        return _plain_sleep

    def _sleep(seconds: float) -> None:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        if seconds > 0:
            sleep(seconds)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

    return _sleep


def _plain_sleep(seconds: float) -> None:
    if seconds > 0:
        time.sleep(seconds)
