"""Sync orchestration: range selection, the chunk loop and checkpointing."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping

from gamesync.cancellation import CancellationToken, Sleeper, make_sleeper
from gamesync.config import SyncSettings
from gamesync.errors import (
    InvalidUsernameError,
    ProviderError,
    SyncCancelled,
    UnsupportedProviderError,
)
from gamesync.models import (
    FailedChunk,
    ImportCheckpoint,
    ImportStatus,
    ImportWindow,
    ProgressCallback,
    ProgressEventType,
    Provider,
    SyncMode,
    SyncResult,
    SyncState,
)
from gamesync.ports import LocalGameStore
from gamesync.sync.base_strategy import ChunkPlan, SyncStrategy
from gamesync.sync.progress import ProgressEmitter
from gamesync.sync.range_selection import determine_import_range, validate_custom_range
from gamesync.utils import Now, get_logger

logger = get_logger(__name__)

USERNAME_RE = re.compile(r"^[A-Za-z0-9_-]{1,50}$")


def _resolve_provider(provider: Provider | str) -> Provider:
    try:
        return Provider.coerce(provider)
    except (AttributeError, ValueError) as exc:
        raise UnsupportedProviderError(f"Unsupported provider: {provider!r}") from exc


def _validate_username(username: object) -> str:
    if not isinstance(username, str) or not USERNAME_RE.match(username.strip()):
        raise InvalidUsernameError(f"Invalid username: {username!r}")
    return username.strip()


def _resolve_mode(mode: SyncMode | str) -> SyncMode:
    try:
        return SyncMode(mode)
    except ValueError as exc:
        raise ValueError(f"Unknown sync mode: {mode!r}") from exc


class _SyncRun:
    """State for one `GameSyncService.sync` call."""

    def __init__(
        self,
        service: GameSyncService,
        strategy: SyncStrategy,
        username: str,
        emitter: ProgressEmitter,
        cancel_token: CancellationToken | None,
    ) -> None:
        self.service = service
        self.strategy = strategy
        self.provider = strategy.provider
        self.username = username
        self.emitter = emitter
        self.cancel_token = cancel_token
        self.sleep: Sleeper = make_sleeper(cancel_token, service.sleep)
        self.state = SyncState.IDLE
        self.parse_errors = 0
        self.checkpoint: ImportCheckpoint | None = None

    @property
    def store(self) -> LocalGameStore:
        return self.service.store

    def transition(self, state: SyncState) -> None:
        logger.debug(
            "%s/%s sync state %s -> %s", self.provider, self.username, self.state, state
        )
        self.state = state

    def check_cancelled(self) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()

    def save(self, checkpoint: ImportCheckpoint) -> None:
        checkpoint.touch()
        self.store.save_import_progress(self.provider, self.username, checkpoint)

    def result(self, **overrides: object) -> SyncResult:
        checkpoint = self.checkpoint
        values: dict[str, object] = {
            "total_imported": checkpoint.total_imported if checkpoint else 0,
            "failed_chunks": list(checkpoint.failed_chunks) if checkpoint else [],
            "parse_errors": self.parse_errors,
        }
        values.update(overrides)
        return SyncResult(**values)


class GameSyncService:
    """Imports a player's games from a provider into the local store.

    One `sync` call runs on the calling thread. Different `(provider, username)`
    pairs may sync concurrently on separate threads against one shared store.

    Example:
        >>> service = build_sync_service()
        >>> result = service.sync("lichess", "alice", mode="smart")
    """

    def __init__(
        self,
        store: LocalGameStore,
        strategies: Mapping[Provider, SyncStrategy],
        *,
        sync_settings: SyncSettings | None = None,
        now: Callable[[], int] = Now.as_milliseconds,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.store = store
        self.strategies = dict(strategies)
        self.sync_settings = sync_settings or SyncSettings()
        self.now = now
        self.sleep = sleep

    def sync(  # pylint: disable=too-many-arguments
        self,
        provider: Provider | str,
        username: str,
        mode: SyncMode | str = SyncMode.SMART,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        *,
        since_ms: int | None = None,
        until_ms: int | None = None,
        start_time_ms: int | None = None,
        resume: bool = True,
    ) -> SyncResult:
        """Import games for `username` from `provider`.

        Args:
            provider: `lichess` or `chesscom` (labels such as ``"Chess.com"`` accepted).
            username: Player to import.
            mode: `smart`, `custom` or `full`.
            progress: Receives progress events.
            cancel_token: Cooperative cancellation; the sync pauses at the next
                chunk boundary, NDJSON line or wait.
            since_ms: Window start for `custom` mode.
            until_ms: Window end for `custom` mode.
            start_time_ms: History start for `full` mode.
            resume: Resume an unfinished checkpoint instead of starting over.

        Returns:
            The outcome. Provider failures, cancellation and parse errors are
            reported here rather than raised.

        Raises:
            UnsupportedProviderError: No strategy is registered for the provider.
            InvalidUsernameError: The username is empty or malformed.
            ValueError: Unknown mode or invalid custom range.
        """

        resolved = _resolve_provider(provider)
        strategy = self.strategies.get(resolved)
        if strategy is None:
            raise UnsupportedProviderError(f"No sync adapter for provider {resolved}")
        name = _validate_username(username)
        sync_mode = _resolve_mode(mode)
        if sync_mode == SyncMode.CUSTOM:
            validate_custom_range(since_ms, until_ms)

        emitter = ProgressEmitter(progress, str(resolved), name)
        run = _SyncRun(self, strategy, name, emitter, cancel_token)
        emitter.emit(ProgressEventType.START, f"Starting {resolved} sync for {name}")
        try:
            checkpoint = self._open_checkpoint(
                run, sync_mode, since_ms, until_ms, start_time_ms, resume
            )
            run.checkpoint = checkpoint
            run.transition(SyncState.RANGE_DETERMINED)
            strategy.prepare(checkpoint, name, cancel_token)
            self._emit_range(run, checkpoint)
            self._run_chunks(run, checkpoint)
        except SyncCancelled:
            return self._pause_cancelled(run)
        except ProviderError as exc:
            return self._abort(run, exc)
        return self._complete(run, checkpoint)

    def _open_checkpoint(  # pylint: disable=too-many-arguments
        self,
        run: _SyncRun,
        mode: SyncMode,
        since_ms: int | None,
        until_ms: int | None,
        start_time_ms: int | None,
        resume: bool,
    ) -> ImportCheckpoint:
        existing = self.store.load_import_progress(run.provider, run.username)
        if existing is not None and existing.is_resumable and resume:
            existing.status = ImportStatus.IN_PROGRESS
            run.emitter.emit(
                ProgressEventType.RESUME,
                f"Resuming {run.provider} sync from {Now.format_date(existing.current_since)}",
                total=existing.total_imported,
                percentage=0.0,
                since=existing.target_since,
                until=existing.target_until,
            )
            logger.info(
                "Resuming %s sync for %s (imported so far: %s)",
                run.provider,
                run.username,
                existing.total_imported,
            )
            return existing
        if existing is not None:
            self.store.clear_import_progress(run.provider, run.username)

        window = self._select_window(run, mode, since_ms, until_ms, start_time_ms)
        checkpoint = run.strategy.start_checkpoint(run.username, window, str(mode))
        run.save(checkpoint)
        return checkpoint

    def _select_window(  # pylint: disable=too-many-arguments
        self,
        run: _SyncRun,
        mode: SyncMode,
        since_ms: int | None,
        until_ms: int | None,
        start_time_ms: int | None,
    ) -> ImportWindow:
        latest = None
        if mode == SyncMode.SMART:
            latest = self.store.get_latest_game_timestamp(run.provider, run.username)
        if mode == SyncMode.FULL and not start_time_ms:
            start_time_ms = run.strategy.full_history_start(run.username)
        window = determine_import_range(
            mode,
            now_ms=self.now(),
            latest_local_ms=latest,
            since_ms=since_ms,
            until_ms=until_ms,
            start_time_ms=start_time_ms,
            smart_window_days=self.sync_settings.smart_window_days,
        )
        logger.info(
            "%s sync window for %s: %s to %s (%s)",
            run.provider,
            run.username,
            window.since_ms,
            window.until_ms,
            window.reason,
        )
        return window

    def _emit_range(self, run: _SyncRun, checkpoint: ImportCheckpoint) -> None:
        run.emitter.emit(
            ProgressEventType.RANGE_DETERMINED,
            "Importing games from "
            f"{Now.format_date(checkpoint.target_since)} to "
            f"{Now.format_date(checkpoint.target_until)}",
            total=checkpoint.total_imported,
            percentage=run.strategy.percentage(checkpoint),
            since=checkpoint.target_since,
            until=checkpoint.target_until,
        )

    def _run_chunks(self, run: _SyncRun, checkpoint: ImportCheckpoint) -> None:
        strategy = run.strategy
        while strategy.has_next(checkpoint):
            run.check_cancelled()
            plan = strategy.next_chunk(checkpoint)
            run.transition(SyncState.FETCHING_CHUNK)
            run.emitter.emit(
                ProgressEventType.PROGRESS,
                f"Fetching {plan.label}",
                total=checkpoint.total_imported,
                percentage=strategy.percentage(checkpoint),
                since=plan.since_ms,
                until=plan.until_ms,
            )
            try:
                fetched = strategy.fetch(plan, run.username, run.cancel_token)
            except ProviderError as exc:
                self._record_chunk_error(run, checkpoint, plan, exc)
                if strategy.aborts_on(exc):
                    raise
                continue
            summary = self.store.bulk_upsert_games(fetched.records)
            checkpoint.total_imported += summary.total
            run.parse_errors += fetched.parse_errors
            strategy.advance(checkpoint, plan)
            run.save(checkpoint)
            run.transition(SyncState.CHUNK_SUCCESS)
            run.emitter.emit(
                ProgressEventType.CHUNK_COMPLETE,
                f"Imported {summary.total} games from {plan.label}",
                total=checkpoint.total_imported,
                percentage=strategy.percentage(checkpoint),
                count=summary.total,
                since=plan.since_ms,
                until=plan.until_ms,
            )
            if strategy.has_next(checkpoint):
                run.sleep(strategy.pacing_s)

    @staticmethod
    def _failed_chunk(plan: ChunkPlan, exc: Exception) -> FailedChunk:
        message = str(exc)
        if plan.cursor:
            message = f"{message} ({plan.cursor})"
        return FailedChunk(since=plan.since_ms, until=plan.until_ms, error=message)

    def _record_chunk_error(
        self, run: _SyncRun, checkpoint: ImportCheckpoint, plan: ChunkPlan, exc: ProviderError
    ) -> None:
        logger.warning("%s chunk %s failed: %s", run.provider, plan.label, exc)
        checkpoint.failed_chunks.append(self._failed_chunk(plan, exc))
        run.strategy.advance(checkpoint, plan)
        run.save(checkpoint)
        run.transition(SyncState.CHUNK_ERROR)
        run.emitter.emit(
            ProgressEventType.CHUNK_ERROR,
            f"Failed to fetch {plan.label}: {exc}",
            total=checkpoint.total_imported,
            percentage=run.strategy.percentage(checkpoint),
            error=str(exc),
            since=plan.since_ms,
            until=plan.until_ms,
        )

    def _pause(self, run: _SyncRun) -> None:
        if run.checkpoint is None:
            return
        run.checkpoint.status = ImportStatus.PAUSED
        run.save(run.checkpoint)

    def _pause_cancelled(self, run: _SyncRun) -> SyncResult:
        self._pause(run)
        run.transition(SyncState.CANCELLED)
        total = run.checkpoint.total_imported if run.checkpoint else 0
        logger.info("%s sync for %s cancelled", run.provider, run.username)
        run.emitter.emit(
            ProgressEventType.CANCELLED,
            "Sync cancelled; progress saved",
            total=total,
        )
        return run.result(cancelled=True, success=False)

    def _abort(self, run: _SyncRun, exc: ProviderError) -> SyncResult:
        logger.error("%s sync for %s failed: %s", run.provider, run.username, exc)
        self._pause(run)
        run.transition(SyncState.FAILED)
        run.emitter.emit(
            ProgressEventType.FAILED,
            f"Sync failed: {exc}",
            total=run.checkpoint.total_imported if run.checkpoint else 0,
            error=str(exc),
        )
        return run.result(success=False, error=str(exc))

    def _complete(self, run: _SyncRun, checkpoint: ImportCheckpoint) -> SyncResult:
        self.store.clear_import_progress(run.provider, run.username)
        run.transition(SyncState.COMPLETED)
        failed = len(checkpoint.failed_chunks)
        message = f"Imported {checkpoint.total_imported} games"
        if failed:
            message = f"{message} ({failed} chunks failed)"
        logger.info("%s sync for %s complete: %s", run.provider, run.username, message)
        run.emitter.emit(
            ProgressEventType.SUCCESS,
            message,
            total=checkpoint.total_imported,
        )
        return run.result(success=failed == 0)
