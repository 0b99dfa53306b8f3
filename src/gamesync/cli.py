"""Command-line entry point for running one sync or a PGN import."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from gamesync.config import get_settings
from gamesync.models import ProgressEvent, SyncMode
from gamesync.pgn_import import import_pgn_games
from gamesync.wiring import build_sync_service


def _print_event(event: ProgressEvent) -> None:
    print(f"[{event.type}] {event.percentage:5.1f}% {event.message}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gamesync")
    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Import a player's games from a provider")
    sync.add_argument("provider")
    sync.add_argument("username")
    sync.add_argument("--mode", default=SyncMode.SMART, choices=[m.value for m in SyncMode])
    sync.add_argument("--since-ms", type=int)
    sync.add_argument("--until-ms", type=int)
    sync.add_argument("--start-time-ms", type=int)
    sync.add_argument("--no-resume", action="store_true")
    sync.add_argument("--db-path")

    pgn = commands.add_parser("import-pgn", help="Import games from a PGN file")
    pgn.add_argument("path", type=Path)
    pgn.add_argument("--import-tag", default="")
    pgn.add_argument("--username", default="")
    pgn.add_argument("--db-path")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {"duckdb_path": args.db_path} if args.db_path else {}
    service = build_sync_service(get_settings(**overrides))

    if args.command == "import-pgn":
        summary = import_pgn_games(
            service.store,  # type: ignore[arg-type]
            args.path.read_text(encoding="utf-8"),
            args.import_tag,
            username=args.username,
        )
        print(summary.model_dump_json(indent=2))
        return 0 if summary.errors == 0 else 1

    result = service.sync(
        args.provider,
        args.username,
        args.mode,
        progress=_print_event,
        since_ms=args.since_ms,
        until_ms=args.until_ms,
        start_time_ms=args.start_time_ms,
        resume=not args.no_resume,
    )
    print(result.model_dump_json(indent=2))
    return 0 if result.success else 1
