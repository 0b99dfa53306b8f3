from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import requests

from gamesync.chess_clients import (
    ChesscomClient,
    ChesscomClientContext,
    LichessClient,
    LichessClientContext,
)
from gamesync.config import ChesscomSettings, LichessSettings, Settings, SyncSettings


@dataclass(slots=True)
class FakeResponse:
    status_code: int = 200
    json_data: object = None
    headers: dict = field(default_factory=dict)
    chunks: list[bytes] = field(default_factory=list)
    closed: bool = False

    def json(self) -> object:
        return self.json_data if self.json_data is not None else {}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def iter_content(self, chunk_size: int = 1, decode_unicode: bool = False):
        for chunk in self.chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeCall:
    url: str
    params: dict | None
    headers: dict | None
    stream: bool


class FakeSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: Iterable[FakeResponse | Exception] = ()) -> None:
        self.queue = list(responses)
        self.calls: list[FakeCall] = []

    def queue_response(self, response: FakeResponse | Exception) -> None:
        self.queue.append(response)

    def get(self, url, params=None, headers=None, timeout=None, stream=False):
        self.calls.append(
            FakeCall(
                url=url,
                params=dict(params) if params else None,
                headers=dict(headers) if headers else None,
                stream=stream,
            )
        )
        if not self.queue:
            raise AssertionError(f"Unexpected request to {url}")
        item = self.queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def urls(self) -> list[str]:
        return [call.url for call in self.calls]


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def ndjson_response(*lines: object, split_at: int | None = None) -> FakeResponse:
    """Build a streamed NDJSON body; dicts are dumped, strings sent verbatim."""
    text = "\n".join(line if isinstance(line, str) else json.dumps(line) for line in lines)
    body = text.encode("utf-8")
    if split_at is None:
        chunks = [body[i : i + 64] for i in range(0, len(body), 64)]
    else:
        chunks = [body[:split_at], body[split_at:]]
    return FakeResponse(
        status_code=200,
        headers={"Content-Type": "application/x-ndjson"},
        chunks=chunks,
    )


def make_settings(**overrides) -> Settings:
    settings = Settings(
        duckdb_path=Path(":memory:"),
        log_level="INFO",
        lichess=LichessSettings(
            token=None,
            base_url="https://lichess.test",
            max_retries=3,
            retry_backoff_ms=1000,
            rate_limit_backoff_ms=2000,
            chunk_days=90,
            pacing_ms=0,
            max_games=None,
            perf_type=None,
            abort_on_rate_limit=False,
            timeout_s=5,
        ),
        chesscom=ChesscomSettings(
            base_url="https://chesscom.test/pub",
            max_retries=2,
            retry_backoff_ms=1000,
            pacing_ms=0,
            timeout_s=5,
            user_agent="gamesync-tests",
        ),
        sync=SyncSettings(smart_window_days=90, hero_import_tag="hero"),
    )
    for name, value in overrides.items():
        setattr(settings, name, value)
    return settings


def make_chesscom_client(
    session: FakeSession, sleep=None, settings: Settings | None = None
) -> ChesscomClient:
    return ChesscomClient(
        ChesscomClientContext(
            settings=settings or make_settings(),
            logger=logging.getLogger("gamesync.tests.chesscom"),
            session=session,
            sleep=sleep or SleepRecorder(),
        )
    )


def make_lichess_client(
    session: FakeSession, sleep=None, settings: Settings | None = None
) -> LichessClient:
    return LichessClient(
        LichessClientContext(
            settings=settings or make_settings(),
            logger=logging.getLogger("gamesync.tests.lichess"),
            session=session,
            sleep=sleep or SleepRecorder(),
        )
    )
