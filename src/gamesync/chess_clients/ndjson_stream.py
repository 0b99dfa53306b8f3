"""Incremental NDJSON decoding for streamed HTTP bodies."""

from __future__ import annotations

import codecs
import json
from collections.abc import Callable, Iterable, Iterator

from gamesync.errors import PgnParseError

ParseErrorHandler = Callable[[PgnParseError], None]


def _decode_line(line: str, on_error: ParseErrorHandler | None) -> dict | None:
    text = line.strip()
    if not text:
        return None
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        if on_error is not None:
            on_error(PgnParseError(f"Malformed NDJSON line: {exc.msg} in {text[:80]!r}"))
        return None
    if not isinstance(value, dict):
        if on_error is not None:
            on_error(PgnParseError(f"NDJSON line is not an object: {text[:80]!r}"))
        return None
    return value


def iter_ndjson(
    byte_chunks: Iterable[bytes | str],
    on_error: ParseErrorHandler | None = None,
) -> Iterator[dict]:
    """Yield one object per newline-delimited JSON line.

    Chunks may split lines and multi-byte characters anywhere; partial lines are
    buffered until their newline arrives, and a final line without a trailing
    newline is decoded at end of stream. Malformed lines are reported to
    `on_error` and skipped.

    Args:
        byte_chunks: Raw body chunks, e.g. `response.iter_content(...)`.
        on_error: Called with a `PgnParseError` for each malformed line.

    Yields:
        Decoded JSON objects, in stream order.
    """

    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    for chunk in byte_chunks:
        if not chunk:
            continue
        buffer += chunk if isinstance(chunk, str) else decoder.decode(chunk)
        *lines, buffer = buffer.split("\n")
        for line in lines:
            value = _decode_line(line, on_error)
            if value is not None:
                yield value
    buffer += decoder.decode(b"", final=True)
    value = _decode_line(buffer, on_error)
    if value is not None:
        yield value
