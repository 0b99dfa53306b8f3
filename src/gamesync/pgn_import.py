"""Import games pasted as raw PGN text."""

from __future__ import annotations

from gamesync.models import CanonicalGameRecord, PgnImportSummary, Provider
from gamesync.normalizer import ProviderFields, build_canonical_record
from gamesync.pgn_headers import parse_pgn
from gamesync.pgn_utils import split_pgn_chunks
from gamesync.ports import PgnImportStore
from gamesync.utils import funclogger, get_logger

logger = get_logger(__name__)


def parse_pgn_records(
    raw_pgn: str,
    *,
    username: str = "",
    import_tag: str = "",
    now_ms: int | None = None,
) -> tuple[list[CanonicalGameRecord], int]:
    """Split a paste into games and map each one to a canonical record.

    Returns:
        The records in paste order and the number of games that failed to parse.
    """

    records: list[CanonicalGameRecord] = []
    errors = 0
    for chunk in split_pgn_chunks(raw_pgn):
        parsed = parse_pgn(chunk, now_ms=now_ms)
        if parsed is None:
            errors += 1
            continue
        records.append(
            build_canonical_record(
                parsed,
                ProviderFields(provider=Provider.PGN),
                username=username,
                import_tag=import_tag,
                now_ms=now_ms,
            )
        )
    return records, errors


@funclogger
def import_pgn_games(
    store: PgnImportStore,
    raw_pgn: str,
    import_tag: str = "",
    now_ms: int | None = None,
    *,
    username: str = "",
) -> PgnImportSummary:
    """Merge every game in a multi-game PGN paste into the store.

    Games repeated within the paste are imported once. Games whose content hash
    is already stored (from any provider) count as skipped and are not rewritten.

    Args:
        store: Local store that can also look up existing content hashes.
        raw_pgn: One or more PGN games separated by blank lines.
        import_tag: Grouping label stored on new records.
        now_ms: Clock override for games without a usable date.
        username: Player whose games these are, used for `is_hero`.

    Returns:
        Counts of imported, skipped and unparseable games.

    Example:
        >>> summary = import_pgn_games(store, open("games.pgn").read(), "club")
        >>> summary.imported, summary.skipped, summary.errors
        (12, 3, 1)
    """

    records, errors = parse_pgn_records(
        raw_pgn, username=username, import_tag=import_tag, now_ms=now_ms
    )
    unique: dict[str, CanonicalGameRecord] = {}
    for record in records:
        unique.setdefault(record.pgn_content_hash, record)

    existing = store.find_existing_hashes(unique)
    fresh = [record for key, record in unique.items() if key not in existing]
    skipped = len(records) - len(fresh)
    summary = store.bulk_upsert_games(fresh) if fresh else None
    imported = summary.total if summary is not None else 0

    if errors:
        logger.info("Skipped %s unparseable games in PGN import", errors)
    logger.info("PGN import: %s imported, %s skipped", imported, skipped)
    return PgnImportSummary(imported=imported, skipped=skipped, errors=errors)
