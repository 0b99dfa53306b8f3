import tempfile
import threading
import unittest
from pathlib import Path

from gamesync.db import DuckDbLocalStore
from gamesync.dedupe import collapse_batch, identity_keys
from gamesync.dedupe.identity_keys import IdentityKind
from gamesync.map_chesscom_game__chesscom_client import map_chesscom_game
from gamesync.models import FailedChunk, ImportCheckpoint, ImportStatus, Provider
from gamesync.pgn_import import import_pgn_games
from tests.game_payloads import (
    FOOLS_MATE,
    JAN_5_2024_NOON_MS,
    canonical_record,
    chesscom_game,
    pgn_text,
)


class IdentityKeyTests(unittest.TestCase):
    def test_keys_in_priority_order(self) -> None:
        keys = identity_keys(canonical_record(white="Alice"))

        self.assertEqual(
            [key.kind for key in keys],
            [IdentityKind.PROVIDER_ID, IdentityKind.PGN_HASH, IdentityKind.TIME_PLAYERS],
        )
        self.assertEqual(keys[2].value, (JAN_5_2024_NOON_MS, "alice", "bob"))

    def test_collapse_keeps_later_record_and_identity(self) -> None:
        first = canonical_record(provider_game_id="g1", pgn_content_hash="h1", eco="A00")
        second = canonical_record(provider_game_id=None, pgn_content_hash="h1", eco="B00")

        collapsed = collapse_batch([first, second])

        self.assertEqual(len(collapsed), 1)
        self.assertEqual(collapsed[0].eco, "B00")
        self.assertEqual(collapsed[0].provider_game_id, "g1")


class GameUpsertTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = DuckDbLocalStore.open(":memory:")

    def tearDown(self) -> None:
        self.store.close()

    def test_same_batch_twice_is_idempotent(self) -> None:
        batch = [
            canonical_record(provider_game_id="g1", pgn_content_hash="h1"),
            canonical_record(
                provider_game_id="g2",
                pgn_content_hash="h2",
                timestamp_ms=JAN_5_2024_NOON_MS + 1,
            ),
        ]

        first = self.store.bulk_upsert_games(batch)
        rows_after_first = self.store.games.fetch_games()
        second = self.store.bulk_upsert_games(batch)
        rows_after_second = self.store.games.fetch_games()

        self.assertEqual((first.inserted, first.updated), (2, 0))
        self.assertEqual((second.inserted, second.updated), (0, 2))
        strip = lambda rows: [{k: v for k, v in r.items() if k != "imported_at"} for r in rows]
        self.assertEqual(strip(rows_after_first), strip(rows_after_second))

    def test_matches_by_hash_when_provider_id_differs(self) -> None:
        self.store.bulk_upsert_games([canonical_record(provider_game_id="g1", pgn_content_hash="h1")])

        summary = self.store.bulk_upsert_games(
            [canonical_record(provider_game_id=None, pgn_content_hash="h1", eco="C20")]
        )

        rows = self.store.games.fetch_games()
        self.assertEqual(summary.updated, 1)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["provider_game_id"], "g1")
        self.assertEqual(rows[0]["eco"], "C20")

    def test_matches_by_time_and_players_case_insensitively(self) -> None:
        self.store.bulk_upsert_games(
            [canonical_record(provider_game_id=None, pgn_content_hash="h1", white="Alice")]
        )

        summary = self.store.bulk_upsert_games(
            [canonical_record(provider_game_id=None, pgn_content_hash="h2", white="alice")]
        )

        self.assertEqual(summary.updated, 1)
        self.assertEqual(self.store.games.count_games(), 1)

    def test_update_keeps_analysis_and_hero_flags(self) -> None:
        self.store.bulk_upsert_games([canonical_record(is_hero=True, import_tag="hero")])
        self.store._conn.execute(
            "UPDATE games SET analyzed = TRUE, analysis_status = 'done'"
        )

        self.store.bulk_upsert_games([canonical_record(is_hero=False, import_tag="")])

        row = self.store.games.fetch_games()[0]
        self.assertTrue(row["analyzed"])
        self.assertEqual(row["analysis_status"], "done")
        self.assertTrue(row["is_hero"])
        self.assertEqual(row["import_tag"], "hero")

    def test_latest_timestamp_is_per_provider_and_player(self) -> None:
        self.store.bulk_upsert_games(
            [
                canonical_record(provider_game_id="g1", pgn_content_hash="h1", white="Alice"),
                canonical_record(
                    provider_game_id="g2",
                    pgn_content_hash="h2",
                    timestamp_ms=JAN_5_2024_NOON_MS + 5,
                    white="carol",
                ),
            ]
        )

        self.assertEqual(
            self.store.get_latest_game_timestamp(Provider.LICHESS, "ALICE"), JAN_5_2024_NOON_MS
        )
        self.assertIsNone(self.store.get_latest_game_timestamp(Provider.CHESSCOM, "alice"))

    def test_concurrent_batches_from_two_threads(self) -> None:
        def _upsert(prefix: str) -> None:
            for index in range(5):
                self.store.bulk_upsert_games(
                    [
                        canonical_record(
                            provider_game_id=f"{prefix}{index}",
                            pgn_content_hash=f"{prefix}h{index}",
                            timestamp_ms=JAN_5_2024_NOON_MS + index,
                            white=prefix,
                        )
                    ]
                )

        threads = [threading.Thread(target=_upsert, args=(name,)) for name in ("a", "b")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(self.store.games.count_games(), 10)


class PgnImportTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = DuckDbLocalStore.open(":memory:")

    def tearDown(self) -> None:
        self.store.close()

    def test_import_counts_errors_duplicates_and_existing(self) -> None:
        first = pgn_text("alice", "bob")
        second = pgn_text("carol", "dave", result="0-1", moves=FOOLS_MATE)
        broken = pgn_text("x", "y", moves="1. e4 e5 2. Ke7 *")
        paste = "\n\n".join([first, second, first, broken])

        summary = import_pgn_games(self.store, paste, "club")

        self.assertEqual((summary.imported, summary.skipped, summary.errors), (2, 1, 1))
        rows = self.store.games.fetch_games()
        self.assertEqual({row["provider"] for row in rows}, {"pgn"})
        self.assertEqual({row["import_tag"] for row in rows}, {"club"})

        again = import_pgn_games(self.store, paste, "club")
        self.assertEqual((again.imported, again.skipped, again.errors), (0, 3, 1))

    def test_cross_provider_dedup_by_hash(self) -> None:
        text = pgn_text("alice", "bob")
        record = map_chesscom_game(
            chesscom_game("uuid-1", JAN_5_2024_NOON_MS // 1000, pgn=text), "alice"
        )
        assert record is not None
        self.store.bulk_upsert_games([record])

        summary = import_pgn_games(self.store, text)

        self.assertEqual((summary.imported, summary.skipped), (0, 1))
        rows = self.store.games.fetch_games()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["provider"], "chesscom")


class CheckpointPersistenceTests(unittest.TestCase):
    def test_round_trip_survives_reopen(self) -> None:
        db_path = Path(tempfile.mkdtemp()) / "games.duckdb"
        checkpoint = ImportCheckpoint(
            provider=Provider.CHESSCOM,
            username="Alice",
            mode="full",
            target_since=0,
            target_until=100,
            current_since=0,
            cursor=3,
            total_imported=42,
            status=ImportStatus.PAUSED,
            failed_chunks=[FailedChunk(since=0, until=100, error="boom", timestamp=7)],
        )
        store = DuckDbLocalStore.open(db_path)
        store.save_import_progress(Provider.CHESSCOM, "Alice", checkpoint)
        store.close()

        reopened = DuckDbLocalStore.open(db_path)
        loaded = reopened.load_import_progress(Provider.CHESSCOM, "alice")

        self.assertIsNotNone(loaded)
        assert loaded is not None
        self.assertEqual(loaded.cursor, 3)
        self.assertEqual(loaded.total_imported, 42)
        self.assertEqual(loaded.status, "paused")
        self.assertEqual(loaded.failed_chunks[0].error, "boom")

        reopened.clear_import_progress(Provider.CHESSCOM, "ALICE")
        self.assertIsNone(reopened.load_import_progress(Provider.CHESSCOM, "alice"))
        reopened.close()


if __name__ == "__main__":
    unittest.main()
