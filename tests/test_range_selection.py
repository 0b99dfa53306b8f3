import unittest

from gamesync.sync import DAY_MS, determine_import_range, validate_custom_range

NOW = 1_000 * DAY_MS


class RangeSelectionTests(unittest.TestCase):
    def test_smart_without_local_games_uses_window_floor(self) -> None:
        window = determine_import_range("smart", now_ms=NOW)

        self.assertEqual((window.since_ms, window.until_ms), (NOW - 90 * DAY_MS, NOW))

    def test_smart_resumes_after_latest_local_game(self) -> None:
        latest = NOW - 5 * DAY_MS

        window = determine_import_range("smart", now_ms=NOW, latest_local_ms=latest)

        self.assertEqual(window.since_ms, latest + 1)

    def test_smart_never_reaches_past_the_floor(self) -> None:
        window = determine_import_range(
            "smart", now_ms=NOW, latest_local_ms=NOW - 400 * DAY_MS, smart_window_days=30
        )

        self.assertEqual(window.since_ms, NOW - 30 * DAY_MS)

    def test_smart_with_future_local_game_is_clamped_to_now(self) -> None:
        window = determine_import_range("smart", now_ms=NOW, latest_local_ms=NOW + DAY_MS)

        self.assertEqual((window.since_ms, window.until_ms), (NOW, NOW))

    def test_full_defaults_to_epoch(self) -> None:
        window = determine_import_range("full", now_ms=NOW)

        self.assertEqual((window.since_ms, window.until_ms), (0, NOW))

    def test_full_uses_start_time(self) -> None:
        window = determine_import_range("full", now_ms=NOW, start_time_ms=DAY_MS)

        self.assertEqual(window.since_ms, DAY_MS)

    def test_custom_range(self) -> None:
        window = determine_import_range("custom", now_ms=NOW, since_ms=5, until_ms=5)

        self.assertEqual((window.since_ms, window.until_ms), (5, 5))

    def test_custom_range_validation(self) -> None:
        with self.assertRaises(ValueError):
            validate_custom_range(None, 10)
        with self.assertRaises(ValueError):
            validate_custom_range(10, 5)

    def test_unknown_mode(self) -> None:
        with self.assertRaises(ValueError):
            determine_import_range("weekly", now_ms=NOW)


if __name__ == "__main__":
    unittest.main()
