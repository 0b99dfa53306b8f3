import threading
import unittest

from gamesync.cancellation import CancellationToken, make_sleeper
from gamesync.errors import SyncCancelled
from gamesync.models import ProgressEvent, ProgressEventType, clamp_percentage
from gamesync.sync import ProgressEmitter, ratio_percentage
from tests.http_fakes import SleepRecorder


class ProgressEmitterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.events: list[ProgressEvent] = []
        self.emitter = ProgressEmitter(self.events.append, "lichess", "alice")

    def test_running_percentages_never_decrease(self) -> None:
        self.emitter.emit(ProgressEventType.PROGRESS, "a", percentage=40)
        self.emitter.emit(ProgressEventType.CHUNK_COMPLETE, "b", percentage=25)
        self.emitter.emit(ProgressEventType.PROGRESS, "c", percentage=60)

        self.assertEqual([event.percentage for event in self.events], [40.0, 40.0, 60.0])

    def test_success_is_one_hundred(self) -> None:
        self.emitter.emit(ProgressEventType.SUCCESS, "done", percentage=3)

        self.assertEqual(self.events[-1].percentage, 100.0)
        self.assertEqual(self.events[-1].type, "success")

    def test_percentages_are_clamped(self) -> None:
        self.emitter.emit(ProgressEventType.PROGRESS, "a", percentage=float("nan"))
        self.emitter.emit(ProgressEventType.PROGRESS, "b", percentage=250)

        self.assertEqual([event.percentage for event in self.events], [0.0, 100.0])

    def test_failing_callback_does_not_raise(self) -> None:
        def _explode(event: ProgressEvent) -> None:
            raise RuntimeError("ui went away")

        emitter = ProgressEmitter(_explode, "lichess", "alice")

        with self.assertLogs("gamesync.sync.progress", level="ERROR"):
            event = emitter.emit(ProgressEventType.START, "go")
        self.assertEqual(event.provider, "lichess")

    def test_ratio_and_clamp_helpers(self) -> None:
        self.assertEqual(ratio_percentage(1, 4), 25.0)
        self.assertEqual(ratio_percentage(3, 0), 0.0)
        self.assertEqual(clamp_percentage(None), 0.0)
        self.assertEqual(clamp_percentage(-1), 0.0)


class CancellationTests(unittest.TestCase):
    def test_token_sleep_is_interrupted(self) -> None:
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()

        with self.assertRaises(SyncCancelled):
            token.sleep(30)
        timer.join()

    def test_raise_if_cancelled(self) -> None:
        token = CancellationToken()
        token.raise_if_cancelled()
        token.cancel()

        self.assertTrue(token.cancelled)
        with self.assertRaises(SyncCancelled):
            token.raise_if_cancelled()

    def test_injected_sleeper_checks_token(self) -> None:
        token = CancellationToken()
        recorder = SleepRecorder()
        sleep = make_sleeper(token, recorder)

        sleep(1.5)
        sleep(0)
        token.cancel()
        with self.assertRaises(SyncCancelled):
            sleep(2.0)

        self.assertEqual(recorder.delays, [1.5])

    def test_plain_sleeper_without_token(self) -> None:
        recorder = SleepRecorder()

        make_sleeper(None, recorder)(0.25)

        self.assertEqual(recorder.delays, [0.25])


if __name__ == "__main__":
    unittest.main()
