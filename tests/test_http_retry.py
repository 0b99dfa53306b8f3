import logging
import unittest
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime

from gamesync.chess_clients.http_retry import (
    RetryPolicy,
    call_with_retry,
    parse_retry_after,
    raise_for_provider_status,
)
from gamesync.errors import (
    FatalProviderError,
    NetworkError,
    ProviderServerError,
    RateLimitError,
)
from tests.http_fakes import FakeResponse, SleepRecorder

logger = logging.getLogger("gamesync.tests.retry")


class RetryAfterTests(unittest.TestCase):
    def test_seconds_value(self) -> None:
        self.assertEqual(parse_retry_after("5"), 5.0)
        self.assertEqual(parse_retry_after("-3"), 0.0)

    def test_http_date_value(self) -> None:
        future = datetime.now(UTC) + timedelta(seconds=30)

        delay = parse_retry_after(format_datetime(future, usegmt=True))

        self.assertIsNotNone(delay)
        self.assertGreater(delay, 20.0)
        self.assertLessEqual(delay, 30.0)

    def test_missing_or_garbage(self) -> None:
        self.assertIsNone(parse_retry_after(None))
        self.assertIsNone(parse_retry_after("soon"))


class StatusMappingTests(unittest.TestCase):
    def test_rate_limit_carries_retry_after(self) -> None:
        with self.assertRaises(RateLimitError) as ctx:
            raise_for_provider_status(
                FakeResponse(status_code=429, headers={"Retry-After": "7"}), "lichess", "u"
            )
        self.assertEqual(ctx.exception.retry_after, 7.0)
        self.assertEqual(ctx.exception.status_code, 429)

    def test_server_and_client_errors(self) -> None:
        with self.assertRaises(ProviderServerError):
            raise_for_provider_status(FakeResponse(status_code=503), "chesscom", "u")
        with self.assertRaises(FatalProviderError):
            raise_for_provider_status(FakeResponse(status_code=404), "chesscom", "u")

    def test_success_passes(self) -> None:
        raise_for_provider_status(FakeResponse(status_code=200), "chesscom", "u")


class CallWithRetryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.policy = RetryPolicy(max_retries=3, network_backoff_s=1.0, rate_limit_backoff_s=2.0)
        self.sleep = SleepRecorder()

    def _failing(self, *errors: Exception):
        queue = list(errors)

        def _call() -> str:
            if queue:
                raise queue.pop(0)
            return "ok"

        return _call

    def test_rate_limit_and_network_use_their_own_base(self) -> None:
        fn = self._failing(RateLimitError("429"), NetworkError("reset"))

        self.assertEqual(call_with_retry(fn, self.policy, logger, self.sleep), "ok")
        self.assertEqual(self.sleep.delays, [2.0, 2.0])

    def test_retry_after_raises_the_delay(self) -> None:
        fn = self._failing(RateLimitError("429", retry_after=10.0))

        call_with_retry(fn, self.policy, logger, self.sleep)

        self.assertEqual(self.sleep.delays, [10.0])

    def test_gives_up_after_max_retries(self) -> None:
        fn = self._failing(*(NetworkError("reset") for _ in range(5)))

        with self.assertRaises(NetworkError):
            call_with_retry(fn, self.policy, logger, self.sleep)
        self.assertEqual(self.sleep.delays, [1.0, 2.0, 4.0])

    def test_non_retryable_errors_are_not_retried(self) -> None:
        fn = self._failing(ProviderServerError("500"))

        with self.assertRaises(ProviderServerError):
            call_with_retry(fn, self.policy, logger, self.sleep)
        self.assertEqual(self.sleep.delays, [])


if __name__ == "__main__":
    unittest.main()
