import unittest
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import requests

from gamesync.cancellation import CancellationToken
from gamesync.chess_clients import ChessFetchRequest
from gamesync.config import LichessSettings
from gamesync.errors import FatalProviderError, RateLimitError, SyncCancelled
from tests.game_payloads import DAY_MS, JAN_5_2024_NOON_MS, lichess_game
from tests.http_fakes import (
    FakeResponse,
    FakeSession,
    SleepRecorder,
    make_lichess_client,
    make_settings,
    ndjson_response,
)


def _request(since_ms: int = 0, until_ms: int = JAN_5_2024_NOON_MS + DAY_MS) -> ChessFetchRequest:
    return ChessFetchRequest(username="alice", since_ms=since_ms, until_ms=until_ms)


class LichessStreamTests(unittest.TestCase):
    def test_export_request_parameters(self) -> None:
        session = FakeSession([ndjson_response(lichess_game("g1", JAN_5_2024_NOON_MS))])
        client = make_lichess_client(session)

        games = list(client.stream_games("alice", 10, 20))

        self.assertEqual([game["id"] for game in games], ["g1"])
        call = session.calls[0]
        self.assertEqual(call.url, "https://lichess.test/api/games/user/alice")
        self.assertTrue(call.stream)
        self.assertEqual(call.headers["Accept"], "application/x-ndjson")
        self.assertNotIn("Authorization", call.headers)
        self.assertEqual(call.params["since"], 10)
        self.assertEqual(call.params["until"], 20)
        self.assertEqual(call.params["pgnInJson"], "true")
        self.assertNotIn("max", call.params)

    def test_token_and_filters(self) -> None:
        settings = make_settings(
            lichess=LichessSettings(
                token="secret",
                base_url="https://lichess.test",
                max_games=50,
                perf_type="blitz,bogus,rapid",
                pacing_ms=0,
            )
        )
        session = FakeSession([ndjson_response()])
        client = make_lichess_client(session, settings=settings)

        list(client.stream_games("alice", 0, 1))

        call = session.calls[0]
        self.assertEqual(call.headers["Authorization"], "Bearer secret")
        self.assertEqual(call.params["max"], 50)
        self.assertEqual(call.params["perfType"], "blitz,rapid")

    def test_response_is_closed_after_stream(self) -> None:
        response = ndjson_response(lichess_game("g1", JAN_5_2024_NOON_MS))
        client = make_lichess_client(FakeSession([response]))

        list(client.stream_games("alice", 0, 1))

        self.assertTrue(response.closed)

    def test_cancellation_between_lines(self) -> None:
        token = CancellationToken()
        response = ndjson_response(
            lichess_game("g1", JAN_5_2024_NOON_MS), lichess_game("g2", JAN_5_2024_NOON_MS)
        )
        client = make_lichess_client(FakeSession([response]))
        stream = client.stream_games("alice", 0, 1, token)

        self.assertEqual(next(stream)["id"], "g1")
        token.cancel()
        with self.assertRaises(SyncCancelled):
            next(stream)
        self.assertTrue(response.closed)


class LichessFetchTests(unittest.TestCase):
    def test_two_valid_and_one_malformed_line(self) -> None:
        session = FakeSession(
            [
                ndjson_response(
                    lichess_game("g1", JAN_5_2024_NOON_MS),
                    "{this is not json",
                    lichess_game("g2", JAN_5_2024_NOON_MS + 60_000, black="carol"),
                )
            ]
        )
        client = make_lichess_client(session)

        result = client.fetch_incremental_games(_request())

        self.assertEqual([r.provider_game_id for r in result.records], ["g1", "g2"])
        self.assertEqual(result.parse_errors, 1)
        self.assertEqual(result.raw_count, 2)

    def test_unmappable_games_count_as_parse_errors(self) -> None:
        session = FakeSession(
            [ndjson_response(lichess_game("g1", JAN_5_2024_NOON_MS, moves=""))]
        )
        client = make_lichess_client(session)

        result = client.fetch_incremental_games(_request())

        self.assertEqual(result.records, [])
        self.assertEqual(result.parse_errors, 1)

    def test_rate_limit_retries_the_whole_window(self) -> None:
        sleep = SleepRecorder()
        session = FakeSession(
            [
                FakeResponse(status_code=429),
                ndjson_response(lichess_game("g1", JAN_5_2024_NOON_MS)),
            ]
        )
        client = make_lichess_client(session, sleep=sleep)

        result = client.fetch_incremental_games(_request())

        self.assertEqual(len(result.records), 1)
        self.assertEqual(sleep.delays, [2.0])

    def test_broken_stream_restarts_window_without_duplicates(self) -> None:
        sleep = SleepRecorder()
        broken = FakeResponse(
            chunks=[
                b'{"id": "partial"}\n',
                requests.exceptions.ChunkedEncodingError("connection broken"),
            ]
        )
        session = FakeSession(
            [broken, ndjson_response(lichess_game("g1", JAN_5_2024_NOON_MS))]
        )
        client = make_lichess_client(session, sleep=sleep)

        result = client.fetch_incremental_games(_request())

        self.assertEqual([r.provider_game_id for r in result.records], ["g1"])
        self.assertEqual(result.parse_errors, 0)
        self.assertEqual(sleep.delays, [1.0])
        self.assertTrue(broken.closed)

    def test_rate_limit_exhaustion_raises(self) -> None:
        sleep = SleepRecorder()
        session = FakeSession([FakeResponse(status_code=429) for _ in range(4)])
        client = make_lichess_client(session, sleep=sleep)

        with self.assertRaises(RateLimitError):
            client.fetch_incremental_games(_request())
        self.assertEqual(sleep.delays, [2.0, 4.0, 8.0])


class LichessAccountTests(unittest.TestCase):
    def test_account_creation_time(self) -> None:
        created = datetime(2020, 5, 1, tzinfo=UTC)
        berserk_client = MagicMock()
        berserk_client.users.get_public_data.return_value = {
            "username": "Alice",
            "createdAt": created,
            "title": "FM",
        }
        client = make_lichess_client(FakeSession())

        with patch(
            "gamesync.chess_clients.lichess_client.build_client", return_value=berserk_client
        ):
            account = client.fetch_account("alice")

        self.assertEqual(account.username, "Alice")
        self.assertEqual(account.created_at_ms, int(created.timestamp() * 1000))
        self.assertEqual(account.title, "FM")

    def test_closed_account_is_fatal(self) -> None:
        berserk_client = MagicMock()
        berserk_client.users.get_public_data.return_value = {"username": "x", "closed": True}
        client = make_lichess_client(FakeSession())

        with patch(
            "gamesync.chess_clients.lichess_client.build_client", return_value=berserk_client
        ):
            with self.assertRaises(FatalProviderError):
                client.fetch_account("x")


if __name__ == "__main__":
    unittest.main()
