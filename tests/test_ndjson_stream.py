import unittest

from gamesync.chess_clients.ndjson_stream import iter_ndjson
from gamesync.errors import PgnParseError


class NdjsonStreamTests(unittest.TestCase):
    def test_lines_split_across_chunks(self) -> None:
        chunks = [b'{"id": "a"}\n{"i', b'd": "b"}\n', b'{"id": "c"}\n']

        games = list(iter_ndjson(chunks))

        self.assertEqual([game["id"] for game in games], ["a", "b", "c"])

    def test_trailing_line_without_newline_is_decoded(self) -> None:
        games = list(iter_ndjson([b'{"id": "a"}\n{"id": "b"}']))

        self.assertEqual([game["id"] for game in games], ["a", "b"])

    def test_multibyte_character_split_between_chunks(self) -> None:
        body = '{"name": "Café"}\n'.encode("utf-8")
        split = body.index(b"\xc3") + 1

        games = list(iter_ndjson([body[:split], body[split:]]))

        self.assertEqual(games, [{"name": "Café"}])

    def test_malformed_lines_are_reported_and_skipped(self) -> None:
        errors: list[PgnParseError] = []
        chunks = [b'{"id": "a"}\n{not json}\n[1, 2]\n\n{"id": "b"}\n']

        games = list(iter_ndjson(chunks, on_error=errors.append))

        self.assertEqual([game["id"] for game in games], ["a", "b"])
        self.assertEqual(len(errors), 2)
        self.assertTrue(all(isinstance(error, PgnParseError) for error in errors))

    def test_empty_stream(self) -> None:
        self.assertEqual(list(iter_ndjson([])), [])
        self.assertEqual(list(iter_ndjson([b"", b"\n\n"])), [])


if __name__ == "__main__":
    unittest.main()
