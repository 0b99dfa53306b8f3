import hashlib


class Hasher:
    """
    Hasher provides static methods for generating SHA256 hashes.

    Methods
    -------
    hash_string(input_string: str) -> str
        Returns a SHA256 hash of the input string.
    """

    @staticmethod
    def hash_string(input_string: str) -> str:
        """Returns a SHA256 hash of the input string."""

        return hashlib.sha256(input_string.encode("utf-8")).hexdigest()


def normalize_pgn_text(pgn: str) -> str:
    """Normalize line endings and surrounding whitespace of PGN text."""
    return pgn.replace("\r\n", "\n").replace("\r", "\n").strip()


def hash_pgn_text(pgn: str) -> str:
    """
    Return the content hash used to identify a game by its PGN text.

    Line endings and surrounding whitespace are normalized first, so the same
    game exported by a provider and pasted by hand hashes identically.

    Parameters
    ----------
    pgn : str
        Full PGN text of a single game.

    Returns
    -------
    str
        Hex SHA256 digest prefixed with ``pgn_``.

    Examples
    --------
    >>> hash_pgn_text("1. e4 e5 *") == hash_pgn_text("1. e4 e5 *\\r\\n")
    True
    """
    return f"pgn_{Hasher.hash_string(normalize_pgn_text(pgn))}"
