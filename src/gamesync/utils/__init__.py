"""Utility exports for the gamesync package."""

from .hasher import Hasher, hash_pgn_text, normalize_pgn_text
from .logger import funclogger, get_logger, set_level
from .normalize_string import normalize_string
from .now import Now
from .to_int import to_int

__all__ = [
    "Hasher",
    "Now",
    "funclogger",
    "get_logger",
    "hash_pgn_text",
    "normalize_pgn_text",
    "normalize_string",
    "set_level",
    "to_int",
]
