"""Identity keys and the idempotent merge layer."""

from gamesync.dedupe.game_merger import GameMerger, collapse_batch, update_values
from gamesync.dedupe.identity_keys import IdentityKey, IdentityKind, identity_keys

__all__ = [
    "GameMerger",
    "IdentityKey",
    "IdentityKind",
    "collapse_batch",
    "identity_keys",
    "update_values",
]
