"""Port interfaces for storage boundaries."""

from gamesync.ports.game_store import (
    GameRowStore,
    LocalGameStore,
    PgnImportStore,
    PlayersKey,
    ProviderIdKey,
)

__all__ = [
    "GameRowStore",
    "LocalGameStore",
    "PgnImportStore",
    "PlayersKey",
    "ProviderIdKey",
]
