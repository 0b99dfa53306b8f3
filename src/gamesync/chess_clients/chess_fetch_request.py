"""Request model for chunk fetches."""

from pydantic import BaseModel


class ChessFetchRequest(BaseModel):
    """Request model for one chunk of a provider sync.

    Attributes:
        username: Player whose games are fetched.
        since_ms: Lower bound timestamp (inclusive) in milliseconds.
        until_ms: Upper bound timestamp (inclusive) in milliseconds.
        cursor: Provider chunk token; the archive URL for Chess.com.

    Example:
        >>> ChessFetchRequest(username="alice", since_ms=0, until_ms=1_000)
    """

    username: str
    since_ms: int = 0
    until_ms: int
    cursor: str | None = None
