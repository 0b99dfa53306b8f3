from pydantic import BaseModel, Field

from gamesync.models import CanonicalGameRecord


class ChessFetchResult(BaseModel):
    """Records produced by one fetched chunk.

    Attributes:
        records: Canonical records mapped from the chunk.
        parse_errors: Raw records skipped because they could not be parsed.
        raw_count: Raw records received before mapping and window filtering.

    Example:
        >>> ChessFetchResult(records=[], parse_errors=0)
    """

    records: list[CanonicalGameRecord] = Field(default_factory=list)
    parse_errors: int = 0
    raw_count: int = 0
