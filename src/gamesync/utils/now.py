from datetime import UTC, datetime


class Now:
    @staticmethod
    def as_milliseconds() -> int:
        """Return the current UTC time as an integer timestamp in milliseconds."""

        return int(datetime.now(UTC).timestamp() * 1000)

    @staticmethod
    def from_milliseconds(value: int) -> datetime:
        """Convert an epoch timestamp in milliseconds to an aware UTC datetime."""

        return datetime.fromtimestamp(value / 1000, tz=UTC)

    @staticmethod
    def to_milliseconds(dt: datetime) -> int:
        """Convert a datetime to epoch milliseconds, assuming UTC when naive."""

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return int(dt.timestamp() * 1000)

    @staticmethod
    def format_date(value: int) -> str:
        """Format epoch milliseconds as a YYYY-MM-DD date for progress messages."""

        return Now.from_milliseconds(value).strftime("%Y-%m-%d")
