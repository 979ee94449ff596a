from datetime import UTC, datetime
from typing import Protocol


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

    def now_ms(self) -> int:
        """Milliseconds since the Unix epoch."""
        ...

    def now_seconds(self) -> int:
        """Whole seconds since the Unix epoch."""
        ...


def to_iso_z(dt: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a 'Z' suffix."""
    utc = dt.astimezone(UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"
