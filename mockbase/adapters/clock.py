import time
from datetime import UTC, datetime


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000

    def now_seconds(self) -> int:
        return int(time.time())


class FixedClock:
    """Settable clock for tests and deterministic seeding."""

    def __init__(self, epoch_seconds: float = 1_750_000_000.0) -> None:
        self._now = float(epoch_seconds)

    def now_utc(self) -> datetime:
        return datetime.fromtimestamp(self._now, UTC)

    def now_ms(self) -> int:
        return int(self._now * 1000)

    def now_seconds(self) -> int:
        return int(self._now)

    def advance(self, seconds: float) -> None:
        self._now += seconds

    def set(self, epoch_seconds: float) -> None:
        self._now = float(epoch_seconds)
