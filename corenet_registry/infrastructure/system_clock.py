"""Clock implementations: wall-clock time and a hand-driven clock for tests."""

from datetime import UTC, datetime, timedelta

from ..ports.clock import ClockPort


class SystemClock(ClockPort):
    """Default clock implementation using system time in UTC."""

    def now(self) -> datetime:
        """Get the current UTC time."""
        return datetime.now(UTC)


class ManualClock(ClockPort):
    """Clock that only moves when told to.

    Heartbeat timeouts are evaluated against this clock in tests, so the
    state machine can be walked through without real sleeps.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=UTC)
        if self._now.tzinfo is None:
            raise ValueError("ManualClock requires a timezone-aware start time")

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        """Move the clock forward and return the new time."""
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        self._now += timedelta(seconds=seconds)
        return self._now

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            raise ValueError("ManualClock requires timezone-aware datetimes")
        self._now = moment
