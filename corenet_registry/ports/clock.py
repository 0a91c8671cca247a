"""Clock port abstraction for time handling.

Every timeout decision in the registry (heartbeat expiry, grace period,
time since deregistration) reads time through this port, so tests can drive
the state machine with a manual clock instead of sleeping.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class ClockPort(ABC):
    """Abstract clock interface for time operations."""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time as a timezone-aware datetime.

        Note:
            Implementations MUST return timezone-aware datetimes, preferably UTC.
        """
        ...
