"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock so that the lifecycle engine, the calendar
    projector and the notice guard never call ``datetime.now()`` directly.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Invariants enforced:
    - All times are naive local civil datetimes.  Scheduled dates and times
      are stored as local wall-clock values, so "now" must be expressed in
      the same calendar for the 2-hour notice rule to be meaningful.

Failure modes:
    - SequentialClock raises ValueError if initialized with no times.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Iterator


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        All services that need current time receive a Clock instance via
        constructor injection.

    Guarantees:
        ``now()`` returns a naive local ``datetime`` with minute-or-finer
        resolution.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current local time."""
        ...


class SystemClock(Clock):
    """
    Production clock that returns actual local wall-clock time.

    Non-goals:
        Not suitable for deterministic tests.
    """

    def now(self) -> datetime:
        """Get current local system time."""
        return datetime.now()


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
        - ``tick()`` advances by exactly 1 minute and returns the new time.
    """

    def __init__(self, fixed_time: datetime | None = None):
        """
        Initialize with optional fixed time.

        Args:
            fixed_time: If provided, clock starts at this time.
                       If None, uses 2026-02-09 08:00 local.
        """
        self._fixed_time = fixed_time or datetime(2026, 2, 9, 8, 0, 0)
        self._advance = timedelta(0)

    def now(self) -> datetime:
        """Get the fixed/controlled time."""
        return self._fixed_time + self._advance

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time
        self._advance = timedelta(0)

    def advance(self, minutes: int = 1) -> None:
        """Advance the clock by the specified minutes."""
        self._advance += timedelta(minutes=minutes)

    def tick(self) -> datetime:
        """Advance by 1 minute and return new time."""
        self.advance(1)
        return self.now()


class SequentialClock(Clock):
    """
    Clock that returns sequential times from a predefined list.

    After exhaustion, repeats the last value.

    Raises:
        ValueError: If initialized with an empty list.
    """

    def __init__(self, times: list[datetime]):
        if not times:
            raise ValueError("SequentialClock requires at least one time")
        self._times: Iterator[datetime] = iter(times)
        self._last_time: datetime = times[0]

    def now(self) -> datetime:
        """Get the next time in sequence."""
        self._last_time = next(self._times, self._last_time)
        return self._last_time
