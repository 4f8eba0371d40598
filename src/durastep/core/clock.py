# src/durastep/core/clock.py
"""Clock abstraction for testable timestamps and staleness checks.

Checkpoint transitions stamp started_at/completed_at/registered_at from a
Clock, and storage adapters compute stale cutoffs from one. Production code
uses SystemClock (the default). Tests inject MockClock to control time.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Abstract wall clock returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        ...


class SystemClock:
    """Production clock using datetime.now(UTC)."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(datetime(2024, 1, 1, tzinfo=UTC))
        store = InMemoryCheckpointStore(clock=clock)
        clock.advance(timedelta(hours=2))
    """

    def __init__(self, start: datetime | None = None) -> None:
        """Initialize mock clock at a given time.

        Args:
            start: Initial time (default 2024-01-01T00:00:00Z). Naive values are taken as UTC.
        """
        if start is None:
            start = datetime(2024, 1, 1, tzinfo=UTC)
        elif start.tzinfo is None:
            start = start.replace(tzinfo=UTC)
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta) -> None:
        """Advance mock time.

        Raises:
            ValueError: If delta is negative.
        """
        if delta < timedelta(0):
            raise ValueError(f"Cannot advance time by negative amount: {delta}")
        self._current += delta

    def set(self, value: datetime) -> None:
        """Set mock time to an absolute value (may move backwards)."""
        self._current = value if value.tzinfo is not None else value.replace(tzinfo=UTC)


# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
