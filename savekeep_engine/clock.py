"""
Clock abstractions for deterministic behavior.

Notes
-----
Engine code must not access wall-clock time directly. Callers provide a Clock.
Archive names embed a second-precision timestamp, so tests pin it with
FixedClock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class Clock(Protocol):
    """A source of time for deterministic behavior."""

    def now(self) -> datetime:
        """
        Return the current time.

        Returns
        -------
        datetime
            A timezone-aware datetime.
        """
        ...


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Clock that returns the current local system time."""

    def now(self) -> datetime:
        """
        Return the current system time.

        Returns
        -------
        datetime
            Current local time as a timezone-aware datetime.
        """
        return datetime.now().astimezone()


@dataclass(frozen=True, slots=True)
class FixedClock:
    """Clock that always returns a fixed time (useful for tests)."""

    fixed_time: datetime

    def now(self) -> datetime:
        """
        Return the fixed time.

        Returns
        -------
        datetime
            The fixed time value. Naive values are treated as local time.
        """
        if self.fixed_time.tzinfo is None:
            return self.fixed_time.astimezone()
        return self.fixed_time


def format_archive_timestamp(clock: Clock) -> str:
    """
    Format the clock's current time for use in archive file names.

    Parameters
    ----------
    clock:
        Time source.

    Returns
    -------
    str
        The clock time, in its own timezone, formatted as ``YYYYMMDD_HHMMSS``.
    """
    return clock.now().strftime(ARCHIVE_TIMESTAMP_FORMAT)
