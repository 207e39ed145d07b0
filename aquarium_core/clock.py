"""Time sources for the simulation.

Managers never read the wall clock directly; they receive a ``Clock`` so
that weekly resets, decay and animation can be driven deterministically in
tests with ``ManualClock``.

All datetimes are naive local time, matching the "Sunday 00:00 local"
weekly water change.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from aquarium_core.config.water import WEEKLY_RESET_HOUR, WEEKLY_RESET_WEEKDAY


@runtime_checkable
class Clock(Protocol):
    """Anything that can tell the current local time."""

    def now(self) -> datetime:
        """Current local datetime."""
        ...

    def monotonic(self) -> float:
        """Seconds on a monotonic scale (used by animation formulas)."""
        ...


class SystemClock:
    """Clock backed by the real wall clock."""

    def now(self) -> datetime:
        return datetime.now()

    def monotonic(self) -> float:
        return time.time()


class ManualClock:
    """Clock that only moves when told to.

    Example:
        clock = ManualClock(datetime(2024, 1, 3, 12, 0))
        clock.advance(minutes=30)
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 3, 12, 0, 0)
        self._origin = self._now

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return (self._now - self._origin).total_seconds()

    def advance(self, seconds: float = 0.0, *, minutes: float = 0.0, hours: float = 0.0,
                days: float = 0.0) -> datetime:
        self._now += timedelta(seconds=seconds, minutes=minutes, hours=hours, days=days)
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment


def _reset_boundary(day: datetime) -> datetime:
    return day.replace(hour=WEEKLY_RESET_HOUR, minute=0, second=0, microsecond=0)


def last_sunday(moment: datetime) -> datetime:
    """Most recent weekly reset boundary at or before ``moment``'s date.

    On a Sunday this is that same Sunday at 00:00.
    """
    days_since = (moment.weekday() - WEEKLY_RESET_WEEKDAY) % 7
    return _reset_boundary(moment - timedelta(days=days_since))


def next_sunday(moment: datetime) -> datetime:
    """Next weekly reset boundary strictly after ``moment``'s date.

    On a Sunday this is the following Sunday (7 days later).
    """
    days_until = (WEEKLY_RESET_WEEKDAY - moment.weekday()) % 7 or 7
    return _reset_boundary(moment + timedelta(days=days_until))


def minutes_between(start: datetime, end: datetime) -> float:
    """Elapsed minutes from ``start`` to ``end`` (negative on clock skew)."""
    return (end - start).total_seconds() / 60.0
