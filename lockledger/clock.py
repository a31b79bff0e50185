"""
clock.py - Day-index clock collaborators

The ledger never computes the current day itself; it asks a Clock.
Day indices are plain ints. Clocks only move forward.

Classes:
- Clock: Protocol every clock satisfies
- ManualClock: Explicitly advanced clock for tests, simulations and replay
- WallClock: Day index derived from wall-clock time relative to an epoch
"""

from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, runtime_checkable


DEFAULT_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@runtime_checkable
class Clock(Protocol):
    """Provides the current day index. Must be non-decreasing across calls."""

    def current_day(self) -> int:
        ...


def day_index(when: datetime, epoch: datetime = DEFAULT_EPOCH) -> int:
    """
    Whole days elapsed between `epoch` and `when`.

    Naive datetimes are treated as UTC.
    """
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    if epoch.tzinfo is None:
        epoch = epoch.replace(tzinfo=timezone.utc)
    return (when - epoch).days


class ManualClock:
    """
    Clock advanced explicitly by the caller.

    Example:
        clock = ManualClock(10)
        ledger = DepositLedger("main", clock=clock, verbose=False)
        ledger.create("alice", Decimal("1000"), 30)
        clock.advance(30)
    """

    def __init__(self, day: int = 0):
        if day < 0:
            raise ValueError(f"Day index cannot be negative: {day}")
        self._day = day

    def current_day(self) -> int:
        return self._day

    def set_day(self, day: int) -> None:
        """
        Jump to a specific day.

        Raises:
            ValueError: If day is before the current day
        """
        if day < self._day:
            raise ValueError(f"Cannot move time backwards: {day} < {self._day}")
        self._day = day

    def advance(self, days: int = 1) -> int:
        """Move forward by `days` (zero allowed) and return the new day."""
        if days < 0:
            raise ValueError(f"Cannot move time backwards by {days} days")
        self._day += days
        return self._day

    def __repr__(self) -> str:
        return f"ManualClock(day={self._day})"


class WallClock:
    """
    Clock deriving the day index from real time.

    The reported day never decreases, even if the underlying time source
    steps backwards (NTP corrections and the like).
    """

    def __init__(
        self,
        epoch: datetime = DEFAULT_EPOCH,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.epoch = epoch
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._last_day: Optional[int] = None

    def current_day(self) -> int:
        day = day_index(self._now(), self.epoch)
        if self._last_day is not None and day < self._last_day:
            return self._last_day
        self._last_day = day
        return day

    def __repr__(self) -> str:
        return f"WallClock(epoch={self.epoch.isoformat()})"
