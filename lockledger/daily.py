"""
daily.py - Global per-day aggregates with carry-forward

Keeps the running global totals (committed value, active commitment count)
and a snapshot of those totals for every day on which a mutation happened.

Snapshots are materialized lazily: the first write on a new day seeds that
day from the running totals, then applies the delta. Days that saw no writes
are answered by the nearest earlier materialized day, found by binary search
over the single global day list.
"""

from bisect import bisect_right
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .core import ZERO, DailySnapshot


class DailyAggregateLedger:
    """
    Append-only log of (day, DailySnapshot), keyed by day.

    INVARIANT: the running totals always equal the snapshot of the latest
    materialized day. Every mutation goes through apply_delta(), which
    updates both together.
    """

    def __init__(self):
        self._days: List[int] = []
        self._snapshots: Dict[int, DailySnapshot] = {}
        self._total_value: Decimal = ZERO
        self._active_count: int = 0

    def apply_delta(self, day: int, amount_delta: Decimal, count_delta: int) -> DailySnapshot:
        """
        Apply signed changes to the global totals on `day`.

        Args:
            day: Day of the change (must not precede the last materialized day)
            amount_delta: Signed change in total committed value
            count_delta: Signed change in active commitment count

        Returns:
            The snapshot of `day` after the change

        Raises:
            ValueError: If day is before the last materialized day
        """
        if self._days and day < self._days[-1]:
            raise ValueError(
                f"Cannot move time backwards: {day} < {self._days[-1]}"
            )

        if not self._days or self._days[-1] != day:
            # Seed the new day from the latest totals before applying deltas
            self._snapshots[day] = DailySnapshot(self._total_value, self._active_count)
            self._days.append(day)

        snapshot = self._snapshots[day].applied(amount_delta, count_delta)
        self._snapshots[day] = snapshot
        self._total_value = snapshot.total_value
        self._active_count = snapshot.active_count
        return snapshot

    def stored_snapshot(self, day: int) -> Optional[DailySnapshot]:
        """Raw materialized snapshot for `day`, or None if nothing was written that day."""
        return self._snapshots.get(day)

    def snapshot_at(self, day: int) -> DailySnapshot:
        """
        Global totals as of `day`.

        Uses the snapshot of the most recent materialized day <= day.
        Returns an empty snapshot if `day` precedes all activity.
        """
        exact = self._snapshots.get(day)
        if exact is not None:
            return exact
        idx = bisect_right(self._days, day)
        if idx == 0:
            return DailySnapshot()
        return self._snapshots[self._days[idx - 1]]

    def current_total(self) -> Decimal:
        """Running global committed value."""
        return self._total_value

    def current_active_count(self) -> int:
        """Running global count of active commitments."""
        return self._active_count

    def materialized_days(self) -> List[int]:
        """Ordered copy of the days that have a stored snapshot."""
        return list(self._days)

    def history(self) -> List[Tuple[int, DailySnapshot]]:
        """Ordered (day, snapshot) pairs."""
        return [(day, self._snapshots[day]) for day in self._days]

    def latest_day(self) -> Optional[int]:
        return self._days[-1] if self._days else None

    def __repr__(self) -> str:
        return (f"DailyAggregateLedger({len(self._days)} days, "
                f"total={self._total_value}, active={self._active_count})")
