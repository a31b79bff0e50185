"""
test_daily_aggregates.py - Unit tests for daily.py

Tests:
- apply_delta: seeding new days from prior totals, same-day accumulation
- Lock-step between running totals and the latest snapshot
- snapshot_at carry-forward vs stored_snapshot raw lookups
"""

import pytest
from decimal import Decimal

from lockledger import DailyAggregateLedger, DailySnapshot


@pytest.fixture
def daily():
    return DailyAggregateLedger()


class TestApplyDelta:
    """Tests for DailyAggregateLedger.apply_delta()."""

    def test_first_delta(self, daily):
        snapshot = daily.apply_delta(10, Decimal("1000"), 1)
        assert snapshot == DailySnapshot(Decimal("1000"), 1)
        assert daily.current_total() == Decimal("1000")
        assert daily.current_active_count() == 1

    def test_new_day_seeded_from_previous(self, daily):
        daily.apply_delta(10, Decimal("1000"), 1)
        daily.apply_delta(15, Decimal("2000"), 1)
        assert daily.stored_snapshot(10) == DailySnapshot(Decimal("1000"), 1)
        assert daily.stored_snapshot(15) == DailySnapshot(Decimal("3000"), 2)

    def test_same_day_accumulates(self, daily):
        daily.apply_delta(10, Decimal("1000"), 1)
        daily.apply_delta(10, Decimal("500"), 1)
        daily.apply_delta(10, Decimal("-1000"), -1)
        assert daily.materialized_days() == [10]
        assert daily.stored_snapshot(10) == DailySnapshot(Decimal("500"), 1)

    def test_totals_track_latest_snapshot(self, daily):
        for day, amount, count in [(1, "10", 1), (1, "5", 1), (4, "-10", -1), (9, "7", 1)]:
            daily.apply_delta(day, Decimal(amount), count)
            latest = daily.stored_snapshot(daily.latest_day())
            assert latest == DailySnapshot(daily.current_total(), daily.current_active_count())

    def test_skipped_days_not_materialized(self, daily):
        daily.apply_delta(10, Decimal("1"), 1)
        daily.apply_delta(50, Decimal("1"), 1)
        assert daily.materialized_days() == [10, 50]
        assert daily.stored_snapshot(30) is None

    def test_backwards_day_rejected(self, daily):
        daily.apply_delta(10, Decimal("1"), 1)
        with pytest.raises(ValueError, match="backwards"):
            daily.apply_delta(9, Decimal("1"), 1)
        assert daily.current_total() == Decimal("1")

    def test_day_zero(self, daily):
        daily.apply_delta(0, Decimal("3"), 1)
        assert daily.snapshot_at(0) == DailySnapshot(Decimal("3"), 1)


class TestSnapshotAt:
    """Tests for carry-forward reads."""

    def test_before_any_activity(self, daily):
        assert daily.snapshot_at(100) == DailySnapshot(Decimal("0"), 0)
        daily.apply_delta(10, Decimal("1"), 1)
        assert daily.snapshot_at(9) == DailySnapshot(Decimal("0"), 0)

    def test_carry_forward_to_quiet_day(self, daily):
        daily.apply_delta(10, Decimal("1000"), 1)
        daily.apply_delta(15, Decimal("2000"), 1)
        assert daily.snapshot_at(16) == daily.snapshot_at(15)
        assert daily.snapshot_at(12) == DailySnapshot(Decimal("1000"), 1)

    def test_carry_forward_far_future(self, daily):
        daily.apply_delta(10, Decimal("1000"), 1)
        assert daily.snapshot_at(10**9) == DailySnapshot(Decimal("1000"), 1)

    def test_history_pairs(self, daily):
        daily.apply_delta(1, Decimal("1"), 1)
        daily.apply_delta(2, Decimal("1"), 1)
        assert daily.history() == [
            (1, DailySnapshot(Decimal("1"), 1)),
            (2, DailySnapshot(Decimal("2"), 2)),
        ]

    def test_latest_day_empty(self, daily):
        assert daily.latest_day() is None
