"""
Aggregate Consistency Conformance Tests

INVARIANT: After every completed operation,

    current_total() = Σ summary(a).total_active_value   over all accounts a
    current_active_count() = Σ summary(a).active_commitment_count

INVARIANT: For every day D at or after the first activity,

    snapshot_at(D) = (Σ amounts, count) of commitments active on D

Violations indicate a lost or double-counted delta somewhere in the
create/close fan-out.
"""

from hypothesis import given, settings

from lockledger import ZERO, DailySnapshot

from tests.history_oracle import expected_balance, expected_snapshot
from . import ACCOUNTS, apply_operations, operation_sequence


class TestGlobalTotals:
    """Running totals agree with the per-account summaries."""

    @given(operation_sequence())
    @settings(max_examples=150, deadline=None)
    def test_total_equals_sum_of_summaries(self, ops):
        """
        PROPERTY: current_total is the sum of every account's active value.
        """
        ledger, _, _ = apply_operations(ops)
        value = sum((ledger.summary(a).total_active_value for a in ledger.accounts()), ZERO)
        count = sum(ledger.summary(a).active_commitment_count for a in ledger.accounts())
        assert ledger.current_total() == value
        assert ledger.current_active_count() == count

    @given(operation_sequence())
    @settings(max_examples=150, deadline=None)
    def test_summary_equals_latest_balance(self, ops):
        """
        PROPERTY: An account's total_active_value equals its balance today.
        """
        ledger, clock, _ = apply_operations(ops)
        today = clock.current_day()
        for account in ACCOUNTS:
            assert ledger.summary(account).total_active_value == ledger.balance_at(account, today)
            assert ledger.balance_at(account, today) == expected_balance(ledger, account, today)

    @given(operation_sequence())
    @settings(max_examples=100, deadline=None)
    def test_verify_consistency_passes(self, ops):
        """
        PROPERTY: verify_consistency reports no discrepancies.
        """
        ledger, _, _ = apply_operations(ops)
        result = ledger.verify_consistency()
        assert result['valid'], result['discrepancies']


class TestDailySnapshots:
    """Snapshots agree with the commitment records."""

    @given(operation_sequence())
    @settings(max_examples=150, deadline=None)
    def test_snapshot_today_equals_running_totals(self, ops):
        """
        PROPERTY: snapshot_at(today) == (current_total, current_active_count).
        """
        ledger, clock, _ = apply_operations(ops)
        assert ledger.snapshot_at(clock.current_day()) == DailySnapshot(
            ledger.current_total(), ledger.current_active_count()
        )

    @given(operation_sequence())
    @settings(max_examples=100, deadline=None)
    def test_snapshot_matches_brute_force_every_day(self, ops):
        """
        PROPERTY: For every day, the (carried-forward) snapshot equals the
        brute-force sum over active commitments.
        """
        ledger, clock, _ = apply_operations(ops)
        for day in range(0, clock.current_day() + 2):
            assert ledger.snapshot_at(day) == expected_snapshot(ledger, day)

    @given(operation_sequence())
    @settings(max_examples=100, deadline=None)
    def test_materialized_days_are_activity_days(self, ops):
        """
        PROPERTY: A snapshot is stored exactly for the days with a mutation.
        """
        ledger, _, days = apply_operations(ops)
        assert ledger.daily.materialized_days() == sorted(set(days))
        for day in set(days):
            assert ledger.stored_snapshot(day) == expected_snapshot(ledger, day)
