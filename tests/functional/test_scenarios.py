"""
test_scenarios.py - End-to-end walkthroughs of the core ledger behaviours

Each test drives a DepositLedger through a short, fully specified timeline
and checks historical balances, global snapshots and enumeration.
"""

import pytest
from decimal import Decimal

from lockledger import (
    DepositLedger, ManualClock, DailySnapshot, OutOfBounds,
)


@pytest.fixture
def clock():
    return ManualClock(10)


@pytest.fixture
def ledger(clock):
    return DepositLedger("scenarios", clock=clock, verbose=False)


class TestSingleDeposit:
    """One deposit on day 10, no withdrawals."""

    def test_balance_before_on_and_after(self, ledger):
        ledger.create("alice", Decimal("1000"), 30)
        assert ledger.balance_at("alice", 5) == Decimal("0")
        assert ledger.balance_at("alice", 10) == Decimal("1000")
        assert ledger.balance_at("alice", 100) == Decimal("1000")
        assert ledger.checkpoint_days("alice") == [10]


class TestDepositThenWithdraw:
    """Deposit on day 10, withdrawal on day 20."""

    def test_withdrawal_day_is_exclusive(self, ledger, clock):
        cid = ledger.create("alice", Decimal("1000"), 10)
        clock.set_day(20)
        ledger.close("alice", cid)
        assert ledger.balance_at("alice", 15) == Decimal("1000")
        assert ledger.balance_at("alice", 19) == Decimal("1000")
        assert ledger.balance_at("alice", 20) == Decimal("0")
        assert ledger.balance_at("alice", 25) == Decimal("0")
        assert ledger.read("alice", cid).end_day == 20
        assert ledger.current_total() == Decimal("0")


class TestTwoDeposits:
    """Two deposits from one account on different days."""

    def test_balance_steps_up(self, ledger, clock):
        first = ledger.create("alice", Decimal("500"), 30)
        clock.set_day(15)
        second = ledger.create("alice", Decimal("300"), 30)
        assert ledger.balance_at("alice", 12) == Decimal("500")
        assert ledger.balance_at("alice", 15) == Decimal("800")
        assert (first.sequence, second.sequence) == (0, 1)
        assert ledger.summary("alice").active_commitment_count == 2


class TestGlobalSnapshots:
    """Two accounts deposit on different days."""

    def test_snapshot_accumulates_and_carries_forward(self, ledger, clock):
        ledger.create("x", Decimal("1000"), 30)
        clock.set_day(15)
        ledger.create("y", Decimal("2000"), 30)
        assert ledger.snapshot_at(10) == DailySnapshot(Decimal("1000"), 1)
        assert ledger.snapshot_at(15) == DailySnapshot(Decimal("3000"), 2)
        assert ledger.stored_snapshot(16) is None
        assert ledger.snapshot_at(16) == DailySnapshot(Decimal("3000"), 2)
        assert ledger.snapshot_at(9) == DailySnapshot(Decimal("0"), 0)


class TestPagination:
    """Registry enumeration bounds."""

    def test_page_past_end(self, ledger):
        for account in ("a", "b", "c"):
            ledger.create(account, Decimal("1"), 0)
        assert ledger.page(0, 2) == ["a", "b"]
        assert ledger.page(2, 2) == ["c"]
        with pytest.raises(OutOfBounds):
            ledger.page(ledger.count(), 1)

    def test_empty_registry(self, ledger):
        assert ledger.count() == 0
        with pytest.raises(OutOfBounds):
            ledger.page(0, 1)
