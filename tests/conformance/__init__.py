"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the deposit ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_history.py - Historical balances agree with brute-force replay
2. test_aggregates.py - Per-account and global totals stay consistent
3. test_identity.py - Deterministic identifiers and stable pagination
4. test_determinism.py - Replay and export reproduce identical state
5. test_atomicity.py - Failed operations leave no partial effects

These tests use hypothesis for property-based testing.
"""

from decimal import Decimal
from typing import Dict, List, Tuple

from hypothesis import strategies as st

from lockledger import DepositLedger, ManualClock, CommitmentId


ACCOUNTS = ["alice", "bob", "charlie", "dave", "eve"]


@st.composite
def operation_sequence(draw, max_ops: int = 40):
    """
    Generate a sequence of ledger operations.

    Each operation is (day_gap, action, account, amount, pick):
    - day_gap: days to advance before the operation (0 means same day)
    - action: "create" or "close"
    - account: acting account
    - amount: Decimal deposit amount (ignored for close)
    - pick: which active commitment to close (modulo the active count)
    """
    n = draw(st.integers(min_value=1, max_value=max_ops))
    ops = []
    for _ in range(n):
        day_gap = draw(st.sampled_from([0, 0, 1, 2, 5, 30]))
        action = draw(st.sampled_from(["create", "create", "close"]))
        account = draw(st.sampled_from(ACCOUNTS))
        amount = draw(st.decimals(
            min_value=Decimal("0.01"),
            max_value=Decimal("1000000"),
            places=2,
            allow_nan=False,
            allow_infinity=False,
        ))
        pick = draw(st.integers(min_value=0, max_value=100))
        ops.append((day_gap, action, account, amount, pick))
    return ops


def apply_operations(ops, start_day: int = 0) -> Tuple[DepositLedger, ManualClock, List[int]]:
    """
    Apply an operation sequence to a fresh ledger.

    Closes with no active commitment for the account are skipped.

    Returns:
        (ledger, clock, days) where days lists the day of every applied operation
    """
    clock = ManualClock(start_day)
    ledger = DepositLedger("conformance", clock=clock, verbose=False)
    active: Dict[str, List[CommitmentId]] = {a: [] for a in ACCOUNTS}
    days = []
    for day_gap, action, account, amount, pick in ops:
        clock.advance(day_gap)
        if action == "create":
            active[account].append(ledger.create(account, amount, 0))
        elif active[account]:
            cid = active[account].pop(pick % len(active[account]))
            ledger.close(account, cid)
        else:
            continue
        days.append(clock.current_day())
    return ledger, clock, days
