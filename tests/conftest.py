"""
conftest.py - Shared pytest fixtures for lockledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Clocks and empty ledgers
- A populated multi-account ledger with deposits and withdrawals on several days
- Vaults over a fresh ledger
"""

import pytest
from decimal import Decimal

from lockledger import (
    DepositLedger,
    ManualClock,
    TimeLockVault,
)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    """Manual clock starting on day 10."""
    return ManualClock(10)


@pytest.fixture
def ledger(clock):
    """Empty ledger driven by the `clock` fixture."""
    return DepositLedger("test", clock=clock, verbose=False)


@pytest.fixture
def vault(ledger):
    """Vault over the empty `ledger` fixture."""
    return TimeLockVault(ledger)


# =============================================================================
# POPULATED FIXTURES
# =============================================================================

@pytest.fixture
def populated(clock, ledger):
    """
    Ledger with three accounts and a mix of open and closed commitments.

    Timeline:
        day 10: alice +1000 (a0), bob +2000 (b0)
        day 15: alice +300  (a1)
        day 20: alice closes a0, carol +50 (c0)
        day 20: bob +700 (b1), bob closes b1 (same-day round trip)
        day 30: bob closes b0

    Returns:
        (ledger, clock, ids) where ids maps labels to CommitmentIds
    """
    ids = {}
    ids['a0'] = ledger.create("alice", Decimal("1000"), 5)
    ids['b0'] = ledger.create("bob", Decimal("2000"), 10)
    clock.set_day(15)
    ids['a1'] = ledger.create("alice", Decimal("300"), 30)
    clock.set_day(20)
    ledger.close("alice", ids['a0'])
    ids['c0'] = ledger.create("carol", Decimal("50"), 0)
    ids['b1'] = ledger.create("bob", Decimal("700"), 0)
    ledger.close("bob", ids['b1'])
    clock.set_day(30)
    ledger.close("bob", ids['b0'])
    return ledger, clock, ids
