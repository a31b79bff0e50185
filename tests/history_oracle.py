"""
history_oracle.py - Brute-force reference answers for historical queries

Recomputes balances and global totals directly from the commitment records,
without touching the checkpoint index or the daily aggregate ledger.
"""

from decimal import Decimal
from typing import Dict, List, Tuple

from lockledger import DepositLedger, DailySnapshot, ZERO


def expected_balance(ledger: DepositLedger, account: str, day: int) -> Decimal:
    """Sum of amounts of the account's commitments active on `day`."""
    records = ledger.store.commitments(account)
    return sum((c.amount for c in records.values() if c.active_on(day)), ZERO)


def expected_snapshot(ledger: DepositLedger, day: int) -> DailySnapshot:
    """Global (value, count) of all commitments active on `day`."""
    value = ZERO
    count = 0
    for account in ledger.store.accounts():
        for c in ledger.store.commitments(account).values():
            if c.active_on(day):
                value += c.amount
                count += 1
    return DailySnapshot(value, count)


def replay_reference(events: List[Tuple[str, str, Decimal, int]]) -> Dict[str, Dict[int, Decimal]]:
    """
    Per-account, per-day balances from a plain list of
    (kind, account, amount, day) tuples, where kind is "in" or "out".

    Only days present in the list get an entry.
    """
    balances: Dict[str, Decimal] = {}
    history: Dict[str, Dict[int, Decimal]] = {}
    for kind, account, amount, day in events:
        delta = amount if kind == "in" else -amount
        balances[account] = balances.get(account, ZERO) + delta
        history.setdefault(account, {})[day] = balances[account]
    return history
