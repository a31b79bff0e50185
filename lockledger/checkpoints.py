"""
checkpoints.py - Per-account historical balance index

Each account keeps a strictly increasing list of days on which its balance
changed, plus a day -> balance map. A balance is only stored when it changes,
so a query for an arbitrary day is a binary search for the most recent
change at or before that day.

    days     = [10, 15, 20]
    balances = {10: 500, 15: 800, 20: 300}

    balance_at(12) -> 500    (rightmost day <= 12 is 10)
    balance_at(9)  -> 0      (no change yet)

Queries are O(log k) where k is the number of distinct change days.
"""

from bisect import bisect_right
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from .core import ZERO, checkpoint_pairs


class CheckpointIndex:
    """
    Checkpointed balance history, scoped per account.

    INVARIANT: for every account, the recorded day list is strictly increasing.
    A second change on the same day overwrites that day's balance in place.

    Not thread-safe on its own; DepositLedger serializes access.
    """

    def __init__(self, verbose: bool = False):
        self._days: Dict[str, List[int]] = defaultdict(list)
        self._balances: Dict[str, Dict[int, Decimal]] = defaultdict(dict)
        self.verbose = verbose
        # Number of times a decrease was clamped at zero. Stays 0 unless
        # the commitment store's preconditions were bypassed.
        self.clamp_count: int = 0

    def record_delta(self, account: str, day: int, delta: Decimal) -> Decimal:
        """
        Apply a signed balance change for `account` on `day`.

        Args:
            account: Account whose balance changed
            day: Day of the change (must not precede the account's last checkpoint)
            delta: Signed change in committed value

        Returns:
            The account's balance after the change

        Raises:
            ValueError: If day is before the account's last checkpoint day
        """
        days = self._days[account]
        if days and day < days[-1]:
            raise ValueError(
                f"Cannot record checkpoint for {account} on day {day}: "
                f"last checkpoint is day {days[-1]}"
            )

        new_balance = self.balance_at(account, day) + delta
        if new_balance < ZERO:
            self.clamp_count += 1
            if self.verbose:
                print(f"⚠️  CLAMPED: {account} balance {new_balance} on day {day} -> 0")
            new_balance = ZERO

        self._balances[account][day] = new_balance
        if not days or days[-1] != day:
            days.append(day)
        return new_balance

    def balance_at(self, account: str, target_day: int) -> Decimal:
        """
        Balance of `account` as of `target_day`.

        Returns the balance stored for the most recent change day <= target_day,
        or zero if the account had no changes by then.
        """
        balances = self._balances.get(account)
        if not balances:
            return ZERO

        # Exact hit
        exact = balances.get(target_day)
        if exact is not None:
            return exact

        # Binary search: rightmost day <= target_day
        days = self._days[account]
        idx = bisect_right(days, target_day)
        if idx == 0:
            return ZERO
        return balances[days[idx - 1]]

    def batch_balance_at(self, accounts: Iterable[str], target_day: int) -> List[Decimal]:
        """balance_at for each account, in input order."""
        return [self.balance_at(account, target_day) for account in accounts]

    def balance_series(self, account: str, days: Sequence[int]) -> np.ndarray:
        """
        Vectorized balance_at over many days.

        Returns an object-dtype array of Decimals aligned with `days`.
        """
        query = np.asarray(days, dtype=np.int64)
        result = np.full(query.shape, ZERO, dtype=object)
        history = self._days.get(account)
        if not history or query.size == 0:
            return result

        checkpoint_days = np.asarray(history, dtype=np.int64)
        values = np.empty(len(history), dtype=object)
        values[:] = [self._balances[account][d] for d in history]

        idx = np.searchsorted(checkpoint_days, query, side='right')
        known = idx > 0
        result[known] = values[idx[known] - 1]
        return result

    def checkpoint_days(self, account: str) -> List[int]:
        """Ordered copy of the days on which the account's balance changed."""
        return list(self._days.get(account, ()))

    def checkpoints(self, account: str) -> List[Tuple[int, Decimal]]:
        """Ordered (day, balance) pairs for the account."""
        days = self._days.get(account)
        if not days:
            return []
        return checkpoint_pairs(days, self._balances[account])

    def latest_day(self, account: str) -> int:
        """Most recent checkpoint day, or -1 if the account has none."""
        days = self._days.get(account)
        return days[-1] if days else -1

    def accounts(self) -> List[str]:
        """Accounts with at least one checkpoint, in first-change order."""
        return [account for account, days in self._days.items() if days]

    def __len__(self) -> int:
        """Total number of checkpoint entries across all accounts."""
        return sum(len(days) for days in self._days.values())

    def __repr__(self) -> str:
        return f"CheckpointIndex({len(self.accounts())} accounts, {len(self)} checkpoints)"
