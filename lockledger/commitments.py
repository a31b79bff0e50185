"""
commitments.py - Commitment store: the single write path of the ledger

Owns every Commitment record and every AccountSummary. All lifecycle
transitions happen here, and every transition pushes the same signed delta
into the checkpoint index (per account) and the daily aggregate ledger
(global).

Write flow for create():
    1. Read the current day from the clock (must not go backwards)
    2. Allocate CommitmentId(account, counter) and check for a collision
    3. Register the account on its first deposit
    4. Store the record and update the account summary
    5. checkpoints.record_delta(account, day, +amount)
    6. daily.apply_delta(day, +amount, +1)

Every check happens before the first mutation, so a failed call leaves no
trace.
"""

from __future__ import annotations
from dataclasses import replace
from decimal import Decimal
from typing import Dict, List, Optional

from .checkpoints import CheckpointIndex
from .clock import Clock
from .core import (
    ZERO, FLAG_NONE,
    AccountSummary, Commitment, CommitmentId, CommitmentRef,
    AlreadyClosed, CommitmentAlreadyExists, CommitmentNotFound, NotOwner,
    as_commitment_id, to_decimal, validate_commitment_terms,
)
from .daily import DailyAggregateLedger
from .registry import AccountRegistry


class CommitmentStore:
    """
    Arena of commitment records indexed by identifier.

    Records are created once, closed at most once and never deleted, so
    audit queries can always reach closed commitments.
    """

    def __init__(
        self,
        clock: Clock,
        checkpoints: CheckpointIndex,
        daily: DailyAggregateLedger,
        registry: AccountRegistry,
    ):
        self.clock = clock
        self.checkpoints = checkpoints
        self.daily = daily
        self.registry = registry
        self._records: Dict[str, Dict[CommitmentId, Commitment]] = {}
        self._summaries: Dict[str, AccountSummary] = {}
        self._last_day: Optional[int] = None

    # ========================================================================
    # WRITES
    # ========================================================================

    def _today(self) -> int:
        day = self.clock.current_day()
        if self._last_day is not None and day < self._last_day:
            raise ValueError(f"Cannot move time backwards: {day} < {self._last_day}")
        return day

    def create(
        self,
        account: str,
        amount: Decimal,
        lock_duration: int,
        flags: int = FLAG_NONE,
    ) -> CommitmentId:
        """
        Record a new commitment for `account`.

        The amount must be strictly positive; the vault reports this to users
        as InvalidAmount before the ledger is reached.

        Returns:
            The new commitment's identifier

        Raises:
            ValueError: If the amount is not positive, the terms are malformed or
                        the clock went backwards
            CommitmentAlreadyExists: If the allocated identifier already has a record
        """
        if not account or not account.strip():
            raise ValueError("account cannot be empty")
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise ValueError(f"amount must be positive, got {amount}")
        validate_commitment_terms(lock_duration, flags)
        day = self._today()

        summary = self._summaries.get(account) or AccountSummary()
        records = self._records.get(account, {})
        commitment_id = CommitmentId(account, summary.commitment_counter)
        if commitment_id in records:
            raise CommitmentAlreadyExists(f"Commitment {commitment_id} already exists")

        # Validation passed - mutate
        self.registry.register_if_new(account)
        self._summaries[account] = summary
        self._records[account] = records

        records[commitment_id] = Commitment(
            amount=amount,
            start_day=day,
            lock_duration=lock_duration,
            flags=flags,
        )
        summary.commitment_counter += 1
        summary.active_commitment_count += 1
        summary.total_active_value += amount

        self.checkpoints.record_delta(account, day, amount)
        self.daily.apply_delta(day, amount, 1)
        summary.last_checkpoint_day = day
        self._last_day = day
        return commitment_id

    def close(self, account: str, commitment_id: CommitmentRef) -> Commitment:
        """
        Close an active commitment, setting its end day to today.

        Returns:
            The closed record

        Raises:
            NotOwner: If the identifier belongs to another account
            CommitmentNotFound: If there is no such record
            AlreadyClosed: If the commitment was already closed
            ValueError: If the clock went backwards
        """
        cid = as_commitment_id(commitment_id)
        record = self._lookup(account, cid)
        if not record.is_active:
            raise AlreadyClosed(f"Commitment {cid} already closed on day {record.end_day}")
        day = self._today()

        closed = replace(record, end_day=day)
        self._records[account][cid] = closed

        summary = self._summaries[account]
        summary.active_commitment_count -= 1
        summary.total_active_value -= record.amount

        self.checkpoints.record_delta(account, day, -record.amount)
        self.daily.apply_delta(day, -record.amount, -1)
        summary.last_checkpoint_day = day
        self._last_day = day
        return closed

    # ========================================================================
    # READS
    # ========================================================================

    def _lookup(self, account: str, cid: CommitmentId) -> Commitment:
        if cid.owner != account:
            raise NotOwner(f"Commitment {cid} is not owned by {account}")
        record = self._records.get(account, {}).get(cid)
        if record is None or record.amount == ZERO:
            raise CommitmentNotFound(f"Commitment {cid} not found")
        return record

    def stored(self, cid: CommitmentId) -> Commitment:
        """Raw record for an identifier this store issued (no ownership checks)."""
        return self._records[cid.owner][cid]

    def read(self, account: str, commitment_id: CommitmentRef) -> Commitment:
        """Return the stored record (active or closed)."""
        return self._lookup(account, as_commitment_id(commitment_id))

    def is_active(self, account: str, commitment_id: CommitmentRef) -> bool:
        return self._lookup(account, as_commitment_id(commitment_id)).is_active

    def list_ids(self, account: str) -> List[CommitmentId]:
        """
        Every identifier the account has been assigned, in creation order.

        Identifiers are derived from the counter, so nothing extra is stored.
        """
        summary = self._summaries.get(account)
        if summary is None:
            return []
        return [CommitmentId(account, i) for i in range(summary.commitment_counter)]

    def commitments(self, account: str) -> Dict[CommitmentId, Commitment]:
        """Copy of the account's records keyed by identifier, in creation order."""
        return dict(self._records.get(account, {}))

    def summary(self, account: str) -> AccountSummary:
        """Copy of the account's summary (all zeros for an unknown account)."""
        summary = self._summaries.get(account)
        return replace(summary) if summary is not None else AccountSummary()

    def accounts(self) -> List[str]:
        """Accounts that own at least one record, in first-deposit order."""
        return list(self._summaries)

    @property
    def last_day(self) -> Optional[int]:
        """Day of the most recent write, or None if nothing was written."""
        return self._last_day

    def __repr__(self) -> str:
        total = sum(len(r) for r in self._records.values())
        return f"CommitmentStore({len(self._summaries)} accounts, {total} commitments)"
