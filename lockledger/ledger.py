"""
ledger.py - Stateful time-locked deposit ledger

DepositLedger is the central state manager. It composes the commitment
store, checkpoint index, daily aggregate ledger and account registry around
one clock, and is the only object callers mutate.

Key responsibilities:
    - Serializes writes: create/close run under one global lock, so no reader
      sees an account balance updated without the matching global total
    - Implements the HistoryView protocol for read-only consumers
    - Logs every applied mutation to an append-only event log
    - Reconstructs history from the log (replay, clone_at)
    - Verifies per-account and global aggregates agree (verify_consistency)
"""

from __future__ import annotations
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple
import threading

import numpy as np

from .checkpoints import CheckpointIndex
from .clock import Clock, ManualClock
from .commitments import CommitmentStore
from .core import (
    ZERO, FLAG_NONE,
    AccountSummary, Commitment, CommitmentId, CommitmentRef, DailySnapshot,
    EventKind, LedgerEvent,
    LedgerError,
    as_commitment_id, commitment_to_dict, content_hash, event_from_dict,
    event_to_dict,
)
from .daily import DailyAggregateLedger
from .registry import AccountRegistry


class DepositLedger:
    """
    Checkpointed historical balance ledger for time-locked deposits.

    Implements the HistoryView protocol, so it can be handed to reward and
    analytics code that only needs read access.

    Thread Safety:
        Writes are linearized by a single re-entrant lock that covers the
        whole create/close path. Reads take the same lock for the duration
        of one query and therefore see a consistent point-in-time view.

        Readers are serialized with each other as well as with writers.
        The standard library has no reader/writer lock, every query is
        O(1) or O(log k), and the hold time is a single lookup, so one
        exclusive lock is used for both. A read never observes an account
        balance updated without the matching global total.

    Example:
        clock = ManualClock(10)
        ledger = DepositLedger("main", clock=clock)
        cid = ledger.create("alice", Decimal("1000"), lock_duration=30)
        clock.advance(30)
        ledger.close("alice", cid)
        ledger.balance_at("alice", 15)   # Decimal("1000")
        ledger.balance_at("alice", 40)   # Decimal("0")
    """

    def __init__(
        self,
        name: str,
        clock: Optional[Clock] = None,
        verbose: bool = True,
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            clock: Source of the current day index (default: ManualClock at day 0)
            verbose: Print one line per applied or rejected mutation (default: True)
        """
        self.name = name
        self.clock: Clock = clock if clock is not None else ManualClock(0)
        self.verbose = verbose
        self.checkpoints = CheckpointIndex(verbose=verbose)
        self.daily = DailyAggregateLedger()
        self.registry = AccountRegistry()
        self.store = CommitmentStore(self.clock, self.checkpoints, self.daily, self.registry)
        self.event_log: List[LedgerEvent] = []
        self._lock = threading.RLock()

    # ========================================================================
    # WRITES (Mutating)
    # ========================================================================

    def create(
        self,
        account: str,
        amount: Decimal,
        lock_duration: int,
        flags: int = FLAG_NONE,
    ) -> CommitmentId:
        """
        Record a deposit of `amount` locked for `lock_duration` days.

        The caller (normally TimeLockVault) has already moved the underlying
        value.

        Returns:
            Identifier of the new commitment

        Raises:
            CommitmentAlreadyExists: If the allocated identifier collides
            ValueError: If the amount is not positive, the terms are malformed
                        or the clock went backwards
        """
        with self._lock:
            try:
                cid = self.store.create(account, amount, lock_duration, flags)
            except (LedgerError, ValueError) as exc:
                if self.verbose:
                    print(f"✗ REJECTED: deposit {account}: {exc}")
                raise
            record = self.store.stored(cid)
            event = self._log(EventKind.DEPOSIT, account, cid, record)
            if self.verbose:
                print(f"✓ DEPOSIT  {record.amount} {account} day={event.day} "
                      f"lock={record.lock_duration}d id={cid}")
            return cid

    def close(self, account: str, commitment_id: CommitmentRef) -> Commitment:
        """
        Record the withdrawal of an active commitment.

        Maturity is enforced by the caller, not here.

        Returns:
            The closed commitment record

        Raises:
            NotOwner, CommitmentNotFound, AlreadyClosed
            ValueError: If the clock went backwards
        """
        with self._lock:
            try:
                closed = self.store.close(account, commitment_id)
            except (LedgerError, ValueError) as exc:
                if self.verbose:
                    print(f"✗ REJECTED: withdraw {account} {commitment_id}: {exc}")
                raise
            cid = as_commitment_id(commitment_id)
            event = self._log(EventKind.WITHDRAWAL, account, cid, closed)
            if self.verbose:
                print(f"✓ WITHDRAW {closed.amount} {account} day={event.day} id={cid}")
            return closed

    def _log(
        self,
        kind: EventKind,
        account: str,
        cid: CommitmentId,
        record: Commitment,
    ) -> LedgerEvent:
        day = record.start_day if kind == EventKind.DEPOSIT else record.end_day
        event = LedgerEvent(
            sequence=len(self.event_log),
            kind=kind,
            account=account,
            commitment_id=cid,
            amount=record.amount,
            day=day,
            lock_duration=record.lock_duration,
            flags=record.flags,
        )
        self.event_log.append(event)
        return event

    # ========================================================================
    # HistoryView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    def current_day(self) -> int:
        """Current day according to the ledger's clock."""
        return self.clock.current_day()

    def read(self, account: str, commitment_id: CommitmentRef) -> Commitment:
        """
        Return a commitment record (active or closed).

        Raises:
            NotOwner: If the identifier belongs to another account
            CommitmentNotFound: If there is no such record
        """
        with self._lock:
            return self.store.read(account, commitment_id)

    def is_active(self, account: str, commitment_id: CommitmentRef) -> bool:
        with self._lock:
            return self.store.is_active(account, commitment_id)

    def list_ids(self, account: str) -> List[CommitmentId]:
        """All identifiers ever assigned to the account, in creation order."""
        with self._lock:
            return self.store.list_ids(account)

    def summary(self, account: str) -> AccountSummary:
        """Copy of the account's running counters."""
        with self._lock:
            return self.store.summary(account)

    def balance_at(self, account: str, day: int) -> Decimal:
        """Committed balance of `account` as of `day`. O(log k)."""
        with self._lock:
            return self.checkpoints.balance_at(account, day)

    def batch_balance_at(self, accounts: Sequence[str], day: int) -> List[Decimal]:
        """balance_at for each account, read under a single lock acquisition."""
        with self._lock:
            return self.checkpoints.batch_balance_at(accounts, day)

    def balance_series(self, account: str, days: Sequence[int]) -> np.ndarray:
        """Vectorized balance_at over many days."""
        with self._lock:
            return self.checkpoints.balance_series(account, days)

    def checkpoints_of(self, account: str) -> List[Tuple[int, Decimal]]:
        """Ordered (day, balance) checkpoints of the account."""
        with self._lock:
            return self.checkpoints.checkpoints(account)

    def checkpoint_days(self, account: str) -> List[int]:
        with self._lock:
            return self.checkpoints.checkpoint_days(account)

    def snapshot_at(self, day: int) -> DailySnapshot:
        """Global totals as of `day`, carried forward across days without activity."""
        with self._lock:
            return self.daily.snapshot_at(day)

    def stored_snapshot(self, day: int) -> Optional[DailySnapshot]:
        """Raw snapshot materialized for `day`, or None."""
        with self._lock:
            return self.daily.stored_snapshot(day)

    def current_total(self) -> Decimal:
        """Running global committed value. O(1)."""
        with self._lock:
            return self.daily.current_total()

    def current_active_count(self) -> int:
        with self._lock:
            return self.daily.current_active_count()

    def page(self, offset: int, count: int) -> List[str]:
        """
        Slice of the account registry in first-deposit order.

        Raises:
            OutOfBounds: If offset is at or beyond the number of accounts
        """
        with self._lock:
            return self.registry.page(offset, count)

    def count(self) -> int:
        """Number of accounts that have ever deposited."""
        with self._lock:
            return self.registry.count()

    def accounts(self) -> List[str]:
        with self._lock:
            return self.registry.accounts()

    # ========================================================================
    # VERIFICATION
    # ========================================================================

    def verify_consistency(self) -> Dict[str, Any]:
        """
        Verify that per-account and global aggregates agree.

        Checks performed:
        1. Each account's total_active_value and active count match its records
        2. Each account's commitment counter matches its number of records
        3. Each account's checkpoint days are strictly increasing, and its
           latest checkpoint balance equals total_active_value
        4. The running global totals equal the sum over accounts
        5. The snapshot of the latest day equals the running totals
        6. The registry lists exactly the accounts that own records, in order
        7. The zero clamp never fired

        Returns:
            Dict with keys:
            - 'valid': bool - True if every check passed
            - 'total_value': Decimal - running global committed value
            - 'active_count': int - running global active commitment count
            - 'discrepancies': List[Dict] - one entry per failed check

        Example:
            result = ledger.verify_consistency()
            assert result['valid'], result['discrepancies']
        """
        with self._lock:
            discrepancies: List[Dict[str, Any]] = []
            sum_value = ZERO
            sum_count = 0

            for account in self.store.accounts():
                summary = self.store.summary(account)
                records = self.store.commitments(account)
                active = [c for c in records.values() if c.is_active]
                expected_value = sum((c.amount for c in active), ZERO)

                if summary.total_active_value != expected_value:
                    discrepancies.append({
                        'check': 'account_value', 'account': account,
                        'expected': expected_value, 'actual': summary.total_active_value,
                    })
                if summary.active_commitment_count != len(active):
                    discrepancies.append({
                        'check': 'account_count', 'account': account,
                        'expected': len(active), 'actual': summary.active_commitment_count,
                    })
                if summary.commitment_counter != len(records):
                    discrepancies.append({
                        'check': 'commitment_counter', 'account': account,
                        'expected': len(records), 'actual': summary.commitment_counter,
                    })

                days = self.checkpoints.checkpoint_days(account)
                if any(a >= b for a, b in zip(days, days[1:])):
                    discrepancies.append({
                        'check': 'checkpoint_order', 'account': account, 'days': days,
                    })
                latest = self.checkpoints.balance_at(account, days[-1]) if days else ZERO
                if latest != summary.total_active_value:
                    discrepancies.append({
                        'check': 'checkpoint_balance', 'account': account,
                        'expected': summary.total_active_value, 'actual': latest,
                    })

                sum_value += summary.total_active_value
                sum_count += summary.active_commitment_count

            total_value = self.daily.current_total()
            active_count = self.daily.current_active_count()
            if total_value != sum_value or active_count != sum_count:
                discrepancies.append({
                    'check': 'global_totals',
                    'expected': (sum_value, sum_count),
                    'actual': (total_value, active_count),
                })

            latest_day = self.daily.latest_day()
            if latest_day is not None:
                snapshot = self.daily.snapshot_at(latest_day)
                if snapshot != DailySnapshot(total_value, active_count):
                    discrepancies.append({
                        'check': 'latest_snapshot', 'day': latest_day,
                        'expected': (total_value, active_count),
                        'actual': (snapshot.total_value, snapshot.active_count),
                    })

            if self.registry.accounts() != self.store.accounts():
                discrepancies.append({
                    'check': 'registry_order',
                    'expected': self.store.accounts(),
                    'actual': self.registry.accounts(),
                })

            if self.checkpoints.clamp_count:
                discrepancies.append({
                    'check': 'clamp', 'count': self.checkpoints.clamp_count,
                })

            return {
                'valid': len(discrepancies) == 0,
                'total_value': total_value,
                'active_count': active_count,
                'discrepancies': discrepancies,
            }

    # ========================================================================
    # RECONSTRUCTION
    # ========================================================================

    @classmethod
    def from_events(
        cls,
        name: str,
        events: Sequence[LedgerEvent],
        verbose: bool = False,
    ) -> DepositLedger:
        """
        Build a ledger by re-applying an event log in order.

        The rebuilt ledger runs on a ManualClock positioned at the last
        event's day.

        Raises:
            LedgerError: If an event cannot be re-applied or produces a
                         different identifier than the one logged
        """
        first_day = events[0].day if events else 0
        clock = ManualClock(first_day)
        ledger = cls(name, clock=clock, verbose=verbose)

        for event in events:
            try:
                clock.set_day(event.day)
                if event.kind == EventKind.DEPOSIT:
                    cid = ledger.create(event.account, event.amount,
                                        event.lock_duration, event.flags)
                else:
                    cid = as_commitment_id(event.commitment_id)
                    ledger.close(event.account, cid)
            except (LedgerError, ValueError) as exc:
                raise LedgerError(f"Replay failed at event {event.sequence}: {exc}") from exc
            if cid != event.commitment_id:
                raise LedgerError(
                    f"Replay diverged at event {event.sequence}: "
                    f"expected {event.commitment_id}, got {cid}"
                )

        return ledger

    def replay(self) -> DepositLedger:
        """
        Create a new ledger by replaying this ledger's event log from empty.

        The replayed ledger has identical records, checkpoints, snapshots and
        registry order; state_hash() of both is equal.
        """
        with self._lock:
            events = list(self.event_log)
        return DepositLedger.from_events(f"{self.name}_replayed", events, verbose=self.verbose)

    def clone_at(self, target_day: int) -> DepositLedger:
        """
        Reconstruct the ledger as it stood at the end of `target_day`.

        Replays only the events applied on or before target_day.

        Raises:
            ValueError: If target_day is after the current day
        """
        if target_day > self.current_day():
            raise ValueError(f"Target day {target_day} is in the future")
        with self._lock:
            events = [e for e in self.event_log if e.day <= target_day]
        cloned = DepositLedger.from_events(self.name, events, verbose=self.verbose)
        cloned.clock.set_day(max(target_day, cloned.clock.current_day()))
        return cloned

    # ========================================================================
    # EXPORT
    # ========================================================================

    def to_state_dict(self) -> Dict[str, Any]:
        """
        Export the full ledger state as plain Python data.

        Layout:
            commitments: {account: {encoded_id: record}} in creation order
            summaries:   {account: counters}
            checkpoints: {account: [[day, balance], ...]} in day order
            daily:       {'days': [[day, value, count], ...], 'total_value', 'active_count'}
            registry:    [account, ...] in first-deposit order
            events:      [event, ...] in log order

        Amounts are exported as strings to keep Decimal precision.
        """
        with self._lock:
            accounts = self.registry.accounts()
            commitments = {}
            summaries = {}
            checkpoints = {}
            for account in accounts:
                commitments[account] = {
                    cid.encode(): commitment_to_dict(record)
                    for cid, record in self.store.commitments(account).items()
                }
                summary = self.store.summary(account)
                summaries[account] = {
                    'total_active_value': str(summary.total_active_value),
                    'total_rewarded': str(summary.total_rewarded),
                    'total_claimed': str(summary.total_claimed),
                    'commitment_counter': summary.commitment_counter,
                    'active_commitment_count': summary.active_commitment_count,
                    'last_checkpoint_day': summary.last_checkpoint_day,
                }
                checkpoints[account] = [
                    [day, str(balance)] for day, balance in self.checkpoints.checkpoints(account)
                ]
            return {
                'name': self.name,
                'commitments': commitments,
                'summaries': summaries,
                'checkpoints': checkpoints,
                'daily': {
                    'days': [
                        [day, str(s.total_value), s.active_count]
                        for day, s in self.daily.history()
                    ],
                    'total_value': str(self.daily.current_total()),
                    'active_count': self.daily.current_active_count(),
                },
                'registry': accounts,
                'events': [event_to_dict(e) for e in self.event_log],
            }

    @classmethod
    def from_state_dict(cls, data: Dict[str, Any], verbose: bool = False) -> DepositLedger:
        """
        Rebuild a ledger from to_state_dict() output.

        The event log is replayed and the result is checked against the
        exported aggregates.

        Raises:
            LedgerError: If the replayed state does not match the export
        """
        events = [event_from_dict(e) for e in data.get('events', [])]
        ledger = cls.from_events(data.get('name', 'restored'), events, verbose=verbose)
        restored = ledger.to_state_dict()
        for key in ('commitments', 'checkpoints', 'daily', 'registry'):
            if content_hash(restored[key]) != content_hash(data.get(key)):
                raise LedgerError(f"Restored state mismatch in '{key}'")
        return ledger

    def state_hash(self) -> str:
        """
        Content hash of the ledger state (name excluded).

        Two ledgers that applied the same events have the same hash.
        """
        state = self.to_state_dict()
        del state['name']
        return content_hash(state)

    def __repr__(self) -> str:
        return (f"DepositLedger({self.name!r}, accounts={self.registry.count()}, "
                f"events={len(self.event_log)}, total={self.daily.current_total()})")
