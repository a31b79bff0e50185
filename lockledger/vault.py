"""
vault.py - Time-lock vault: the business-logic caller of the ledger

The ledger records history; it does not decide whether a deposit or a
withdrawal is allowed. TimeLockVault does:

    deposit:  amount > 0, vault not paused, move value into custody,
              then ledger.create()
    withdraw: vault not paused (unless in emergency), lock matured
              (unless in emergency), release value from custody,
              then ledger.close()

If the ledger call fails, the custody move is undone before the error
propagates, so a failed operation leaves neither custody nor ledger changed.

Custody here is an in-memory per-account balance of value held by the vault.
"""

from __future__ import annotations
from decimal import Decimal
from typing import Dict, Optional
import threading

from .core import (
    ZERO, FLAG_NONE,
    CommitmentId, CommitmentRef,
    LedgerError, InvalidAmount, VaultPaused, LockNotMatured,
    as_commitment_id, to_decimal,
)
from .ledger import DepositLedger


class TimeLockVault:
    """
    Lock-maturity gate, pause/emergency controls and custody around a DepositLedger.

    INVARIANT: total_held() == ledger.current_total() whenever the ledger is
    only mutated through this vault.

    Example:
        clock = ManualClock(0)
        vault = TimeLockVault(DepositLedger("main", clock=clock, verbose=False))
        cid = vault.deposit("alice", Decimal("500"), lock_duration=7)
        clock.advance(7)
        vault.withdraw("alice", cid)   # Decimal("500")
    """

    def __init__(self, ledger: DepositLedger, verbose: Optional[bool] = None):
        self.ledger = ledger
        self.verbose = ledger.verbose if verbose is None else verbose
        self._held: Dict[str, Decimal] = {}
        self._paused = False
        self._emergency = False
        self._lock = threading.RLock()

    # ========================================================================
    # CONTROLS
    # ========================================================================

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def emergency(self) -> bool:
        return self._emergency

    def pause(self) -> None:
        """Stop deposits and withdrawals."""
        with self._lock:
            self._paused = True
            if self.verbose:
                print(f"⏸  PAUSED: vault over {self.ledger.name}")

    def unpause(self) -> None:
        """
        Resume normal operation.

        Raises:
            VaultPaused: If emergency mode is on (emergency cannot be undone)
        """
        with self._lock:
            if self._emergency:
                raise VaultPaused("Vault is in emergency mode and cannot be unpaused")
            self._paused = False
            if self.verbose:
                print(f"▶  UNPAUSED: vault over {self.ledger.name}")

    def enable_emergency(self) -> None:
        """
        Enter emergency mode: deposits stop for good, and withdrawals are
        allowed regardless of pause state or lock maturity.
        """
        with self._lock:
            self._paused = True
            self._emergency = True
            if self.verbose:
                print(f"⚠️  EMERGENCY: vault over {self.ledger.name}")

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def deposit(
        self,
        account: str,
        amount: Decimal,
        lock_duration: int,
        flags: int = FLAG_NONE,
    ) -> CommitmentId:
        """
        Take `amount` into custody and record it as a new commitment.

        Raises:
            InvalidAmount: If amount is not strictly positive
            VaultPaused: If the vault is paused
            LedgerError / ValueError: From the ledger; custody is restored first
        """
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise InvalidAmount(f"Deposit amount must be positive, got {amount}")

        with self._lock:
            if self._paused:
                raise VaultPaused("Vault is paused")

            previous = self._held.get(account)
            self._held[account] = (previous or ZERO) + amount
            try:
                return self.ledger.create(account, amount, lock_duration, flags)
            except (LedgerError, ValueError):
                self._restore(account, previous)
                raise

    def withdraw(self, account: str, commitment_id: CommitmentRef) -> Decimal:
        """
        Close a matured commitment and release its value from custody.

        Returns:
            The amount released

        Raises:
            VaultPaused: If paused and not in emergency mode
            LockNotMatured: If the lock has not expired and not in emergency mode
            NotOwner, CommitmentNotFound, AlreadyClosed: From the ledger
        """
        cid = as_commitment_id(commitment_id)
        with self._lock:
            if self._paused and not self._emergency:
                raise VaultPaused("Vault is paused")

            record = self.ledger.read(account, cid)
            if record.is_active and not self._emergency:
                today = self.ledger.current_day()
                if today < record.maturity_day:
                    raise LockNotMatured(
                        f"Commitment {cid} matures on day {record.maturity_day}, "
                        f"today is day {today}"
                    )

            previous = self._held.get(account)
            self._held[account] = (previous or ZERO) - record.amount
            try:
                closed = self.ledger.close(account, cid)
            except (LedgerError, ValueError):
                self._restore(account, previous)
                raise
            return closed.amount

    def _restore(self, account: str, previous: Optional[Decimal]) -> None:
        if previous is None:
            self._held.pop(account, None)
        else:
            self._held[account] = previous

    # ========================================================================
    # CUSTODY QUERIES
    # ========================================================================

    def held_balance(self, account: str) -> Decimal:
        """Value currently held in custody for `account`."""
        with self._lock:
            return self._held.get(account, ZERO)

    def total_held(self) -> Decimal:
        """Total value held in custody, summed in sorted account order."""
        with self._lock:
            return sum((self._held[a] for a in sorted(self._held)), ZERO)

    def __repr__(self) -> str:
        state = "emergency" if self._emergency else ("paused" if self._paused else "open")
        return f"TimeLockVault({self.ledger.name!r}, {state}, held={self.total_held()})"
