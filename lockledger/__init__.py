"""
lockledger - Checkpointed Historical Balance Ledger for Time-Locked Deposits

Records every deposit and withdrawal as a commitment with its own identity,
keeps per-account and global aggregates consistent, and answers "what was
this account's balance on day D?" in logarithmic time.

Usage:
    from decimal import Decimal
    from lockledger import DepositLedger, TimeLockVault, ManualClock

    clock = ManualClock(10)
    ledger = DepositLedger("main", clock=clock)
    vault = TimeLockVault(ledger)

    cid = vault.deposit("alice", Decimal("1000"), lock_duration=30)
    clock.advance(30)
    vault.withdraw("alice", cid)

    ledger.balance_at("alice", 20)   # Decimal("1000")
    ledger.balance_at("alice", 40)   # Decimal("0")
    ledger.snapshot_at(25)           # DailySnapshot(total_value=Decimal('1000'), active_count=1)
"""

# Core types
from .core import (
    HistoryView,
    CommitmentId,
    CommitmentRef,
    Commitment,
    AccountSummary,
    DailySnapshot,
    EventKind,
    LedgerEvent,
    LedgerError,
    CommitmentNotFound,
    CommitmentAlreadyExists,
    AlreadyClosed,
    NotOwner,
    OutOfBounds,
    VaultError,
    InvalidAmount,
    VaultPaused,
    LockNotMatured,
    as_commitment_id,
    canonicalize,
    content_hash,
    ZERO,
    SEQUENCE_BITS,
    MAX_SEQUENCE,
    MAX_FLAGS,
    FLAG_NONE,
    FLAG_MIGRATED,
    FLAG_EXTENDED,
)

# Clocks
from .clock import Clock, ManualClock, WallClock, day_index

# Components
from .checkpoints import CheckpointIndex
from .daily import DailyAggregateLedger
from .registry import AccountRegistry
from .commitments import CommitmentStore

# Ledger
from .ledger import DepositLedger

# Vault
from .vault import TimeLockVault

__all__ = [
    # Core
    'HistoryView', 'CommitmentId', 'CommitmentRef', 'Commitment', 'AccountSummary',
    'DailySnapshot', 'EventKind', 'LedgerEvent',
    'LedgerError', 'CommitmentNotFound', 'CommitmentAlreadyExists', 'AlreadyClosed',
    'NotOwner', 'OutOfBounds', 'VaultError', 'InvalidAmount', 'VaultPaused',
    'LockNotMatured',
    'as_commitment_id', 'canonicalize', 'content_hash',
    'ZERO', 'SEQUENCE_BITS', 'MAX_SEQUENCE', 'MAX_FLAGS',
    'FLAG_NONE', 'FLAG_MIGRATED', 'FLAG_EXTENDED',
    # Clocks
    'Clock', 'ManualClock', 'WallClock', 'day_index',
    # Components
    'CheckpointIndex', 'DailyAggregateLedger', 'AccountRegistry', 'CommitmentStore',
    # Ledger
    'DepositLedger',
    # Vault
    'TimeLockVault',
]

__version__ = '1.0.0'
