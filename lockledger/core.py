"""
Core types and pure functions for the time-locked deposit ledger.

This module provides the foundational data structures and protocols for the ledger:
1. Protocols: HistoryView for read-only historical access
2. Immutable data structures: CommitmentId, Commitment, DailySnapshot, LedgerEvent
3. Mutable per-account counters: AccountSummary
4. Exceptions: LedgerError and domain-specific error types
5. Canonical serialization helpers used for state hashing

Nothing in this module mutates ledger state. The stateful components live in
commitments.py, checkpoints.py, daily.py and registry.py.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
import hashlib
from typing import (
    Dict, List, Optional, Any, Protocol, Sequence, Tuple, Union,
    runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

ZERO = Decimal("0")

# Identifier packing: owner in the high part, per-account sequence in the
# low 96 bits (24 hex digits).
SEQUENCE_BITS = 96
SEQUENCE_HEX_DIGITS = SEQUENCE_BITS // 4
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1
ID_SEPARATOR = "#"

# Commitment flags (provenance/extension bitset, one byte).
MAX_FLAGS = 0xFF
FLAG_NONE = 0x00
FLAG_MIGRATED = 0x01
FLAG_EXTENDED = 0x02


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class CommitmentNotFound(LedgerError):
    """Raised when an identifier has no record, or its record holds no amount."""
    pass


class CommitmentAlreadyExists(LedgerError):
    """Raised when a newly allocated identifier collides with an existing record."""
    pass


class AlreadyClosed(LedgerError):
    """Raised when closing a commitment that has already been closed."""
    pass


class NotOwner(LedgerError):
    """Raised when an identifier decodes to a different account than the caller."""
    pass


class OutOfBounds(LedgerError):
    """Raised when a registry page offset is at or beyond the registry size."""
    pass


class VaultError(LedgerError):
    """Base exception for failures of the time-lock vault gate."""
    pass


class InvalidAmount(VaultError):
    """Raised when a deposit amount is not strictly positive."""
    pass


class VaultPaused(VaultError):
    """Raised when a vault operation is attempted while the vault is paused."""
    pass


class LockNotMatured(VaultError):
    """Raised when withdrawing a commitment before its maturity day."""
    pass


# ============================================================================
# COMMITMENT IDENTIFIER
# ============================================================================

@dataclass(frozen=True, slots=True, order=True)
class CommitmentId:
    """
    Deterministic identity of a single commitment.

    A tagged pair of the owning account and the account's sequence number at
    creation time. The owner is recoverable from the identifier alone, so
    ownership checks never need a lookup.

    Attributes:
        owner: Account that created the commitment.
        sequence: The account's commitment count before this commitment was created.
    """
    owner: str
    sequence: int

    def __post_init__(self):
        if not self.owner or not self.owner.strip():
            raise ValueError("CommitmentId owner cannot be empty")
        if not isinstance(self.sequence, int) or isinstance(self.sequence, bool):
            raise ValueError(f"CommitmentId sequence must be int, got {type(self.sequence)}")
        if self.sequence < 0 or self.sequence > MAX_SEQUENCE:
            raise ValueError(f"CommitmentId sequence out of range: {self.sequence}")

    def encode(self) -> str:
        """Pack into '<owner>#<sequence as 24 hex digits>'."""
        return f"{self.owner}{ID_SEPARATOR}{self.sequence:0{SEQUENCE_HEX_DIGITS}x}"

    @classmethod
    def decode(cls, text: str) -> CommitmentId:
        """
        Recover (owner, sequence) from an encoded identifier.

        The sequence is always the last separator-delimited field, so owners
        containing the separator still decode correctly.

        Raises:
            ValueError: If the text is not a well-formed encoded identifier
        """
        owner, sep, seq_hex = text.rpartition(ID_SEPARATOR)
        if not sep or len(seq_hex) != SEQUENCE_HEX_DIGITS:
            raise ValueError(f"Malformed commitment id: {text!r}")
        try:
            sequence = int(seq_hex, 16)
        except ValueError:
            raise ValueError(f"Malformed commitment id: {text!r}") from None
        return cls(owner, sequence)

    def __str__(self) -> str:
        return self.encode()


CommitmentRef = Union[CommitmentId, str]


def as_commitment_id(ref: CommitmentRef) -> CommitmentId:
    """Accept either a CommitmentId or its encoded string form."""
    if isinstance(ref, CommitmentId):
        return ref
    if isinstance(ref, str):
        return CommitmentId.decode(ref)
    raise ValueError(f"Expected CommitmentId or encoded id, got {type(ref)}")


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Commitment:
    """
    A single deposit event.

    Created once, closed at most once (closing sets end_day), never deleted.

    Attributes:
        amount: Committed value (> 0 for every real record).
        start_day: Day the commitment was created.
        lock_duration: Lock length in days.
        flags: Provenance/extension bitset (0..255).
        end_day: Day the commitment was closed, None while active.
    """
    amount: Decimal
    start_day: int
    lock_duration: int
    flags: int = FLAG_NONE
    end_day: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.end_day is None

    @property
    def maturity_day(self) -> int:
        """First day on which the commitment may be closed by the vault."""
        return self.start_day + self.lock_duration

    def active_on(self, day: int) -> bool:
        """True if this commitment counts toward the balance on `day`."""
        return self.start_day <= day and (self.end_day is None or self.end_day > day)

    def __repr__(self) -> str:
        status = "active" if self.is_active else f"closed@{self.end_day}"
        return (f"Commitment({self.amount} from day {self.start_day}, "
                f"lock={self.lock_duration}d, {status})")


@dataclass(slots=True)
class AccountSummary:
    """
    Per-account counters owned by the commitment store.

    INVARIANT: total_active_value equals the sum of amounts of the account's
    active commitments.

    total_rewarded and total_claimed are kept for the reward collaborator and
    are never changed by the ledger itself.
    """
    total_active_value: Decimal = ZERO
    total_rewarded: Decimal = ZERO
    total_claimed: Decimal = ZERO
    commitment_counter: int = 0
    active_commitment_count: int = 0
    last_checkpoint_day: Optional[int] = None


@dataclass(frozen=True, slots=True)
class DailySnapshot:
    """Global totals as of one day."""
    total_value: Decimal = ZERO
    active_count: int = 0

    def applied(self, amount_delta: Decimal, count_delta: int) -> DailySnapshot:
        return DailySnapshot(self.total_value + amount_delta, self.active_count + count_delta)


class EventKind(Enum):
    """Kind of mutation recorded in the event log."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


@dataclass(frozen=True, slots=True)
class LedgerEvent:
    """
    Immutable record of one applied mutation, for audit and replay.

    Attributes:
        sequence: Monotonic position within the ledger's event log.
        kind: DEPOSIT or WITHDRAWAL.
        account: Acting account.
        commitment_id: Commitment created or closed.
        amount: Committed value moved in or out.
        day: Day the mutation was applied.
        lock_duration: Lock length of the commitment (deposits only carry meaning).
        flags: Commitment flags.
    """
    sequence: int
    kind: EventKind
    account: str
    commitment_id: CommitmentId
    amount: Decimal
    day: int
    lock_duration: int = 0
    flags: int = FLAG_NONE

    def __repr__(self) -> str:
        return (f"Event#{self.sequence}({self.kind.value} {self.amount} "
                f"{self.account} day={self.day} id={self.commitment_id})")


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class HistoryView(Protocol):
    """
    Read-only interface to ledger history.

    This is what the reward/analytics collaborator consumes. Functions
    accepting a HistoryView declare that they never mutate the ledger.
    """

    def balance_at(self, account: str, day: int) -> Decimal:
        """Return the account's committed balance as of `day`."""
        ...

    def batch_balance_at(self, accounts: Sequence[str], day: int) -> List[Decimal]:
        """Return balance_at for each account, in order."""
        ...

    def list_ids(self, account: str) -> List[CommitmentId]:
        """Return every commitment id the account has ever created, in order."""
        ...

    def read(self, account: str, commitment_id: CommitmentRef) -> Commitment:
        """Return the stored commitment record."""
        ...

    def page(self, offset: int, count: int) -> List[str]:
        """Return a stable-ordered slice of the account registry."""
        ...

    def count(self) -> int:
        """Return the number of registered accounts."""
        ...

    def current_total(self) -> Decimal:
        """Return the running global committed total."""
        ...

    def snapshot_at(self, day: int) -> DailySnapshot:
        """Return global totals as of `day`."""
        ...


# ============================================================================
# CANONICAL SERIALIZATION
# ============================================================================

def _normalize_decimal(d: Decimal) -> str:
    """
    Normalize a Decimal to a canonical string representation.

    Decimal("1.0") and Decimal("1.00") both become "1".
    """
    normalized = d.normalize()
    if normalized == normalized.to_integral_value():
        return str(int(normalized))
    return format(normalized, 'f')


def canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Dict keys are sorted, Decimals normalized, and lists keep their order
    (ordering of registry and checkpoint lists is semantically meaningful).
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return f"D:{_normalize_decimal(value)}"
    if isinstance(value, int):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, Enum):
        return f"E:{value.value}"
    if isinstance(value, CommitmentId):
        return f"I:{value.encode()}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{canonicalize(k)}:{canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(canonicalize(item) for item in value)
        return f"[{serialized}]"
    return f"R:{repr(value)}"


def content_hash(value: Any) -> str:
    """SHA-256 hex digest of the canonical form of `value`."""
    return hashlib.sha256(canonicalize(value).encode()).hexdigest()


def commitment_to_dict(commitment: Commitment) -> Dict[str, Any]:
    """Plain-dict form of a commitment for state export."""
    return {
        'amount': str(commitment.amount),
        'start_day': commitment.start_day,
        'end_day': commitment.end_day,
        'lock_duration': commitment.lock_duration,
        'flags': commitment.flags,
    }


def event_to_dict(event: LedgerEvent) -> Dict[str, Any]:
    """Plain-dict form of a ledger event for state export."""
    return {
        'sequence': event.sequence,
        'kind': event.kind.value,
        'account': event.account,
        'commitment_id': event.commitment_id.encode(),
        'amount': str(event.amount),
        'day': event.day,
        'lock_duration': event.lock_duration,
        'flags': event.flags,
    }


def event_from_dict(data: Dict[str, Any]) -> LedgerEvent:
    """Inverse of event_to_dict."""
    return LedgerEvent(
        sequence=data['sequence'],
        kind=EventKind(data['kind']),
        account=data['account'],
        commitment_id=CommitmentId.decode(data['commitment_id']),
        amount=Decimal(data['amount']),
        day=data['day'],
        lock_duration=data.get('lock_duration', 0),
        flags=data.get('flags', FLAG_NONE),
    )


def validate_commitment_terms(lock_duration: int, flags: int) -> None:
    """
    Check the shape of commitment terms before any state is touched.

    Raises:
        ValueError: If lock_duration is not a non-negative int or flags is out of range
    """
    if not isinstance(lock_duration, int) or isinstance(lock_duration, bool):
        raise ValueError(f"lock_duration must be int, got {type(lock_duration)}")
    if lock_duration < 0:
        raise ValueError(f"lock_duration cannot be negative: {lock_duration}")
    if not isinstance(flags, int) or isinstance(flags, bool):
        raise ValueError(f"flags must be int, got {type(flags)}")
    if flags < 0 or flags > MAX_FLAGS:
        raise ValueError(f"flags out of range 0..{MAX_FLAGS}: {flags}")


def to_decimal(amount: Any) -> Decimal:
    """Coerce an int/str/Decimal amount to a finite Decimal."""
    if isinstance(amount, bool):
        raise ValueError("amount cannot be bool")
    if isinstance(amount, float):
        amount = str(amount)
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(amount)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"amount is not a number: {amount!r}") from exc
    if value.is_nan() or value.is_infinite():
        raise ValueError(f"amount must be finite, got {value}")
    return value


def checkpoint_pairs(days: Sequence[int], balances: Dict[int, Decimal]) -> List[Tuple[int, Decimal]]:
    """Zip an ordered day list with its balance map."""
    return [(day, balances[day]) for day in days]
