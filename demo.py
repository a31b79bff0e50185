#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Deposit Ledger Step by Step

A walkthrough of how time-locked deposits are recorded and how their
history is queried. Each step builds on the previous one. Press Enter to
advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation   - The empty ledger, commitments, historical balances
  4-6:  The Vault    - Lock maturity, pause and emergency, global snapshots
  7-8:  Safety       - Rejections, atomicity, consistency checks
  9-10: Time Travel  - clone_at(), replay() and state hashes
  11:   Scale        - Many accounts, many days, vectorized history

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from decimal import Decimal
import random
import sys
import time

from lockledger import (
    DepositLedger, TimeLockVault, ManualClock,
    LockNotMatured, NotOwner, OutOfBounds, VaultPaused,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_day: int = 10

    alice_deposit: Decimal = Decimal("1000.00")
    alice_top_up: Decimal = Decimal("300.00")
    bob_deposit: Decimal = Decimal("2000.00")
    lock_days: int = 30

    # Load test parameters (Step 11)
    load_test_accounts: int = 500
    load_test_days: int = 365
    load_test_operations: int = 20_000


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_empty_ledger():
    """Create an empty ledger on a manual clock."""
    step_header(1, "The Empty Ledger",
        "A ledger starts empty, with only a clock telling it what day it is.")

    print("""
    The ledger measures time in whole DAYS. Every mutation is stamped with
    the clock's current day, and the clock only moves forward.

    Tests and tutorials use ManualClock; services use WallClock, which
    derives the day from UTC wall time.
    """)

    wait_for_enter()

    print(f">>> clock = ManualClock({CONFIG.start_day})")
    clock = ManualClock(CONFIG.start_day)
    print(">>> ledger = DepositLedger('tutorial', clock=clock, verbose=True)")
    ledger = DepositLedger("tutorial", clock=clock, verbose=True)

    section_header("Initial State")
    print(f"Ledger:          {ledger}")
    print(f"Current day:     {ledger.current_day()}")
    print(f"Accounts:        {ledger.accounts()}")
    print(f"Global total:    {ledger.current_total()}")

    return ledger, clock


def step_02_first_commitment(ledger: DepositLedger):
    """Record a deposit as a commitment."""
    step_header(2, "Your First Commitment",
        "Every deposit becomes a commitment with its own identity.")

    print(f">>> cid = ledger.create('alice', Decimal('{CONFIG.alice_deposit}'), "
          f"lock_duration={CONFIG.lock_days})")
    cid = ledger.create("alice", CONFIG.alice_deposit, CONFIG.lock_days)

    section_header("The Identifier")
    print(f"Owner:     {cid.owner}")
    print(f"Sequence:  {cid.sequence}")
    print(f"Encoded:   {cid.encode()}")

    section_header("The Record")
    record = ledger.read("alice", cid)
    print(f"Amount:        {record.amount}")
    print(f"Start day:     {record.start_day}")
    print(f"Matures day:   {record.maturity_day}")
    print(f"Active:        {record.is_active}")

    section_header("Key Insight")
    print("""
    The identifier is (owner, per-account sequence). The k-th deposit of
    an account always gets sequence k, so identifiers are deterministic
    and the owner can be read straight off the id.
    """)
    return cid


def step_03_historical_balances(ledger: DepositLedger, clock: ManualClock):
    """Query balances as of past days."""
    step_header(3, "Historical Balances",
        "balance_at(account, day) answers for any day in O(log k).")

    print(">>> clock.advance(5)")
    clock.advance(5)
    print(f">>> ledger.create('alice', Decimal('{CONFIG.alice_top_up}'), {CONFIG.lock_days})")
    ledger.create("alice", CONFIG.alice_top_up, CONFIG.lock_days)

    section_header("Alice Over Time")
    for day in (5, 10, 12, 15, 100):
        print(f"  balance_at('alice', {day:3d}) = {ledger.balance_at('alice', day)}")

    section_header("Checkpoints")
    for day, balance in ledger.checkpoints_of("alice"):
        print(f"  day {day}: {balance}")

    print("""
    One checkpoint per day with activity. A query finds the latest
    checkpoint at or before the requested day by binary search.
    """)


# ============================================================================
# PHASE 2: THE VAULT (Steps 4-6)
# ============================================================================

def step_04_vault_maturity(ledger: DepositLedger, clock: ManualClock, alice_first):
    """Withdraw through the vault, which enforces lock maturity."""
    step_header(4, "Locks and Maturity",
        "The vault refuses withdrawals before the lock expires.")

    vault = TimeLockVault(ledger)
    print(">>> vault = TimeLockVault(ledger)")
    print(f">>> vault.deposit('bob', Decimal('{CONFIG.bob_deposit}'), {CONFIG.lock_days})")
    bob_cid = vault.deposit("bob", CONFIG.bob_deposit, CONFIG.lock_days)

    section_header("Premature Withdrawal")
    try:
        vault.withdraw("alice", alice_first)
    except LockNotMatured as exc:
        print(f"  LockNotMatured: {exc}")

    section_header("Matured Withdrawal")
    record = ledger.read("alice", alice_first)
    print(f">>> clock.set_day({record.maturity_day})")
    clock.set_day(record.maturity_day)
    released = ledger.close("alice", alice_first)
    print(f"  Released {released.amount}, end_day={released.end_day}")
    print(f"  balance_at('alice', {record.maturity_day - 1}) = "
          f"{ledger.balance_at('alice', record.maturity_day - 1)}")
    print(f"  balance_at('alice', {record.maturity_day}) = "
          f"{ledger.balance_at('alice', record.maturity_day)}")

    print("""
    A commitment closed on day D no longer counts on day D itself.
    """)
    return vault, bob_cid


def step_05_pause_and_emergency(vault: TimeLockVault, bob_cid):
    """Show the vault's operational controls."""
    step_header(5, "Pause and Emergency",
        "Operators can halt the vault; emergency mode lets everyone exit.")

    print(">>> vault.pause()")
    vault.pause()
    try:
        vault.deposit("carol", Decimal("10"), 0)
    except VaultPaused as exc:
        print(f"  VaultPaused: {exc}")

    print(">>> vault.enable_emergency()")
    vault.enable_emergency()
    print(f">>> vault.withdraw('bob', {bob_cid})   # lock not expired, allowed anyway")
    print(f"  Released {vault.withdraw('bob', bob_cid)}")
    print(f"\n  {vault}")


def step_06_global_snapshots(ledger: DepositLedger):
    """Query global totals over time."""
    step_header(6, "Global Snapshots",
        "snapshot_at(day) gives total committed value and active count.")

    last = ledger.current_day()
    for day in (9, 10, 15, 20, last):
        snapshot = ledger.snapshot_at(day)
        stored = "stored" if ledger.stored_snapshot(day) is not None else "carried"
        print(f"  day {day:3d}: total={snapshot.total_value:>10} "
              f"active={snapshot.active_count}  ({stored})")

    print("""
    Snapshots exist only for days with activity. Quiet days carry the
    previous snapshot forward.
    """)


# ============================================================================
# PHASE 3: SAFETY (Steps 7-8)
# ============================================================================

def step_07_rejections(ledger: DepositLedger):
    """Failed operations change nothing."""
    step_header(7, "Rejections and Atomicity",
        "A rejected operation leaves no partial state behind.")

    before = ledger.state_hash()
    alice_ids = ledger.list_ids("alice")

    section_header("Closing Someone Else's Commitment")
    try:
        ledger.close("bob", alice_ids[-1])
    except NotOwner:
        pass

    section_header("Paging Past the End")
    try:
        ledger.page(ledger.count(), 10)
    except OutOfBounds as exc:
        print(f"  OutOfBounds: {exc}")

    print(f"\n  State unchanged: {ledger.state_hash() == before}")


def step_08_consistency(ledger: DepositLedger):
    """Check that every aggregate agrees with the records."""
    step_header(8, "Consistency Check",
        "verify_consistency() cross-checks every aggregate.")

    result = ledger.verify_consistency()
    print(f"  valid:          {result['valid']}")
    print(f"  total_value:    {result['total_value']}")
    print(f"  active_count:   {result['active_count']}")
    print(f"  discrepancies:  {result['discrepancies']}")


# ============================================================================
# PHASE 4: TIME TRAVEL (Steps 9-10)
# ============================================================================

def step_09_clone_at(ledger: DepositLedger):
    """Reconstruct the ledger as of a past day."""
    step_header(9, "Time Travel",
        "clone_at(day) rebuilds the ledger from the event log up to that day.")

    past = ledger.clone_at(CONFIG.start_day + 5)
    print(f"  Then: {past}")
    print(f"  Now:  {ledger}")


def step_10_replay(ledger: DepositLedger):
    """Replay produces identical state."""
    step_header(10, "Replay and Determinism",
        "Replaying the event log yields the same state hash.")

    replayed = ledger.replay()
    print(f"  original: {ledger.state_hash()[:16]}...")
    print(f"  replayed: {replayed.state_hash()[:16]}...")
    print(f"  match:    {ledger.state_hash() == replayed.state_hash()}")


# ============================================================================
# PHASE 5: SCALE (Step 11)
# ============================================================================

def step_11_load_test():
    """Many accounts, many days."""
    step_header(11, "Scale",
        "History queries stay logarithmic as activity grows.")

    rng = random.Random(42)
    clock = ManualClock(0)
    ledger = DepositLedger("load", clock=clock, verbose=False)
    accounts = [f"acct{i:04d}" for i in range(CONFIG.load_test_accounts)]
    active = {a: [] for a in accounts}

    start = time.perf_counter()
    for i in range(CONFIG.load_test_operations):
        if i % (CONFIG.load_test_operations // CONFIG.load_test_days) == 0:
            clock.advance(1)
        account = rng.choice(accounts)
        if active[account] and rng.random() < 0.3:
            ledger.close(account, active[account].pop(0))
        else:
            amount = Decimal(rng.randint(1, 10_000))
            active[account].append(ledger.create(account, amount, 0))
    elapsed = time.perf_counter() - start
    print(f"  {CONFIG.load_test_operations:,} operations in {elapsed:.2f}s")

    start = time.perf_counter()
    days = list(range(0, clock.current_day() + 1))
    for account in accounts[:50]:
        ledger.balance_series(account, days)
    elapsed = time.perf_counter() - start
    print(f"  {50 * len(days):,} historical lookups in {elapsed:.3f}s")
    print(f"  consistent: {ledger.verify_consistency()['valid']}")


def main():
    print("=" * 70)
    print("       DEPOSIT LEDGER TUTORIAL")
    print("=" * 70)

    ledger, clock = step_01_empty_ledger()
    wait_for_enter()
    alice_first = step_02_first_commitment(ledger)
    wait_for_enter()
    step_03_historical_balances(ledger, clock)
    wait_for_enter()

    vault, bob_cid = step_04_vault_maturity(ledger, clock, alice_first)
    wait_for_enter()
    step_05_pause_and_emergency(vault, bob_cid)
    wait_for_enter()
    step_06_global_snapshots(ledger)
    wait_for_enter()

    step_07_rejections(ledger)
    wait_for_enter()
    step_08_consistency(ledger)
    wait_for_enter()

    step_09_clone_at(ledger)
    wait_for_enter()
    step_10_replay(ledger)
    wait_for_enter()

    step_11_load_test()

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See lockledger/ledger.py for the DepositLedger facade
      - See lockledger/vault.py for lock enforcement
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
