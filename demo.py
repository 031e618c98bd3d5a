#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Borrow and Repay Step by Step

A walk through the lending pool on a single-token ledger. Each step builds
on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Setup        - The token ledger, wallets, funding the pool
  4-5:  Borrowing    - Opening loans, one loan per borrower
  6-8:  Repayment    - Interest by whole periods, approval, closing a loan
  9-10: Guarantees   - Rejections change nothing, conservation holds

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from decimal import Decimal
import sys

from lending import (
    TokenLedger, LendingPool, token,
    Borrowed, Repaid,
    LendingError,
    INTEREST_RATE, PERIOD_LENGTH, SYSTEM_WALLET,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    pool_funding: Decimal = Decimal("10000000")
    borrow_amount: Decimal = Decimal("10")
    borrow_time: int = 2_999_999_999
    treasury_funding: Decimal = Decimal("1000")


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def show_balances(ledger: TokenLedger, wallets):
    for wallet in wallets:
        print(f"  {wallet:<14} {ledger.balance_of(wallet)}")


def try_operation(label: str, operation):
    """Run operation, printing the lending error it raises, if any."""
    try:
        operation()
    except LendingError as e:
        print(f"{label}: {type(e).__name__}: {e}")
        return e
    print(f"{label}: succeeded")
    return None


# ============================================================================
# PHASE 1: SETUP (Steps 1-3)
# ============================================================================

def step_01_token_ledger():
    """Create the token ledger the pool will lend from."""
    step_header(1, "The Token Ledger",
        "A single-token ledger holds balances and owns the clock.")

    print(">>> ledger = TokenLedger(token('USDT', 'Tether USD'), name='tutorial')")
    ledger = TokenLedger(token("USDT", "Tether USD"), name="tutorial", verbose=True)

    section_header("Initial State")
    print(f"Token:              {ledger.token.symbol} ({ledger.token.decimal_places} decimals)")
    print(f"Current time:       {ledger.current_time}")
    print(f"Registered wallets: {sorted(ledger.list_wallets())}")

    section_header("Key Insight")
    print(f"""
    Tokens enter circulation out of '{SYSTEM_WALLET}', whose balance goes negative.
    The sum over every wallet is always zero.
    """)
    return ledger


def step_02_wallets(ledger: TokenLedger):
    """Register the participants."""
    step_header(2, "Wallets",
        "Every participant needs a registered wallet.")

    for wallet in ("owner", "addr1", "addr2", "addr3", "treasury"):
        print(f">>> ledger.register_wallet('{wallet}')")
        ledger.register_wallet(wallet)

    print(f"\n>>> ledger.mint('treasury', {CONFIG.treasury_funding})")
    ledger.mint("treasury", CONFIG.treasury_funding)
    return ledger


def step_03_fund_pool(ledger: TokenLedger):
    """Deploy the pool and give it tokens to lend."""
    step_header(3, "Deploying the Pool",
        "The pool is just a wallet on the token ledger plus a loan book.")

    print(">>> pool = LendingPool(ledger)")
    pool = LendingPool(ledger)
    print(f">>> ledger.mint(pool.wallet_id, {CONFIG.pool_funding})")
    ledger.mint(pool.wallet_id, CONFIG.pool_funding)

    section_header("Terms")
    print(f"Interest: {INTEREST_RATE * 100}% of principal per {PERIOD_LENGTH:,} time units")
    print(f"Pool balance: {pool.pool_balance()}")
    return pool


# ============================================================================
# PHASE 2: BORROWING (Steps 4-5)
# ============================================================================

def step_04_borrow(ledger: TokenLedger, pool: LendingPool):
    """Open two loans at the same instant."""
    step_header(4, "Borrowing",
        "borrow() moves tokens out of the pool and records principal and time.")

    print(f">>> ledger.advance_time({CONFIG.borrow_time})")
    ledger.advance_time(CONFIG.borrow_time)

    seen = []
    pool.events.subscribe(seen.append)

    for wallet in ("owner", "addr2"):
        print(f"\n>>> pool.borrow('{wallet}', {CONFIG.borrow_amount})")
        pool.borrow(wallet, CONFIG.borrow_amount)

    section_header("Loan Book")
    for wallet, loan in pool.open_loans().items():
        print(f"  {wallet:<8} principal={loan.principal} opened_at={loan.opened_at}")
    print(f"\nPool balance: {pool.pool_balance()}")
    print(f"Events seen by listener: {seen}")
    return pool


def step_05_one_loan_each(pool: LendingPool):
    """A borrower with an open loan cannot borrow again."""
    step_header(5, "One Loan per Borrower",
        "The loan slot is NoLoan or LoanOpen; borrowing twice is rejected.")

    print(f"owner's slot: {pool.loan_of('owner')}")
    print(f"addr1's slot: {pool.loan_of('addr1')}\n")
    try_operation("pool.borrow('owner', 1)", lambda: pool.borrow("owner", Decimal("1")))
    try_operation(
        f"pool.borrow('addr1', {CONFIG.pool_funding})",
        lambda: pool.borrow("addr1", CONFIG.pool_funding),
    )
    return pool


# ============================================================================
# PHASE 3: REPAYMENT (Steps 6-8)
# ============================================================================

def step_06_accrual(ledger: TokenLedger, pool: LendingPool):
    """Interest grows only at whole-period boundaries."""
    step_header(6, "Interest Accrual",
        "Partial periods earn nothing; each whole period adds 10% of principal.")

    for delta in (0, PERIOD_LENGTH - 1, 1, PERIOD_LENGTH, PERIOD_LENGTH):
        ledger.increase_time(delta)
        quote = pool.quote_repayment("addr2")
        elapsed = ledger.current_time - CONFIG.borrow_time
        print(f"  elapsed={elapsed:>9,}  periods={quote.periods_elapsed}  due={quote.total_due}")
    return pool


def step_07_short_repayment(ledger: TokenLedger, pool: LendingPool):
    """Repayment needs principal plus interest in the borrower's wallet."""
    step_header(7, "Insufficient Funds",
        "A borrower who only holds the principal cannot close the loan.")

    due = pool.quote_repayment("addr2").total_due
    print(f"addr2 owes {due} but holds {ledger.balance_of('addr2')}\n")
    ledger.approve("addr2", pool.wallet_id, due)
    try_operation("pool.repay('addr2')", lambda: pool.repay("addr2"))
    print(f"\naddr2 still owes principal {pool.outstanding_principal('addr2')}")
    return pool


def step_08_repay(ledger: TokenLedger, pool: LendingPool):
    """Top up, approve and repay."""
    step_header(8, "Repaying",
        "repay() pulls the total due with transfer_from and closes the loan.")

    due = pool.quote_repayment("addr2").total_due
    shortfall = due - ledger.balance_of("addr2")
    print(f">>> ledger.transfer('treasury', 'addr2', {shortfall})")
    ledger.transfer("treasury", "addr2", shortfall)
    print(f">>> ledger.approve('addr2', pool.wallet_id, {due})")
    ledger.approve("addr2", pool.wallet_id, due)
    print(">>> pool.repay('addr2')")
    event = pool.repay("addr2")

    section_header("Result")
    print(f"Event:        {event}")
    print(f"addr2 slot:   {pool.loan_of('addr2')}")
    show_balances(ledger, ["addr2", pool.wallet_id])
    return pool


# ============================================================================
# PHASE 4: GUARANTEES (Steps 9-10)
# ============================================================================

def step_09_rejections(ledger: TokenLedger, pool: LendingPool):
    """Failed operations leave no trace."""
    step_header(9, "Rejections Change Nothing",
        "All checks run before any tokens move.")

    before = (ledger.get_wallet_balances(), pool.open_loans(), len(pool.events))
    try_operation("pool.repay('addr3')", lambda: pool.repay("addr3"))
    after = (ledger.get_wallet_balances(), pool.open_loans(), len(pool.events))
    print(f"\nState unchanged: {before == after}")
    return pool


def step_10_conservation(ledger: TokenLedger, pool: LendingPool):
    """Lending only moves tokens around."""
    step_header(10, "Conservation",
        "Borrowing and repaying never create or destroy tokens.")

    check = ledger.verify_conservation()
    print(f"Circulating: {check['circulating']}")
    print(f"System:      {check['system']}")
    print(f"Net:         {check['net']}  (valid={check['valid']})")

    section_header("Event Log")
    print(f"Borrowed events: {len(pool.events.of_type(Borrowed))}")
    print(f"Repaid events:   {len(pool.events.of_type(Repaid))}")
    print(f"Outstanding principal: {pool.total_outstanding()}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       LENDING POOL - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    wait_for_enter()

    ledger = step_01_token_ledger()
    wait_for_enter()

    ledger = step_02_wallets(ledger)
    wait_for_enter()

    pool = step_03_fund_pool(ledger)
    wait_for_enter()

    # Only the pool's own activity from here on
    ledger.verbose = False

    pool = step_04_borrow(ledger, pool)
    wait_for_enter()

    pool = step_05_one_loan_each(pool)
    wait_for_enter()

    pool = step_06_accrual(ledger, pool)
    wait_for_enter()

    pool = step_07_short_repayment(ledger, pool)
    wait_for_enter()

    pool = step_08_repay(ledger, pool)
    wait_for_enter()

    pool = step_09_rejections(ledger, pool)
    wait_for_enter()

    step_10_conservation(ledger, pool)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See lending/loan.py for the accrual functions
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
