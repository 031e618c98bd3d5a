"""
lending - Minimal Token Lending Ledger

Lend a fungible token out of a pooled balance and take it back with simple
per-period interest.

Usage:
    from lending import TokenLedger, LendingPool, token, PERIOD_LENGTH

    ledger = TokenLedger(token("USDT", "Tether USD"))
    pool = LendingPool(ledger)
    ledger.register_wallet("alice")

    # Fund the pool via SYSTEM_WALLET (issuance)
    ledger.mint(pool.wallet_id, 10_000_000)

    # Borrow, let a period pass, repay principal + 10%
    pool.borrow("alice", 10)
    ledger.increase_time(PERIOD_LENGTH)
    ledger.mint("alice", 1)
    ledger.approve("alice", pool.wallet_id, 11)
    pool.repay("alice")
"""

# Core types
from .core import (
    TokenLedgerView,
    Move,
    PendingTransaction,
    Transaction,
    TransactionOrigin,
    OriginType,
    ExecuteResult,
    Token,
    build_transaction,
    token,
    to_amount,
    LedgerError,
    InsufficientFunds,
    InsufficientAllowance,
    WalletNotRegistered,
    LendingError,
    InsufficientPoolFunds,
    LoanAlreadyOpen,
    NoOpenLoan,
    InsufficientRepaymentFunds,
    SYSTEM_WALLET,
    DEFAULT_POOL_WALLET,
    INTEREST_RATE,
    PERIOD_LENGTH,
    DEFAULT_TOKEN_DECIMALS,
)

# Token ledger
from .ledger import TokenLedger

# Loan state and accrual
from .loan import (
    LendingTerms,
    NoLoan,
    LoanOpen,
    LoanState,
    NO_LOAN,
    RepaymentQuote,
    open_loan,
    calculate_periods_elapsed,
    calculate_interest,
    calculate_repayment,
)

# Notifications
from .events import (
    Borrowed,
    Repaid,
    LoanEvent,
    EventListener,
    EventLog,
)

# Lending pool
from .pool import LendingPool

__all__ = [
    # Core
    'TokenLedgerView', 'Move', 'PendingTransaction', 'Transaction',
    'TransactionOrigin', 'OriginType', 'ExecuteResult', 'Token',
    'build_transaction', 'token', 'to_amount',
    'LedgerError', 'InsufficientFunds', 'InsufficientAllowance', 'WalletNotRegistered',
    'LendingError', 'InsufficientPoolFunds', 'LoanAlreadyOpen', 'NoOpenLoan',
    'InsufficientRepaymentFunds',
    'SYSTEM_WALLET', 'DEFAULT_POOL_WALLET', 'INTEREST_RATE', 'PERIOD_LENGTH',
    'DEFAULT_TOKEN_DECIMALS',
    # Token ledger
    'TokenLedger',
    # Loans
    'LendingTerms', 'NoLoan', 'LoanOpen', 'LoanState', 'NO_LOAN', 'RepaymentQuote',
    'open_loan', 'calculate_periods_elapsed', 'calculate_interest', 'calculate_repayment',
    # Events
    'Borrowed', 'Repaid', 'LoanEvent', 'EventListener', 'EventLog',
    # Pool
    'LendingPool',
]

__version__ = '1.0.0'
