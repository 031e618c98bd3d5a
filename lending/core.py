"""
Core types and pure functions for the lending ledger.

This module provides the foundational data structures and protocols:
1. Protocols: TokenLedgerView for the token ledger the lending pool calls into
2. Immutable data structures: Move, PendingTransaction, Transaction, Token
3. Exceptions: LedgerError (token ledger) and LendingError (loan ledger) families
4. Constants: interest policy, reserved wallets, precision
5. Amount coercion shared by every public entry point

All functions in this module are pure. Nothing here mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, DefaultContext, ROUND_DOWN, getcontext
from enum import Enum
from typing import Dict, List, Optional, Protocol, Tuple, Union, runtime_checkable


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Token amounts use 18 decimal places and can be large (10^7 tokens and up),
# so the context needs well over 28 significant digits.
#
# PRECONDITION: No other code should modify the global Decimal context.
#
_LENDING_DECIMAL_CONTEXT = getcontext()
_LENDING_DECIMAL_CONTEXT.prec = 60
# Threads started later copy DefaultContext, not this thread's context
DefaultContext.prec = 60


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and redemption.
# The system wallet is exempt from balance validation and can hold any balance.
SYSTEM_WALLET = "system"

# Default identity of the lending pool on the token ledger.
DEFAULT_POOL_WALLET = "lending_pool"

# Interest policy: 10% of principal per whole period.
INTEREST_RATE = Decimal("0.10")

# Length of one interest period in ledger-clock units (seconds).
PERIOD_LENGTH = 1_000_000

# Same precision as an ERC-20 token with 18 decimals.
DEFAULT_TOKEN_DECIMALS = 18

# Quantities with absolute value below this threshold are treated as zero.
QUANTITY_EPSILON = Decimal("1e-18")


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Anything accepted where a token amount is expected.
AmountLike = Union[Decimal, int, float, str]

# Ledger-clock timestamp.
Timestamp = int

# Mapping from wallet ID to token balance.
BalanceMap = Dict[str, Decimal]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class TokenLedgerView(Protocol):
    """
    The token ledger as seen by the lending pool.

    The pool relies on balance_of for its precondition checks and on
    transfer / transfer_from to move funds. Authorization (allowances) is
    owned entirely by the token ledger and its users.

    TokenLedger implements this protocol. For testing, FakeView provides a
    scripted implementation.
    """

    @property
    def current_time(self) -> Timestamp:
        """Return the current ledger-clock time."""
        ...

    def balance_of(self, wallet_id: str) -> Decimal:
        """Return the token balance held by a wallet."""
        ...

    def transfer(self, sender: str, to: str, amount: Decimal) -> bool:
        """Move amount from sender to `to`. Raises on failure."""
        ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: Decimal) -> bool:
        """Move amount from owner to `to` using spender's allowance. Raises on failure."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was validated and applied to the ledger.
    REJECTED: Transaction failed validation (unknown wallet, insufficient
              balance, future timestamp).
    """
    APPLIED = "applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """Classification of where a transaction originated."""
    USER_ACTION = "user_action"           # Direct transfer between holders
    CONTRACT = "contract"                 # Spending an allowance (transfer_from)
    SYSTEM = "system"                     # Issuance, redemption


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for token ledger errors."""
    pass


class InsufficientFunds(LedgerError):
    """Raised when a transfer would take a wallet balance below zero."""
    pass


class InsufficientAllowance(LedgerError):
    """Raised when transfer_from exceeds the amount the owner approved."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when operating on a wallet that has not been registered."""
    pass


class LendingError(Exception):
    """Base exception for rejected borrow/repay operations."""
    pass


class InsufficientPoolFunds(LendingError):
    """Requested borrow amount exceeds the pool's current balance."""
    pass


class LoanAlreadyOpen(LendingError):
    """Caller tried to borrow while a loan with non-zero principal is open."""
    pass


class NoOpenLoan(LendingError):
    """Caller tried to repay without an open loan."""
    pass


class InsufficientRepaymentFunds(LendingError):
    """Caller's token balance is less than the total due."""
    pass


# ============================================================================
# AMOUNTS
# ============================================================================

def to_amount(value: AmountLike, name: str = "amount") -> Decimal:
    """
    Coerce a user-supplied quantity to a non-negative finite Decimal.

    Floats go through str() so that 0.1 becomes Decimal("0.1").

    Raises:
        ValueError: If the value is not numeric, negative, NaN or infinite.
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be numeric, got {value!r}")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except ArithmeticError:
            raise ValueError(f"{name} must be numeric, got {value!r}") from None
    if value.is_nan() or value.is_infinite():
        raise ValueError(f"{name} must be finite, got {value}")
    if value < 0:
        raise ValueError(f"{name} cannot be negative, got {value}")
    return value


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of tokens between two wallets.

    Attributes:
        quantity: The amount to transfer (must be finite and positive).
        source: The wallet ID from which tokens are debited.
        dest: The wallet ID to which tokens are credited.
        contract_id: Identifier of whatever generated this move.
    """
    quantity: Decimal
    source: str
    dest: str
    contract_id: str

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if not isinstance(self.quantity, Decimal):
            raise ValueError(f"Move quantity must be Decimal, got {type(self.quantity)}")
        if self.quantity.is_infinite() or self.quantity.is_nan():
            raise ValueError(f"Move quantity must be finite, got {self.quantity}")
        if self.quantity < QUANTITY_EPSILON:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source
        source_id: Identifier of the specific source (pool wallet, user ID, etc.)
        event_type: Specific event within the source (e.g., "BORROW", "REPAY")
    """
    origin_type: OriginType
    source_id: str
    event_type: Optional[str] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.event_type:
            parts.append(f"event={self.event_type}")
        return f"Origin({', '.join(parts)})"


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction before execution - represents INTENT.

    Built by build_transaction() and submitted to TokenLedger.execute().

    Attributes:
        moves: Tuple of token transfers between wallets
        origin: Who/what created this transaction and why
        timestamp: Ledger time at which the intent was formed
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    timestamp: Timestamp

    def is_empty(self) -> bool:
        """Return True if this pending transaction has no moves."""
        return not self.moves

    def __repr__(self) -> str:
        return f"PendingTransaction({len(self.moves)} moves, {self.origin})"


def build_transaction(
    view: TokenLedgerView,
    moves: List[Move],
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction stamped with the view's current time.

    Args:
        view: Token ledger view (provides current_time)
        moves: Moves to include in the transaction
        origin: Transaction origin (defaults to a USER_ACTION origin)

    Example:
        tx = build_transaction(ledger, [
            Move(Decimal("10"), "alice", "bob", "payment_001")
        ])
        ledger.execute(tx)
    """
    if origin is None:
        origin = TransactionOrigin(OriginType.USER_ACTION, "user")
    return PendingTransaction(
        moves=tuple(moves),
        origin=origin,
        timestamp=view.current_time,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of balance changes - represents FACT.

    Attributes:
        moves: Tuple of token transfers between wallets
        origin: Who/what created this transaction and why
        timestamp: Ledger time of the PendingTransaction
        exec_id: Unique execution identifier (ledger + sequence + time)
        ledger_name: Name of the ledger that executed this
        execution_time: Ledger time at which it was applied
        sequence_number: Monotonic sequence within the ledger
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    timestamp: Timestamp
    exec_id: str
    ledger_name: str
    execution_time: Timestamp
    sequence_number: int

    def __post_init__(self):
        if not self.moves:
            raise ValueError("Transaction must have moves")

    def __repr__(self) -> str:
        w = 80
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            f"┌{bar}┐",
            f"│{pad(' Transaction: ' + self.exec_id)}│",
            f"├{bar}┤",
            f"│{pad('   timestamp      : ' + str(self.timestamp))}│",
            f"│{pad('   sequence       : ' + str(self.sequence_number))}│",
            f"│{pad('   origin         : ' + str(self.origin))}│",
            f"├{bar}┤",
            f"│{pad(' Moves (' + str(len(self.moves)) + '):')}│",
        ]
        for i, move in enumerate(self.moves):
            lines.append(f"│{pad(f'   [{i}] {move.quantity}: {move.source} → {move.dest}')}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class Token:
    """
    Definition of the fungible token held by a TokenLedger.

    Attributes:
        symbol: Short identifier (e.g., "USDT").
        name: Human-readable name.
        decimal_places: Smallest representable fraction is 10**-decimal_places.
    """
    symbol: str
    name: str
    decimal_places: int = DEFAULT_TOKEN_DECIMALS

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Token symbol cannot be empty")
        if self.decimal_places < 0:
            raise ValueError(f"decimal_places cannot be negative, got {self.decimal_places}")

    def round(self, value: Decimal) -> Decimal:
        """Truncate a value to this token's precision (base units are integers)."""
        quantizer = Decimal(10) ** -self.decimal_places
        return value.quantize(quantizer, rounding=ROUND_DOWN)

    def is_representable(self, value: Decimal) -> bool:
        """True if value needs no more decimal places than the token has."""
        return self.round(value) == value


def token(symbol: str, name: str, decimal_places: int = DEFAULT_TOKEN_DECIMALS) -> Token:
    """
    Create a token definition.

    Args:
        symbol: Token symbol (e.g., "USDT").
        name: Full name (e.g., "Tether USD").
        decimal_places: Precision (default: 18).
    """
    return Token(symbol=symbol, name=name, decimal_places=decimal_places)
