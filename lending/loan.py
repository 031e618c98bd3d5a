"""
loan.py - Loan Records and Interest Accrual

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASSES (explicit inputs):
   - LendingTerms: interest policy, fixed when the pool is created
   - NoLoan / LoanOpen: the two states of a borrower's loan slot
   - RepaymentQuote: result of an accrual calculation

2. PURE CALCULATION FUNCTIONS (calculate_*):
   - Take all inputs explicitly as parameters
   - No ledger access, no hidden state
   - Example: calculate_interest(principal, periods, rate) -> Decimal

The pool (pool.py) is the only caller that touches the token ledger; it loads
the borrower's LoanState, calls these functions, then commits.

Key Formulas:
    periods_elapsed = (now - opened_at) // period_length
    interest = periods_elapsed * (principal * interest_rate)
    total_due = principal + interest

Interest is simple (linear in whole periods), never compounding, and zero
until the first full period has elapsed.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from typing import Optional, Union

from .core import (
    INTEREST_RATE, PERIOD_LENGTH, QUANTITY_EPSILON,
    Timestamp,
)


# ============================================================================
# TERMS
# ============================================================================

@dataclass(frozen=True, slots=True)
class LendingTerms:
    """
    Interest policy of a lending pool - set at creation, never changes.

    Attributes:
        interest_rate: Fraction of principal charged per whole period (0.10 = 10%)
        period_length: Ledger-clock units per period
    """
    interest_rate: Decimal = INTEREST_RATE
    period_length: int = PERIOD_LENGTH

    def __post_init__(self):
        if not isinstance(self.interest_rate, Decimal):
            object.__setattr__(self, 'interest_rate', Decimal(str(self.interest_rate)))
        if self.interest_rate.is_nan() or self.interest_rate.is_infinite():
            raise ValueError(f"interest_rate must be finite, got {self.interest_rate}")
        if self.interest_rate < 0:
            raise ValueError(f"interest_rate cannot be negative, got {self.interest_rate}")
        if isinstance(self.period_length, bool) or not isinstance(self.period_length, int):
            raise ValueError(f"period_length must be an integer, got {self.period_length!r}")
        if self.period_length <= 0:
            raise ValueError(f"period_length must be positive, got {self.period_length}")


# ============================================================================
# LOAN STATE
# ============================================================================

@dataclass(frozen=True, slots=True)
class NoLoan:
    """
    Borrower has nothing outstanding.

    Covers both "never borrowed" and "repaid"; there is deliberately no
    timestamp to go stale.
    """

    @property
    def principal(self) -> Decimal:
        return Decimal("0")

    def __repr__(self) -> str:
        return "NoLoan()"


NO_LOAN = NoLoan()


@dataclass(frozen=True, slots=True)
class LoanOpen:
    """
    Borrower owes principal, borrowed at ledger time opened_at.

    Attributes:
        principal: Amount borrowed, excluding interest (strictly positive)
        opened_at: Ledger-clock time the loan was opened
    """
    principal: Decimal
    opened_at: Timestamp

    def __post_init__(self):
        if not isinstance(self.principal, Decimal):
            object.__setattr__(self, 'principal', Decimal(str(self.principal)))
        if self.principal.is_nan() or self.principal.is_infinite():
            raise ValueError(f"principal must be finite, got {self.principal}")
        if self.principal < QUANTITY_EPSILON:
            raise ValueError(f"principal must be positive, got {self.principal}")
        if isinstance(self.opened_at, bool) or not isinstance(self.opened_at, int):
            raise ValueError(f"opened_at must be an integer timestamp, got {self.opened_at!r}")
        if self.opened_at < 0:
            raise ValueError(f"opened_at cannot be negative, got {self.opened_at}")


LoanState = Union[NoLoan, LoanOpen]


def open_loan(principal: Decimal, opened_at: Timestamp) -> LoanState:
    """
    State of a borrower right after borrowing principal at opened_at.

    A zero principal opens nothing: the borrower stays in NoLoan.
    """
    if principal < QUANTITY_EPSILON:
        return NO_LOAN
    return LoanOpen(principal=principal, opened_at=opened_at)


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class RepaymentQuote:
    """
    Cost of closing a loan at a given time.

    Attributes:
        principal: Outstanding principal
        periods_elapsed: Whole periods since the loan was opened
        interest: Accrued simple interest
        total_due: principal + interest
        as_of: Ledger time the quote was computed for
    """
    principal: Decimal
    periods_elapsed: int
    interest: Decimal
    total_due: Decimal
    as_of: Timestamp


def calculate_periods_elapsed(
    opened_at: Timestamp,
    now: Timestamp,
    period_length: int,
) -> int:
    """
    Whole periods between opened_at and now, truncating.

    Raises:
        ValueError: If now is before opened_at (the clock never runs backwards).

    Example:
        calculate_periods_elapsed(0, 2_999_999, 1_000_000) -> 2
    """
    elapsed = now - opened_at
    if elapsed < 0:
        raise ValueError(f"now ({now}) is before opened_at ({opened_at})")
    return elapsed // period_length


def calculate_interest(
    principal: Decimal,
    periods: int,
    interest_rate: Decimal,
    decimal_places: Optional[int] = None,
) -> Decimal:
    """
    Simple interest for a number of whole periods.

    interest = periods * (principal * interest_rate)

    When decimal_places is given the per-period amount is truncated to that
    precision before multiplying by periods, as integer base-unit arithmetic
    does. Over several periods this can be less than truncating the product.
    """
    if periods < 0:
        raise ValueError(f"periods cannot be negative, got {periods}")
    per_period = principal * interest_rate
    if decimal_places is not None and per_period.as_tuple().exponent < -decimal_places:
        per_period = per_period.quantize(Decimal(10) ** -decimal_places, rounding=ROUND_DOWN)
    return periods * per_period


def calculate_repayment(
    loan: LoanOpen,
    now: Timestamp,
    terms: LendingTerms,
    decimal_places: Optional[int] = None,
) -> RepaymentQuote:
    """
    Quote the total due to close loan at time now.

    Args:
        loan: The open loan
        now: Current ledger time
        terms: Interest policy
        decimal_places: Token precision for truncating interest (None = exact)

    Example:
        loan = LoanOpen(Decimal("10"), opened_at=2_999_999_999)
        calculate_repayment(loan, 3_000_999_999, LendingTerms()).total_due
        # -> Decimal("11.00")
    """
    periods = calculate_periods_elapsed(loan.opened_at, now, terms.period_length)
    interest = calculate_interest(loan.principal, periods, terms.interest_rate, decimal_places)
    return RepaymentQuote(
        principal=loan.principal,
        periods_elapsed=periods,
        interest=interest,
        total_due=loan.principal + interest,
        as_of=now,
    )
