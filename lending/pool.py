"""
pool.py - Lending Pool (Loan Ledger)

The LendingPool lends a single token out of its own wallet on a token ledger
and takes it back with simple per-period interest.

Each borrower has one loan slot:

    NoLoan  --borrow-->  LoanOpen(principal, opened_at)
    LoanOpen --repay-->  NoLoan

Borrowing while LoanOpen and repaying while NoLoan are rejected.

Every operation follows the same order:
    1. Check all preconditions (first failure wins)
    2. Move tokens through the token ledger
    3. Commit the new loan state
    4. Emit the notification

A failure at steps 1 or 2 leaves nothing behind. Operations are serialized
by a per-pool lock, so that order holds under real threads too.
"""

from __future__ import annotations
from decimal import Decimal
from threading import RLock
from typing import Dict, Optional

from .core import (
    TokenLedgerView, AmountLike, DEFAULT_POOL_WALLET,
    InsufficientPoolFunds, LoanAlreadyOpen, NoOpenLoan, InsufficientRepaymentFunds,
    to_amount,
)
from .events import Borrowed, Repaid, EventLog
from .loan import (
    LendingTerms, LoanOpen, LoanState, RepaymentQuote, NO_LOAN,
    open_loan, calculate_repayment,
)


class LendingPool:
    """
    Loan ledger over a token ledger.

    The pool never stores its own balance; it is re-read from the token
    ledger whenever needed.

    Example:
        ledger = TokenLedger(token("USDT", "Tether USD"), verbose=False)
        pool = LendingPool(ledger)
        ledger.register_wallet("alice")
        ledger.mint(pool.wallet_id, 10_000_000)

        pool.borrow("alice", 10)
        ledger.increase_time(PERIOD_LENGTH)
        ledger.mint("alice", 1)
        ledger.approve("alice", pool.wallet_id, 11)
        pool.repay("alice")            # pays 11
    """

    def __init__(
        self,
        token_ledger: TokenLedgerView,
        wallet_id: str = DEFAULT_POOL_WALLET,
        terms: Optional[LendingTerms] = None,
        verbose: Optional[bool] = None,
    ):
        """
        Create a lending pool.

        Args:
            token_ledger: Token ledger to lend from; fixed for the pool's life
            wallet_id: The pool's identity on the token ledger; registered
                       there if the ledger supports registration and doesn't
                       know it yet
            terms: Interest policy (default: 10% per 1,000,000 time units)
            verbose: Print borrow/repay activity (default: the ledger's setting)
        """
        self._token_ledger = token_ledger
        self.wallet_id = wallet_id
        self.terms = terms or LendingTerms()
        if verbose is None:
            verbose = getattr(token_ledger, 'verbose', False)
        self.verbose = verbose
        self.events = EventLog()
        self._loans: Dict[str, LoanOpen] = {}
        self._lock = RLock()

        is_registered = getattr(token_ledger, 'is_registered', None)
        if is_registered is not None and not is_registered(wallet_id):
            token_ledger.register_wallet(wallet_id)

    @property
    def token_ledger(self) -> TokenLedgerView:
        return self._token_ledger

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def borrow(self, caller: str, amount: AmountLike) -> Borrowed:
        """
        Open a loan of amount for caller.

        Preconditions, in order:
            1. The pool holds at least amount       -> InsufficientPoolFunds
            2. caller has no open loan              -> LoanAlreadyOpen

        A zero amount passes both checks, moves nothing and leaves caller
        without a loan; the Borrowed event is still emitted.

        Raises:
            ValueError: If amount is negative, non-finite, or finer than
                        the token's precision, or if caller is the pool itself
            InsufficientPoolFunds, LoanAlreadyOpen: See above
            LedgerError: Whatever the token ledger raises for the transfer
        """
        amount = self._coerce_amount(amount)
        if caller == self.wallet_id:
            raise ValueError(f"Pool wallet {self.wallet_id} cannot borrow from itself")
        with self._lock:
            pool_balance = self._token_ledger.balance_of(self.wallet_id)
            if pool_balance < amount:
                raise InsufficientPoolFunds(
                    f"Pool holds {pool_balance}, cannot lend {amount}"
                )
            if caller in self._loans:
                raise LoanAlreadyOpen(
                    f"{caller} already owes {self._loans[caller].principal}; repay first"
                )

            now = self._token_ledger.current_time
            state = open_loan(amount, now)
            if isinstance(state, LoanOpen):
                self._token_ledger.transfer(self.wallet_id, caller, amount)
                self._loans[caller] = state

            event = Borrowed(borrower=caller, amount=amount, timestamp=now)
            if self.verbose:
                print(f"[BORROW] {caller} borrowed {amount} at t={now}")
            self.events.emit(event)
            return event

    def repay(self, caller: str) -> Repaid:
        """
        Close caller's loan by paying principal plus accrued interest.

        Pulls the total due from caller with transfer_from, so caller must
        have approved the pool's wallet beforehand. Only the balance is
        pre-checked; a missing allowance surfaces as the token ledger's own
        error.

        Preconditions, in order:
            1. caller has an open loan              -> NoOpenLoan
            2. caller holds at least the total due  -> InsufficientRepaymentFunds
        """
        with self._lock:
            loan = self._loans.get(caller)
            if loan is None:
                raise NoOpenLoan(f"{caller} has no debt to pay")

            quote = self._quote(loan)
            balance = self._token_ledger.balance_of(caller)
            if balance < quote.total_due:
                raise InsufficientRepaymentFunds(
                    f"{caller} holds {balance}, owes {quote.total_due}"
                )

            self._token_ledger.transfer_from(self.wallet_id, caller, self.wallet_id, quote.total_due)
            del self._loans[caller]

            event = Repaid(borrower=caller, total_due=quote.total_due, timestamp=quote.as_of)
            if self.verbose:
                print(
                    f"[REPAY] {caller} repaid {quote.total_due} "
                    f"({quote.periods_elapsed} periods, interest {quote.interest}) at t={quote.as_of}"
                )
            self.events.emit(event)
            return event

    # ========================================================================
    # READS
    # ========================================================================

    def loan_of(self, caller: str) -> LoanState:
        """caller's loan slot: a LoanOpen record or NO_LOAN."""
        with self._lock:
            return self._loans.get(caller, NO_LOAN)

    def outstanding_principal(self, caller: str) -> Decimal:
        """Principal caller still owes (0 if no open loan)."""
        return self.loan_of(caller).principal

    def loan_opened_at(self, caller: str) -> Optional[int]:
        """Ledger time caller's loan was opened, or None without an open loan."""
        loan = self.loan_of(caller)
        if isinstance(loan, LoanOpen):
            return loan.opened_at
        return None

    def quote_repayment(self, caller: str) -> RepaymentQuote:
        """
        What repay(caller) would charge at the current ledger time.

        Raises:
            NoOpenLoan: If caller has nothing to repay
        """
        with self._lock:
            loan = self._loans.get(caller)
            if loan is None:
                raise NoOpenLoan(f"{caller} has no debt to pay")
            return self._quote(loan)

    def open_loans(self) -> Dict[str, LoanOpen]:
        with self._lock:
            return dict(self._loans)

    def total_outstanding(self) -> Decimal:
        """Sum of principal across all open loans."""
        with self._lock:
            return sum((loan.principal for loan in self._loans.values()), Decimal("0"))

    def pool_balance(self) -> Decimal:
        return self._token_ledger.balance_of(self.wallet_id)

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _decimal_places(self) -> Optional[int]:
        token = getattr(self._token_ledger, 'token', None)
        return token.decimal_places if token is not None else None

    def _coerce_amount(self, amount: AmountLike) -> Decimal:
        amount = to_amount(amount)
        token = getattr(self._token_ledger, 'token', None)
        if token is not None and not token.is_representable(amount):
            raise ValueError(
                f"{amount} has more than {token.decimal_places} decimal places"
            )
        return amount

    def _quote(self, loan: LoanOpen) -> RepaymentQuote:
        return calculate_repayment(
            loan,
            self._token_ledger.current_time,
            self.terms,
            self._decimal_places(),
        )
