"""
ledger.py - Single-Token Ledger

TokenLedger is the reference token ledger the lending pool calls into.
It is the only module that mutates balances, so every change goes through
one validated, logged execution path.

Key responsibilities:
    - Implements the TokenLedgerView protocol (balance_of, transfer, transfer_from)
    - Executes transactions atomically (all moves succeed or all fail)
    - Tracks allowances (approve / transfer_from authorization)
    - Owns the ledger clock (monotonic integer time)
    - Always validates and always logs
"""

from __future__ import annotations
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Set, Tuple, Any

from .core import (
    # Types
    Move, Transaction, Token, PendingTransaction, TransactionOrigin,
    ExecuteResult, OriginType, AmountLike, Timestamp, BalanceMap,
    # Constants
    SYSTEM_WALLET,
    # Exceptions
    InsufficientFunds, InsufficientAllowance, WalletNotRegistered,
    # Helpers
    build_transaction, to_amount,
)


class TokenLedger:
    """
    Ledger of a single fungible token with ERC-20 style authorization.

    Design Principles:
        - Always validates: every transaction is checked for wallet
          registration, timestamp and balances. No shortcuts.
        - Always logs: every applied transaction is appended to
          transaction_log with a monotonic sequence number.

    Thread Safety:
        Not thread-safe. LendingPool serializes its own calls with a lock.

    Example:
        ledger = TokenLedger(token("USDT", "Tether USD"))
        ledger.register_wallet("alice")
        ledger.register_wallet("bob")
        ledger.mint("alice", 1000)
        ledger.transfer("alice", "bob", 100)
    """

    def __init__(
        self,
        token: Token,
        name: str = "token",
        initial_time: Timestamp = 0,
        verbose: bool = True,
    ):
        """
        Create a token ledger.

        Args:
            token: The token this ledger accounts for
            name: Ledger identifier (used in execution IDs)
            initial_time: Starting ledger-clock time (default: 0)
            verbose: Print applied and rejected transactions (default: True)
        """
        if initial_time < 0:
            raise ValueError(f"initial_time cannot be negative, got {initial_time}")
        self.token = token
        self.name = name
        self.balances: Dict[str, Decimal] = {}
        self.allowances: Dict[Tuple[str, str], Decimal] = defaultdict(lambda: Decimal("0"))
        self.registered_wallets: Set[str] = set()
        self.transaction_log: List[Transaction] = []
        self._current_time: Timestamp = initial_time
        self.verbose = verbose
        self._next_sequence: int = 0

        # Auto-register the system wallet (used for issuance/redemption)
        self.registered_wallets.add(SYSTEM_WALLET)
        self.balances[SYSTEM_WALLET] = Decimal("0")

    # ========================================================================
    # TokenLedgerView PROTOCOL (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> Timestamp:
        """Current ledger-clock time."""
        return self._current_time

    def balance_of(self, wallet_id: str) -> Decimal:
        """
        Get the token balance of a wallet.

        Raises:
            WalletNotRegistered: If wallet is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        return self.balances[wallet_id]

    def allowance(self, owner: str, spender: str) -> Decimal:
        """Amount spender may still move out of owner's wallet."""
        return self.allowances.get((owner, spender), Decimal("0"))

    def list_wallets(self) -> Set[str]:
        """List all registered wallet IDs."""
        return self.registered_wallets.copy()

    def is_registered(self, wallet_id: str) -> bool:
        """Check if a wallet is registered."""
        return wallet_id in self.registered_wallets

    def total_supply(self) -> Decimal:
        """
        Tokens in circulation: everything held outside the system wallet.

        Wallets are sorted before summation for a deterministic order.
        """
        return sum(
            (self.balances[w] for w in sorted(self.registered_wallets) if w != SYSTEM_WALLET),
            Decimal("0"),
        )

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Verify the double-entry invariant.

        Every token in circulation was issued out of SYSTEM_WALLET, so the
        sum of all balances including the system wallet is always zero.

        Returns:
            Dict with keys:
            - 'valid': bool - True if the invariant holds
            - 'circulating': Decimal - total_supply()
            - 'system': Decimal - the system wallet balance
            - 'net': Decimal - circulating + system (should be 0)
        """
        circulating = self.total_supply()
        system = self.balances[SYSTEM_WALLET]
        net = circulating + system
        return {
            'valid': net == 0,
            'circulating': circulating,
            'system': system,
            'net': net,
        }

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: Timestamp) -> None:
        """
        Move the ledger clock to new_time.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    def increase_time(self, delta: int) -> Timestamp:
        """Advance the clock by delta units and return the new time."""
        if delta < 0:
            raise ValueError(f"delta cannot be negative, got {delta}")
        self.advance_time(self._current_time + delta)
        return self._current_time

    # ========================================================================
    # REGISTRATION AND AUTHORIZATION (Mutating)
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a new wallet with a zero balance.

        Raises:
            ValueError: If wallet is already registered or the id is empty
        """
        if not wallet_id or not wallet_id.strip():
            raise ValueError("wallet_id cannot be empty")
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = Decimal("0")
        return wallet_id

    def approve(self, owner: str, spender: str, amount: AmountLike) -> bool:
        """
        Authorize spender to move up to amount out of owner's wallet.

        Replaces any previous allowance (ERC-20 semantics).
        """
        amount = to_amount(amount)
        self._require_registered(owner)
        self._require_registered(spender)
        self.allowances[(owner, spender)] = amount
        return True

    # ========================================================================
    # TRANSFERS (Mutating)
    # ========================================================================

    def mint(self, to: str, amount: AmountLike) -> bool:
        """Issue new tokens out of SYSTEM_WALLET into `to`."""
        amount = self._coerce(amount)
        origin = TransactionOrigin(OriginType.SYSTEM, SYSTEM_WALLET, "MINT")
        return self._transfer_checked(SYSTEM_WALLET, to, amount, origin)

    def transfer(self, sender: str, to: str, amount: AmountLike) -> bool:
        """
        Move amount from sender to `to`.

        Raises:
            WalletNotRegistered: If either wallet is unknown
            InsufficientFunds: If sender's balance is short
        """
        amount = self._coerce(amount)
        origin = TransactionOrigin(OriginType.USER_ACTION, sender, "TRANSFER")
        return self._transfer_checked(sender, to, amount, origin)

    def transfer_from(self, spender: str, owner: str, to: str, amount: AmountLike) -> bool:
        """
        Move amount from owner to `to`, spending spender's allowance.

        The allowance is checked before the balance, and consumed only when
        the transfer is applied.

        Raises:
            WalletNotRegistered: If a wallet is unknown
            InsufficientAllowance: If owner approved less than amount for spender
            InsufficientFunds: If owner's balance is short
        """
        amount = self._coerce(amount)
        self._require_registered(spender)
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{spender} may spend {allowed} of {owner}'s {self.token.symbol}, needs {amount}"
            )
        origin = TransactionOrigin(OriginType.CONTRACT, spender, "TRANSFER_FROM")
        self._transfer_checked(owner, to, amount, origin)
        self.allowances[(owner, spender)] = allowed - amount
        return True

    def _coerce(self, amount: AmountLike) -> Decimal:
        amount = to_amount(amount)
        if not self.token.is_representable(amount):
            raise ValueError(
                f"{amount} has more than {self.token.decimal_places} decimal places"
            )
        return amount

    def _require_registered(self, wallet_id: str) -> None:
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")

    def _transfer_checked(
        self,
        source: str,
        dest: str,
        amount: Decimal,
        origin: TransactionOrigin,
    ) -> bool:
        """Raise the typed error execute() would only report, then execute."""
        self._require_registered(source)
        self._require_registered(dest)
        # Zero transfers succeed without a log entry
        if amount == 0:
            return True
        if source != SYSTEM_WALLET and self.balances[source] < amount:
            raise InsufficientFunds(
                f"{source} holds {self.balances[source]} {self.token.symbol}, needs {amount}"
            )
        pending = build_transaction(
            self,
            [Move(amount, source, dest, f"{origin.event_type.lower()}_{source}_{dest}")],
            origin,
        )
        # Pre-validated above; REJECTED here would be a ledger bug.
        result = self.execute(pending)
        if result != ExecuteResult.APPLIED:
            raise InsufficientFunds(f"Transfer {source}→{dest} of {amount} rejected")
        return True

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """
        Generate a unique execution ID.

        Format: exec:{ledger_name}:{sequence:012d}:{time}
        """
        return f"exec:{self.name}:{sequence:012d}:{self._current_time}"

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Execute a PendingTransaction atomically.

        All moves succeed together or all fail together. Validation covers
        wallet registration, timestamp and balances.

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.REJECTED if validation failed
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        valid, reason = self._validate_pending(pending)
        if not valid:
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        sequence = self._next_sequence
        self._next_sequence += 1

        tx = Transaction(
            moves=pending.moves,
            origin=pending.origin,
            timestamp=pending.timestamp,
            exec_id=self._generate_exec_id(sequence),
            ledger_name=self.name,
            execution_time=self._current_time,
            sequence_number=sequence,
        )

        self._execute_moves(tx.moves)
        self.transaction_log.append(tx)

        if self.verbose:
            print(repr(tx))
            print("✓ APPLIED")
        return ExecuteResult.APPLIED

    def _validate_pending(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Validate a pending transaction against all constraints.

        Checks performed:
        1. Timestamp (transaction must not be from the future)
        2. Wallet registration
        3. Balances never below zero, except SYSTEM_WALLET

        Returns:
            (success, reason) - reason is empty on success
        """
        if pending.timestamp > self._current_time:
            return False, "future timestamp"

        for move in pending.moves:
            if not self.is_registered(move.source):
                return False, f"wallet not registered: {move.source}"
            if not self.is_registered(move.dest):
                return False, f"wallet not registered: {move.dest}"

        net: BalanceMap = {}
        for move in pending.moves:
            net[move.source] = net.get(move.source, Decimal("0")) - move.quantity
            net[move.dest] = net.get(move.dest, Decimal("0")) + move.quantity

        for wallet, delta in net.items():
            # System wallet is exempt (issuance)
            if wallet == SYSTEM_WALLET:
                continue
            proposed = self.balances[wallet] + delta
            if proposed < 0:
                return False, f"{wallet}: {proposed} < 0 {self.token.symbol}"

        return True, ""

    def _execute_moves(self, moves) -> None:
        for move in moves:
            self.balances[move.source] = self.token.round(self.balances[move.source] - move.quantity)
            self.balances[move.dest] = self.token.round(self.balances[move.dest] + move.quantity)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def transactions_for(self, wallet_id: str) -> List[Transaction]:
        """All logged transactions touching wallet_id, in execution order."""
        return [
            tx for tx in self.transaction_log
            if any(wallet_id in (m.source, m.dest) for m in tx.moves)
        ]

    def get_wallet_balances(self) -> BalanceMap:
        """Snapshot of every registered wallet's balance."""
        return dict(self.balances)
