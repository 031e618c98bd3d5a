"""
test_core.py - Unit tests for core data structures

Tests:
- Move: creation, validation, immutability
- PendingTransaction / Transaction: creation, validation
- Token: precision and truncation
- to_amount: coercion and rejection of invalid amounts
- Exception hierarchy
"""

import pytest
from decimal import Decimal

from lending import (
    Move, Transaction, PendingTransaction, TransactionOrigin, OriginType,
    Token, token, to_amount, build_transaction,
    LedgerError, InsufficientFunds, InsufficientAllowance, WalletNotRegistered,
    LendingError, InsufficientPoolFunds, LoanAlreadyOpen, NoOpenLoan,
    InsufficientRepaymentFunds,
    INTEREST_RATE, PERIOD_LENGTH, SYSTEM_WALLET,
)
from tests.fake_view import FakeView


def _test_origin() -> TransactionOrigin:
    return TransactionOrigin(
        origin_type=OriginType.USER_ACTION,
        source_id="test",
    )


class TestConstants:
    """Interest policy constants."""

    def test_interest_rate_is_ten_percent(self):
        assert INTEREST_RATE == Decimal("0.10")

    def test_period_length(self):
        assert PERIOD_LENGTH == 1_000_000

    def test_system_wallet(self):
        assert SYSTEM_WALLET == "system"


class TestMove:
    """Tests for Move dataclass."""

    def test_create_valid_move(self):
        move = Move(Decimal("100.0"), "alice", "bob", "tx_001")
        assert move.source == "alice"
        assert move.dest == "bob"
        assert move.quantity == Decimal("100.0")
        assert move.contract_id == "tx_001"

    def test_move_zero_quantity_raises(self):
        with pytest.raises(ValueError, match="must be positive"):
            Move(Decimal("0"), "alice", "bob", "tx_001")

    def test_move_negative_quantity_raises(self):
        with pytest.raises(ValueError, match="must be positive"):
            Move(Decimal("-5"), "alice", "bob", "tx_001")

    def test_move_float_quantity_raises(self):
        with pytest.raises(ValueError, match="must be Decimal"):
            Move(100.0, "alice", "bob", "tx_001")

    def test_move_same_source_dest_raises(self):
        with pytest.raises(ValueError, match="Source and dest must be different"):
            Move(Decimal("100"), "alice", "alice", "tx_001")

    def test_move_empty_source_raises(self):
        with pytest.raises(ValueError, match="source cannot be empty"):
            Move(Decimal("100"), "", "bob", "tx_001")

    def test_move_empty_contract_id_raises(self):
        with pytest.raises(ValueError, match="contract_id cannot be empty"):
            Move(Decimal("100"), "alice", "bob", "  ")

    def test_move_is_frozen(self):
        move = Move(Decimal("100"), "alice", "bob", "tx_001")
        with pytest.raises(AttributeError):
            move.quantity = Decimal("200")


class TestTransactions:
    """Tests for PendingTransaction and Transaction."""

    def test_build_transaction_stamps_view_time(self):
        view = FakeView(balances={}, time=42)
        pending = build_transaction(view, [Move(Decimal("1"), "alice", "bob", "t")])
        assert pending.timestamp == 42
        assert len(pending.moves) == 1
        assert pending.origin.origin_type == OriginType.USER_ACTION

    def test_empty_pending_transaction(self):
        pending = PendingTransaction(moves=(), origin=_test_origin(), timestamp=0)
        assert pending.is_empty()

    def test_transaction_requires_moves(self):
        with pytest.raises(ValueError, match="must have moves"):
            Transaction(
                moves=(),
                origin=_test_origin(),
                timestamp=0,
                exec_id="exec:test:0",
                ledger_name="test",
                execution_time=0,
                sequence_number=0,
            )

    def test_transaction_repr_lists_moves(self):
        tx = Transaction(
            moves=(Move(Decimal("10"), "alice", "bob", "t"),),
            origin=_test_origin(),
            timestamp=5,
            exec_id="exec:test:000000000000:5",
            ledger_name="test",
            execution_time=5,
            sequence_number=0,
        )
        text = repr(tx)
        assert "exec:test:000000000000:5" in text
        assert "alice → bob" in text

    def test_origin_repr(self):
        origin = TransactionOrigin(OriginType.CONTRACT, "lending_pool", "REPAY")
        assert repr(origin) == "Origin(contract:lending_pool, event=REPAY)"


class TestToken:
    """Tests for Token precision handling."""

    def test_default_decimals(self):
        assert token("USDT", "Tether USD").decimal_places == 18

    def test_round_truncates(self):
        t = Token("T", "Two places", decimal_places=2)
        assert t.round(Decimal("1.239")) == Decimal("1.23")

    def test_is_representable(self):
        t = Token("T", "Two places", decimal_places=2)
        assert t.is_representable(Decimal("1.23"))
        assert not t.is_representable(Decimal("1.234"))

    def test_negative_decimals_raises(self):
        with pytest.raises(ValueError, match="decimal_places cannot be negative"):
            Token("T", "Bad", decimal_places=-1)

    def test_empty_symbol_raises(self):
        with pytest.raises(ValueError, match="symbol cannot be empty"):
            token("", "Nameless")


class TestToAmount:
    """Tests for amount coercion."""

    @pytest.mark.parametrize("value,expected", [
        (10, Decimal("10")),
        ("10.5", Decimal("10.5")),
        (0.1, Decimal("0.1")),
        (Decimal("3"), Decimal("3")),
        (0, Decimal("0")),
    ])
    def test_accepts_numeric(self, value, expected):
        assert to_amount(value) == expected

    def test_negative_raises(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            to_amount(-1)

    def test_nan_raises(self):
        with pytest.raises(ValueError, match="must be finite"):
            to_amount(Decimal("NaN"))

    def test_infinity_raises(self):
        with pytest.raises(ValueError, match="must be finite"):
            to_amount("Infinity")

    def test_garbage_raises(self):
        with pytest.raises(ValueError, match="must be numeric"):
            to_amount("ten")

    def test_bool_raises(self):
        with pytest.raises(ValueError, match="must be numeric"):
            to_amount(True)

    def test_name_in_message(self):
        with pytest.raises(ValueError, match="principal cannot be negative"):
            to_amount(-1, name="principal")


class TestExceptionHierarchy:
    """Loan failures and token failures are separate families."""

    @pytest.mark.parametrize("exc", [
        InsufficientPoolFunds, LoanAlreadyOpen, NoOpenLoan, InsufficientRepaymentFunds,
    ])
    def test_lending_errors(self, exc):
        assert issubclass(exc, LendingError)
        assert not issubclass(exc, LedgerError)

    @pytest.mark.parametrize("exc", [
        InsufficientFunds, InsufficientAllowance, WalletNotRegistered,
    ])
    def test_ledger_errors(self, exc):
        assert issubclass(exc, LedgerError)
        assert not issubclass(exc, LendingError)
