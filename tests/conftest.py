"""
conftest.py - Shared pytest fixtures for lending tests

Provides common fixtures used across unit, functional and conformance tests:
- Token ledgers (with the scenario wallets and a funded treasury)
- Lending pools (funded, and with two loans already open)
"""

import pytest

from lending import TokenLedger, LendingPool, Token, token

from tests.scenario import (
    POOL_FUNDING, BORROW_AMOUNT, BORROW_TIME, WALLETS, TREASURY_FUNDING,
)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def usdt() -> Token:
    return token("USDT", "Tether USD")


@pytest.fixture
def token_ledger(usdt):
    """Fresh token ledger with the scenario wallets and a funded treasury."""
    ledger = TokenLedger(usdt, name="test", verbose=False)
    for wallet in WALLETS:
        ledger.register_wallet(wallet)
    ledger.mint("treasury", TREASURY_FUNDING)
    return ledger


# =============================================================================
# POOL FIXTURES
# =============================================================================

@pytest.fixture
def pool(token_ledger):
    """Lending pool holding POOL_FUNDING, no loans open."""
    lending_pool = LendingPool(token_ledger)
    token_ledger.mint(lending_pool.wallet_id, POOL_FUNDING)
    return lending_pool


@pytest.fixture
def borrowed_pool(pool, token_ledger):
    """
    Pool where owner and addr2 each borrowed BORROW_AMOUNT at BORROW_TIME.

    Mirrors the deploy-and-borrow setup of the reference scenario.
    """
    token_ledger.advance_time(BORROW_TIME)
    pool.borrow("owner", BORROW_AMOUNT)
    pool.borrow("addr2", BORROW_AMOUNT)
    return pool
