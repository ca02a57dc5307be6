"""
conftest.py - Shared pytest fixtures for TokenSale tests

Provides common fixtures used across unit and functional tests:
- A quiet chain with a fixed starting time
- Two funded stablecoins with different precisions (USDT 6, DAI 18)
- A sale factory with sensible defaults, and a ready-to-use live sale
- A buy() helper that approves and purchases in one step
"""

import pytest
from datetime import datetime, timedelta

from tokensale import Chain, TokenSale, create_token


# =============================================================================
# CONSTANTS
# =============================================================================

START = datetime(2025, 1, 1, 12, 0)

DEPLOYER = "0xdeployer"
OWNER = "0xowner"
NEW_OWNER = "0xnewowner"
BENEFICIARY = "0xbeneficiary"
ALICE = "0xalice"
BOB = "0xbob"
CAROL = "0xcarol"
MALLORY = "0xmallory"

BUYERS = (ALICE, BOB, CAROL, MALLORY)

# Default sale parameters, accounting units (2 decimals)
MIN = 200_00
MAX = 500_00
CAP = 200_000_00
DURATION = timedelta(days=2)


def to_raw(amount: int, decimals: int) -> int:
    """Accounting units -> asset units for assets with at least 2 decimals."""
    return amount * 10 ** (decimals - 2)


# =============================================================================
# CHAIN AND ASSETS
# =============================================================================

@pytest.fixture
def chain():
    """Quiet chain starting at START."""
    return Chain("test", initial_time=START, verbose=False)


@pytest.fixture
def usdt(chain):
    """6-decimal asset whose transfers return None. Every buyer holds 1M."""
    token = create_token(chain, "USDT", "Tether USD", 6, returns_bool=False)
    for buyer in BUYERS:
        token.mint(buyer, 1_000_000 * 10**6)
    return token


@pytest.fixture
def dai(chain):
    """18-decimal asset with boolean transfers. Every buyer holds 1M."""
    token = create_token(chain, "DAI", "Dai Stablecoin", 18)
    for buyer in BUYERS:
        token.mint(buyer, 1_000_000 * 10**18)
    return token


# =============================================================================
# SALES
# =============================================================================

@pytest.fixture
def make_sale(chain, usdt, dai):
    """Factory deploying a sale with default parameters, overridable by keyword."""
    def _make(**overrides) -> TokenSale:
        params = dict(
            owner=OWNER,
            beneficiary=BENEFICIARY,
            min_per_account=MIN,
            max_per_account=MAX,
            cap=CAP,
            start_time=chain.current_time,
            duration=DURATION,
            stable_coins=[usdt.address, dai.address],
        )
        params.update(overrides)
        return TokenSale(chain, **params)
    return _make


@pytest.fixture
def sale(make_sale):
    """Live sale with ALICE and BOB whitelisted for round 1."""
    s = make_sale()
    s.add_whitelisted_addresses(OWNER, [ALICE, BOB])
    return s


@pytest.fixture
def buy():
    """Approve exactly the needed asset amount, then buy_with."""
    def _buy(sale: TokenSale, token, buyer: str, amount: int) -> int:
        raw = sale.registry.to_asset_amount(token.address, amount)
        token.approve(buyer, sale.address, 0)
        token.approve(buyer, sale.address, raw)
        return sale.buy_with(buyer, token.address, amount)
    return _buy


@pytest.fixture
def end_sale(chain):
    """Move the clock past a sale's end time."""
    def _end(sale: TokenSale) -> None:
        chain.set_time(sale.end_time)
    return _end
