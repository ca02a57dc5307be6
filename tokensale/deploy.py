"""
deploy.py - Sale Deployment

Deployment parameters, per-network stablecoin presets and a deploy helper
that reuses an existing deployment instead of deploying twice.

Usage:
    chain = Chain("local", initial_time=datetime(2021, 6, 14))
    result = deploy_token_sale(chain, deployer="0xdeployer", owner="0xowner",
                               stable_coins=[usdt.address, usdc.address])
    sale = result.sale
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Tuple

from .chain import Chain
from .sale import TokenSale


# ============================================================================
# NETWORK PRESETS
# ============================================================================

MAINNET = 1
RINKEBY = 4

_CHAIN_NAMES: Dict[int, str] = {
    MAINNET: "Mainnet",
    RINKEBY: "Rinkeby",
}

# chain id -> accepted stablecoins (USDT, USDC)
NETWORK_STABLECOINS: Dict[int, Tuple[str, ...]] = {
    MAINNET: (
        "0xdAC17F958D2ee523a2206206994597C13D831ec7",
        "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    ),
    RINKEBY: (
        "0x8162AF7F8755c18B11f82F4B3c270B748aEE24B1",
        "0x5Eca482A51E739DF5473a0c09cd5de813d163ed5",
    ),
}

# Development chain ids (local node, coverage runs)
TEST_CHAIN_IDS = frozenset({31337, 1337})


def chain_name(chain_id: int) -> str:
    return _CHAIN_NAMES.get(chain_id, "Unknown")


def stable_coins_for(chain_id: int) -> Tuple[str, ...]:
    """Stablecoin preset for a network. Unknown networks get the mainnet list."""
    return NETWORK_STABLECOINS.get(chain_id, NETWORK_STABLECOINS[MAINNET])


# ============================================================================
# SALE PARAMETERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class SaleParameters:
    """
    Everything needed to deploy a sale except the owner and the accepted assets.

    Attributes:
        beneficiary: Proceeds recipient
        start_time: Opening time; None means "the chain's current time"
        duration: Sale window length
        min_per_account: Minimum balance after a purchase, accounting units
        max_per_account: Maximum per account, accounting units (0 = none)
        cap: Total sellable amount, accounting units
    """
    beneficiary: str
    start_time: Optional[datetime]
    duration: timedelta
    min_per_account: int
    max_per_account: int
    cap: int

    def with_overrides(self, **changes) -> 'SaleParameters':
        return replace(self, **changes)


SEED_SALE = SaleParameters(
    beneficiary="0xbbe982A9BC956B6b315C934e52DE29AB3f6a0185",
    start_time=datetime(2021, 6, 15, 9, 0),
    duration=timedelta(seconds=122400),
    min_per_account=1_00,
    max_per_account=250_00,
    cap=50_000_00,
)


# ============================================================================
# DEPLOYMENT
# ============================================================================

@dataclass(frozen=True, slots=True)
class DeployResult:
    sale: TokenSale
    address: str
    newly_deployed: bool


def deploy_token_sale(
    chain: Chain,
    deployer: str,
    owner: str,
    params: SaleParameters = SEED_SALE,
    stable_coins: Optional[Iterable[str]] = None,
    chain_id: int = 31337,
    name: str = "TokenSale",
) -> DeployResult:
    """
    Deploy a TokenSale, or return the one already registered under name.

    Args:
        chain: Chain to deploy on
        deployer: Account paying for the deployment (reported only)
        owner: Sale owner
        params: Sale parameters (default: SEED_SALE)
        stable_coins: Accepted assets (default: the preset for chain_id)
        chain_id: Network id used to pick presets and label the output
        name: Deployment name

    Returns:
        DeployResult with the sale and whether it was deployed by this call
    """
    if chain.verbose:
        environment = "local" if chain_id in TEST_CHAIN_IDS else "remote"
        print("\n" + "~" * 50)
        print("TokenSale - Deploy Script")
        print("~" * 50 + "\n")
        print(f"network: {chain_name(chain_id)} ({environment})")
        print(f"deployer: {deployer}")
        print("\nDeploying TokenSale...")

    existing = chain.get_deployment(name)
    if existing is not None:
        if chain.verbose:
            print(f"Re-used existing {name} at {existing.address}")
        return DeployResult(existing, existing.address, False)

    coins = tuple(stable_coins) if stable_coins is not None else stable_coins_for(chain_id)
    start_time = params.start_time if params.start_time is not None else chain.current_time

    sale = TokenSale(
        chain,
        owner=owner,
        beneficiary=params.beneficiary,
        min_per_account=params.min_per_account,
        max_per_account=params.max_per_account,
        cap=params.cap,
        start_time=start_time,
        duration=params.duration,
        stable_coins=coins,
        name=name,
    )

    if chain.verbose:
        print(f"{name} deployed at {sale.address}")
        print(list(sale.acceptable_stable_coins()))
        print(sale.beneficiary)
        print("Done!")
    return DeployResult(sale, sale.address, True)
