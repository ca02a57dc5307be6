"""
tokensale - Multi-Stablecoin Token Sale Ledger

A fixed-window crowdsale that accepts several stablecoins, normalizes them to
one accounting unit, enforces per-account and global caps, gates buyers with
a round-based whitelist and releases the proceeds to a beneficiary.

Usage:
    from datetime import datetime, timedelta
    from tokensale import Chain, TokenSale, create_token

    chain = Chain("local", initial_time=datetime(2025, 1, 1), verbose=False)
    usdt = create_token(chain, "USDT", "Tether USD", 6, 10**12, "alice", returns_bool=False)

    sale = TokenSale(
        chain, owner="owner", beneficiary="treasury",
        min_per_account=200_00, max_per_account=500_00, cap=200_000_00,
        start_time=chain.current_time, duration=timedelta(days=2),
        stable_coins=[usdt.address],
    )
    sale.add_whitelisted_addresses("owner", ["alice"])
    usdt.approve("alice", sale.address, 350 * 10**6)
    sale.buy_with("alice", usdt.address, 350_00)
"""

# Core types
from .core import (
    SALE_DECIMALS,
    ZERO_ADDRESS,
    DEFAULT_GENESIS_TIME,
    Phase,
    AssetTransfer,
    SaleView,
    ParticipantData,
    SaleInfo,
    # Events
    Purchased,
    WhitelistChanged,
    WhitelistRoundChanged,
    OwnershipTransferred,
    SaleEnded,
    FundsWithdrawn,
    TokensRecovered,
    EthRecovered,
    Transfer,
    Approval,
    # Exceptions
    SaleError,
    ZeroAddress,
    ConfigurationError,
    ZeroCap,
    ZeroDuration,
    EndBeforeNow,
    AuthorizationError,
    NotOwner,
    NotBeneficiary,
    NotPendingOwner,
    LifecycleError,
    SaleNotActive,
    NotEnded,
    CapNotReached,
    AdmissibilityError,
    NotWhitelisted,
    ZeroAmount,
    UnsupportedAsset,
    AmountTooLow,
    AmountTooHigh,
    InsufficientRemainingCap,
    InsufficientAllowance,
    AmountNotRepresentable,
    InvalidRound,
    QueryError,
    IndexOutOfRange,
    InvalidRange,
    TransferFailed,
    ReentrantCall,
    NativeTransferRejected,
    AssetError,
    InsufficientBalance,
    AllowanceExceeded,
    ChainError,
    UnknownContract,
    is_zero_address,
    derive_address,
    scale_amount,
)

# Host chain and assets
from .chain import Chain, LoggedEvent
from .tokens import StandardToken, TetherToken, create_token

# Sale components
from .registry import StableCoinRegistry
from .whitelist import Whitelist
from .participants import ParticipantLedger
from .clock import compute_phase, is_cap_reached, remaining_cap, fits_under_cap
from .ownership import Ownable
from .sale import SaleConfig, TokenSale

# Deployment
from .deploy import (
    SaleParameters,
    DeployResult,
    SEED_SALE,
    NETWORK_STABLECOINS,
    chain_name,
    stable_coins_for,
    deploy_token_sale,
)

__all__ = [
    # Core
    'SALE_DECIMALS', 'ZERO_ADDRESS', 'DEFAULT_GENESIS_TIME',
    'Phase', 'AssetTransfer', 'SaleView', 'ParticipantData', 'SaleInfo',
    'is_zero_address', 'derive_address', 'scale_amount',
    # Events
    'Purchased', 'WhitelistChanged', 'WhitelistRoundChanged', 'OwnershipTransferred',
    'SaleEnded', 'FundsWithdrawn', 'TokensRecovered', 'EthRecovered',
    'Transfer', 'Approval',
    # Exceptions
    'SaleError', 'ZeroAddress',
    'ConfigurationError', 'ZeroCap', 'ZeroDuration', 'EndBeforeNow',
    'AuthorizationError', 'NotOwner', 'NotBeneficiary', 'NotPendingOwner',
    'LifecycleError', 'SaleNotActive', 'NotEnded', 'CapNotReached',
    'AdmissibilityError', 'NotWhitelisted', 'ZeroAmount', 'UnsupportedAsset',
    'AmountTooLow', 'AmountTooHigh', 'InsufficientRemainingCap', 'AmountNotRepresentable',
    'InsufficientAllowance', 'InvalidRound',
    'QueryError', 'IndexOutOfRange', 'InvalidRange',
    'TransferFailed', 'ReentrantCall', 'NativeTransferRejected',
    'AssetError', 'InsufficientBalance', 'AllowanceExceeded',
    'ChainError', 'UnknownContract',
    # Chain and assets
    'Chain', 'LoggedEvent', 'StandardToken', 'TetherToken', 'create_token',
    # Sale
    'StableCoinRegistry', 'Whitelist', 'ParticipantLedger',
    'compute_phase', 'is_cap_reached', 'remaining_cap', 'fits_under_cap',
    'Ownable', 'SaleConfig', 'TokenSale',
    # Deployment
    'SaleParameters', 'DeployResult', 'SEED_SALE', 'NETWORK_STABLECOINS',
    'chain_name', 'stable_coins_for', 'deploy_token_sale',
]

__version__ = '1.0.0'
