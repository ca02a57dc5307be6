"""
Core types for the token sale ledger.

This module provides the foundational data structures and protocols:
1. Protocols: AssetTransfer for fungible assets, SaleView for read-only sale access
2. Immutable data structures: ParticipantData, SaleInfo, event records
3. Exceptions: SaleError, AssetError, ChainError and their domain-specific subclasses
4. Constants: accounting precision, zero address, genesis time
5. Address helpers: zero-address checks and deterministic address derivation

Nothing in this module mutates sale or chain state.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import hashlib
from typing import Optional, Protocol, Tuple, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Precision of the sale's accounting unit. Every sale-side amount (caps,
# allocations, balances, purchase amounts) is an integer count of 10**-2
# units of the quote currency, independent of each asset's own decimals.
SALE_DECIMALS = 2

ZERO_ADDRESS = "0x" + "0" * 40

# Logical time a fresh chain starts at.
DEFAULT_GENESIS_TIME = datetime(1970, 1, 1)


# ============================================================================
# ENUMS
# ============================================================================

class Phase(Enum):
    """
    Lifecycle state of a sale, derived from time, cap and the admin flag.

    NOT_STARTED: now < start_time
    LIVE: start_time <= now < end_time and not ended by admin
    ENDED: now >= end_time or ended by admin (terminal)
    """
    NOT_STARTED = "not_started"
    LIVE = "live"
    ENDED = "ended"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class SaleError(Exception):
    """Base exception for all token sale errors."""
    pass


class ZeroAddress(SaleError):
    """Raised when an owner, beneficiary or ownership candidate is the zero address."""
    pass


class ConfigurationError(SaleError):
    """Raised when sale parameters prevent instantiation."""
    pass


class ZeroCap(ConfigurationError):
    pass


class ZeroDuration(ConfigurationError):
    pass


class EndBeforeNow(ConfigurationError):
    """Raised when start_time + duration is not strictly after the current chain time."""
    pass


class AuthorizationError(SaleError):
    """Raised when the caller lacks the identity required by an operation."""
    pass


class NotOwner(AuthorizationError):
    pass


class NotBeneficiary(AuthorizationError):
    pass


class NotPendingOwner(AuthorizationError):
    pass


class LifecycleError(SaleError):
    """Raised when an operation is not allowed in the sale's current phase."""
    pass


class SaleNotActive(LifecycleError):
    pass


class NotEnded(LifecycleError):
    pass


class CapNotReached(LifecycleError):
    pass


class AdmissibilityError(SaleError):
    """Raised when a request is rejected on its own terms; the caller can adjust and retry."""
    pass


class NotWhitelisted(AdmissibilityError):
    pass


class ZeroAmount(AdmissibilityError):
    pass


class UnsupportedAsset(AdmissibilityError):
    pass


class AmountTooLow(AdmissibilityError):
    pass


class AmountTooHigh(AdmissibilityError):
    pass


class InsufficientRemainingCap(AdmissibilityError):
    pass


class InsufficientAllowance(AdmissibilityError):
    pass


class AmountNotRepresentable(AdmissibilityError):
    """Raised when a purchase is finer than the paying asset's decimals."""
    pass


class InvalidRound(AdmissibilityError):
    """Raised when a whitelist round change does not move strictly forward."""
    pass


class QueryError(SaleError):
    """Raised by participant enumeration on a bad index or range."""
    pass


class IndexOutOfRange(QueryError):
    pass


class InvalidRange(QueryError):
    pass


class TransferFailed(SaleError):
    """Raised when an asset transfer reverts, reports failure, or moves the wrong amount."""
    pass


class ReentrantCall(SaleError):
    """Raised when a guarded sale operation is entered while another one is running."""
    pass


class NativeTransferRejected(SaleError):
    """Raised when native currency is sent to a contract that does not accept it."""
    pass


class AssetError(Exception):
    """Base exception for failures inside a fungible asset implementation."""
    pass


class InsufficientBalance(AssetError):
    pass


class AllowanceExceeded(AssetError):
    pass


class ChainError(Exception):
    """Base exception for host chain errors."""
    pass


class UnknownContract(ChainError):
    pass


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class AssetTransfer(Protocol):
    """
    Capability interface for a fungible asset the sale can pull from and push to.

    The sale depends only on this protocol. Implementations may return True,
    return None (assets that predate the boolean return convention), return
    False, or raise AssetError. The sale never trusts the return value alone:
    it verifies every pull by the change in its own balance.
    """

    @property
    def address(self) -> str:
        ...

    def decimals(self) -> int:
        ...

    def balance_of(self, holder: str) -> int:
        ...

    def allowance(self, owner: str, spender: str) -> int:
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> Optional[bool]:
        ...

    def transfer_from(self, spender: str, payer: str, recipient: str, amount: int) -> Optional[bool]:
        ...


@runtime_checkable
class SaleView(Protocol):
    """
    Read-only interface to a sale.

    Auditing helpers and reports accept a SaleView to declare that they
    only read. TokenSale implements it alongside its mutating operations.
    """

    @property
    def collected(self) -> int:
        ...

    def balance_of(self, address: str) -> int:
        ...

    def participant_count(self) -> int:
        ...

    def participants_in_range(self, start: int, end: int) -> Tuple['ParticipantData', ...]:
        ...

    def phase(self) -> Phase:
        ...


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class ParticipantData:
    """A participant address and its cumulative normalized contribution."""
    address: str
    balance: int


@dataclass(frozen=True, slots=True)
class SaleInfo:
    """
    Snapshot of the sale's public state, for dashboards and audits.

    Attributes:
        phase: Derived lifecycle phase at the time of the snapshot
        collected: Total normalized amount contributed so far
        cap: Global maximum normalized amount
        remaining: cap - collected
        participants: Number of distinct contributors
        start_time / end_time: Sale window
        whitelisted_only: Whether the whitelist gate is active
        whitelist_round: Current whitelist round
        ended_by_admin: Whether the owner closed the sale early
    """
    phase: Phase
    collected: int
    cap: int
    remaining: int
    participants: int
    start_time: datetime
    end_time: datetime
    whitelisted_only: bool
    whitelist_round: int
    ended_by_admin: bool


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Purchased:
    contributor: str
    amount: int


@dataclass(frozen=True, slots=True)
class WhitelistChanged:
    whitelisted_only: bool


@dataclass(frozen=True, slots=True)
class WhitelistRoundChanged:
    round: int


@dataclass(frozen=True, slots=True)
class OwnershipTransferred:
    previous_owner: str
    new_owner: str


@dataclass(frozen=True, slots=True)
class SaleEnded:
    """Marker emitted when the owner closes a sold-out sale before its end time."""
    collected: int


@dataclass(frozen=True, slots=True)
class FundsWithdrawn:
    asset: str
    beneficiary: str
    amount: int


@dataclass(frozen=True, slots=True)
class TokensRecovered:
    asset: str
    recipient: str
    amount: int


@dataclass(frozen=True, slots=True)
class EthRecovered:
    recipient: str
    amount: int


@dataclass(frozen=True, slots=True)
class Transfer:
    sender: str
    recipient: str
    amount: int


@dataclass(frozen=True, slots=True)
class Approval:
    owner: str
    spender: str
    amount: int


# ============================================================================
# ADDRESS HELPERS
# ============================================================================

def is_zero_address(address: Optional[str]) -> bool:
    """Return True for None, the empty string, or the all-zero address."""
    return not address or address == ZERO_ADDRESS


def derive_address(*parts: object) -> str:
    """
    Derive a deterministic 20-byte hex address from arbitrary labels.

    Same inputs always produce the same address, so test runs and replays
    see stable identities.
    """
    content = "|".join(str(p) for p in parts)
    return "0x" + hashlib.sha256(content.encode()).hexdigest()[:40]


def scale_amount(amount: int, from_decimals: int, to_decimals: int, exact: bool = False) -> int:
    """
    Rescale an integer amount between two decimal precisions.

    Scaling up is exact. Scaling down truncates, unless exact is set, in
    which case any remainder raises AmountNotRepresentable.
    """
    if to_decimals >= from_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    quotient, remainder = divmod(amount, 10 ** (from_decimals - to_decimals))
    if remainder and exact:
        raise AmountNotRepresentable(
            f"TokenSale: Amount not representable with {to_decimals} decimals"
        )
    return quotient
