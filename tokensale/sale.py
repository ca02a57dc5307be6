"""
sale.py - Token Sale

TokenSale is the single aggregate holding all sale state. It combines:
    - SaleConfig: immutable parameters, validated at construction
    - StableCoinRegistry: accepted assets and their precisions
    - Whitelist: round-based eligibility
    - ParticipantLedger: who contributed how much, in order
    - clock functions: phase derived from time, cap and the admin flag
    - Ownable: owner / pending owner

Every state-mutating operation runs under a call guard that:
    1. serializes callers with a per-sale lock
    2. rejects reentry from inside a running operation (ReentrantCall)
    3. snapshots sale and chain state, and restores both on any exception

Callers identify themselves with an explicit caller address, the way a
transaction carries its sender.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Tuple
import functools
import threading

from .chain import Chain
from .clock import compute_phase, fits_under_cap, is_cap_reached, remaining_cap
from .core import (
    Phase, ParticipantData, SaleInfo,
    # Events
    Purchased, WhitelistChanged, WhitelistRoundChanged, SaleEnded,
    FundsWithdrawn, TokensRecovered, EthRecovered,
    # Exceptions
    AssetError, AssetTransfer, AmountTooHigh, AmountTooLow, CapNotReached,
    EndBeforeNow, InsufficientAllowance, InsufficientRemainingCap,
    NativeTransferRejected, NotBeneficiary, NotEnded, NotWhitelisted,
    ReentrantCall, SaleNotActive, TransferFailed, UnsupportedAsset,
    ZeroAddress, ZeroAmount, ZeroCap, ZeroDuration,
    is_zero_address,
)
from .ownership import Ownable
from .participants import ParticipantLedger
from .registry import StableCoinRegistry
from .whitelist import Whitelist


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class SaleConfig:
    """
    Immutable sale parameters.

    Amounts are in accounting units (see SALE_DECIMALS).

    Attributes:
        owner: Administrator address
        beneficiary: Address allowed to withdraw the proceeds
        min_per_account: Minimum balance after any purchase (0 = no minimum)
        max_per_account: Maximum cumulative amount per account (0 = only the cap applies)
        cap: Maximum total amount the sale can collect (> 0)
        start_time: First instant purchases are accepted
        duration: Length of the sale window (> 0)
        stable_coins: Accepted asset addresses, in listing order
    """
    owner: str
    beneficiary: str
    min_per_account: int
    max_per_account: int
    cap: int
    start_time: datetime
    duration: timedelta
    stable_coins: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if is_zero_address(self.owner):
            raise ZeroAddress("Ownable: zero address")
        if is_zero_address(self.beneficiary):
            raise ZeroAddress("TokenSale: zero address")
        if self.cap <= 0:
            raise ZeroCap("TokenSale: Cap is 0")
        if self.duration <= timedelta(0):
            raise ZeroDuration("TokenSale: Duration is 0")
        if self.min_per_account < 0 or self.max_per_account < 0:
            raise ValueError("Per-account limits cannot be negative")
        if not isinstance(self.stable_coins, tuple):
            object.__setattr__(self, 'stable_coins', tuple(self.stable_coins))

    @property
    def end_time(self) -> datetime:
        return self.start_time + self.duration


# ============================================================================
# CALL GUARD
# ============================================================================

# Sale attributes a failed call must put back.
_MUTABLE_STATE = (
    'whitelist', 'participants', 'raised_by_asset', 'ended_by_admin',
    'owner', 'pending_owner',
)


def guarded(method):
    """
    Run a TokenSale method as one serialized, non-reentrant, atomic call.

    The wrapped method's first argument after self is the caller address.
    """
    @functools.wraps(method)
    def wrapper(self: 'TokenSale', caller: str, *args, **kwargs):
        with self._lock:
            if self._entered:
                raise ReentrantCall(f"TokenSale: reentrant call to {method.__name__}")
            self._entered = True
            try:
                with self.chain.atomic(
                    f"TokenSale.{method.__name__}",
                    caller=caller,
                    extra_state=self._capture_state(),
                    restore_extra=self._restore_state,
                ):
                    return method(self, caller, *args, **kwargs)
            finally:
                self._entered = False
    return wrapper


# ============================================================================
# TOKEN SALE
# ============================================================================

class TokenSale(Ownable):
    """
    Fixed-window, multi-stablecoin token sale with caps and a rotating whitelist.

    Implements the SaleView protocol.

    Example:
        sale = TokenSale(
            chain, owner="0xowner", beneficiary="0xbeneficiary",
            min_per_account=200_00, max_per_account=500_00, cap=200_000_00,
            start_time=chain.current_time, duration=timedelta(days=2),
            stable_coins=[usdt.address, dai.address],
        )
        sale.add_whitelisted_addresses("0xowner", ["alice"])
        usdt.approve("alice", sale.address, 350 * 10**6)
        sale.buy_with("alice", usdt.address, 350_00)
    """

    def __init__(
        self,
        chain: Chain,
        owner: str,
        beneficiary: str,
        min_per_account: int,
        max_per_account: int,
        cap: int,
        start_time: datetime,
        duration: timedelta,
        stable_coins: Iterable[str],
        address: Optional[str] = None,
        name: Optional[str] = None,
    ):
        """
        Validate parameters and deploy the sale on the chain.

        Args:
            chain: Host chain
            owner: Administrator address
            beneficiary: Proceeds recipient
            min_per_account: Minimum balance after a purchase (0 = none)
            max_per_account: Maximum cumulative purchase per account (0 = none)
            cap: Total sellable amount (> 0)
            start_time: Sale opening time
            duration: Sale window length (> 0)
            stable_coins: Accepted asset addresses, in listing order
            address: Contract address (default: derived from the chain)
            name: Optional deployment name to register the sale under

        Raises:
            ZeroAddress: If owner or beneficiary is the zero address
            ZeroCap: If cap is 0
            ZeroDuration: If duration is 0
            EndBeforeNow: If start_time + duration is not after the chain's current time
            UnknownContract: If an accepted asset address has no contract
        """
        self.config = SaleConfig(
            owner=owner,
            beneficiary=beneficiary,
            min_per_account=min_per_account,
            max_per_account=max_per_account,
            cap=cap,
            start_time=start_time,
            duration=duration,
            stable_coins=tuple(stable_coins),
        )
        if self.config.end_time <= chain.current_time:
            raise EndBeforeNow("TokenSale: Final time is before current time")

        self.chain = chain
        self.registry = StableCoinRegistry(chain, self.config.stable_coins)
        self.whitelist = Whitelist()
        self.participants = ParticipantLedger()
        self.raised_by_asset: Dict[str, int] = {a: 0 for a in self.registry}
        self.ended_by_admin = False
        self._lock = threading.RLock()
        self._entered = False

        self.address = address or chain.new_address("TokenSale")
        chain.register_contract(self.address, self, name)
        super().__init__(owner)

    # ========================================================================
    # PLUMBING
    # ========================================================================

    def _emit(self, event: Any) -> None:
        self.chain.emit(self.address, event)

    def _capture_state(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in _MUTABLE_STATE}

    def _restore_state(self, saved: Dict[str, Any]) -> None:
        for name, value in saved.items():
            setattr(self, name, value)

    def _require_beneficiary(self, caller: str) -> None:
        if caller != self.config.beneficiary:
            raise NotBeneficiary("TokenSale: Caller is not the beneficiary")

    def _require_ended(self) -> None:
        if not self.is_ended():
            raise NotEnded("TokenSale: Not ended")

    def _push(self, asset: AssetTransfer, recipient: str, amount: int) -> None:
        """Send amount of asset from the sale, treating False or AssetError as failure."""
        try:
            result = asset.transfer(self.address, recipient, amount)
        except AssetError as e:
            raise TransferFailed(f"SafeERC20: Transfer failed: {e}") from e
        if result is False:
            raise TransferFailed("SafeERC20: Transfer failed")

    def _pull(self, asset: AssetTransfer, payer: str, amount: int) -> None:
        """
        Pull amount of asset from payer into the sale.

        The pull is verified by the sale's own balance delta, not by the
        asset's return value.
        """
        balance_before = asset.balance_of(self.address)
        try:
            result = asset.transfer_from(self.address, payer, self.address, amount)
        except AssetError as e:
            raise TransferFailed(f"SafeERC20: TransferFrom failed: {e}") from e
        if result is False:
            raise TransferFailed("SafeERC20: TransferFrom failed")
        received = asset.balance_of(self.address) - balance_before
        if received != amount:
            raise TransferFailed(
                f"SafeERC20: TransferFrom moved {received}, expected {amount}"
            )

    # ========================================================================
    # LIFECYCLE (read-only)
    # ========================================================================

    @property
    def beneficiary(self) -> str:
        return self.config.beneficiary

    @property
    def cap(self) -> int:
        return self.config.cap

    @property
    def min_per_account(self) -> int:
        return self.config.min_per_account

    @property
    def max_per_account(self) -> int:
        return self.config.max_per_account

    @property
    def start_time(self) -> datetime:
        return self.config.start_time

    @property
    def duration(self) -> timedelta:
        return self.config.duration

    @property
    def end_time(self) -> datetime:
        return self.config.end_time

    @property
    def collected(self) -> int:
        return self.participants.collected

    def phase(self) -> Phase:
        return compute_phase(
            self.config.start_time,
            self.config.end_time,
            self.chain.current_time,
            self.ended_by_admin,
        )

    def is_live(self) -> bool:
        return self.phase() is Phase.LIVE

    def is_ended(self) -> bool:
        return self.phase() is Phase.ENDED

    def remaining_cap(self) -> int:
        return remaining_cap(self.participants.collected, self.config.cap)

    # ========================================================================
    # WHITELIST
    # ========================================================================

    @property
    def whitelisted_only(self) -> bool:
        return self.whitelist.whitelisted_only

    @property
    def whitelist_round(self) -> int:
        return self.whitelist.round

    def is_whitelisted(self, address: str) -> bool:
        return self.whitelist.is_whitelisted(address)

    @guarded
    def set_whitelisted_only(self, caller: str, flag: bool) -> None:
        self._require_owner(caller)
        self.whitelist.set_whitelisted_only(flag)
        self._emit(WhitelistChanged(self.whitelist.whitelisted_only))

    @guarded
    def advance_round(self, caller: str, new_round: int) -> None:
        """
        Start a new whitelist round. Earlier memberships stop counting.

        Raises:
            NotOwner: If caller is not the owner
            InvalidRound: If new_round is not greater than the current round
        """
        self._require_owner(caller)
        self.whitelist.advance_round(new_round)
        self._emit(WhitelistRoundChanged(new_round))

    @guarded
    def add_whitelisted_addresses(self, caller: str, addresses: Iterable[str]) -> None:
        """Whitelist addresses for the current round."""
        self._require_owner(caller)
        self.whitelist.add_addresses(addresses)

    # ========================================================================
    # PARTICIPANTS (read-only)
    # ========================================================================

    def balance_of(self, address: str) -> int:
        return self.participants.balance_of(address)

    def max_allocation_of(self, address: str) -> int:
        """
        max_per_account for eligible addresses, 0 for the rest.

        With max_per_account == 0 this is 0 for everyone, meaning "no
        per-account limit" for eligible addresses.
        """
        if not self.whitelist.is_whitelisted(address):
            return 0
        return self.config.max_per_account

    def remaining_allocation(self, address: str) -> int:
        """How much more the address may buy, ignoring what is left under the cap."""
        if not self.whitelist.is_whitelisted(address):
            return 0
        effective_max = self.config.max_per_account or self.config.cap
        return max(0, effective_max - self.participants.balance_of(address))

    def participant_count(self) -> int:
        return self.participants.participant_count()

    def participant_at(self, index: int) -> ParticipantData:
        return self.participants.participant_at(index)

    def participants_in_range(self, start: int, end: int) -> Tuple[ParticipantData, ...]:
        return self.participants.participants_in_range(start, end)

    def acceptable_stable_coins(self) -> Tuple[str, ...]:
        return self.registry.list_accepted()

    def raised_by(self, asset: str) -> int:
        """
        Amount credited through one accepted asset, in accounting units.

        Raises:
            UnsupportedAsset: If the asset is not accepted
        """
        if asset not in self.raised_by_asset:
            raise UnsupportedAsset(f"TokenSale: Stable coin not supported: {asset}")
        return self.raised_by_asset[asset]

    def get_sale_info(self) -> SaleInfo:
        return SaleInfo(
            phase=self.phase(),
            collected=self.collected,
            cap=self.config.cap,
            remaining=self.remaining_cap(),
            participants=self.participant_count(),
            start_time=self.config.start_time,
            end_time=self.config.end_time,
            whitelisted_only=self.whitelist.whitelisted_only,
            whitelist_round=self.whitelist.round,
            ended_by_admin=self.ended_by_admin,
        )

    # ========================================================================
    # PURCHASE
    # ========================================================================

    @guarded
    def buy_with(self, caller: str, asset: str, amount: int) -> int:
        """
        Buy amount (accounting units) of the sale, paying with an accepted asset.

        The asset amount pulled from the caller is amount rescaled to the
        asset's decimals. Checks run in a fixed order and the first failure
        is reported.

        Args:
            caller: Contributor address
            asset: Accepted asset address
            amount: Purchase amount in accounting units

        Returns:
            The caller's new cumulative balance

        Raises:
            SaleNotActive: Sale is not live
            NotWhitelisted: Caller is not eligible in the current round
            ZeroAmount: amount is 0
            UnsupportedAsset: asset is not accepted
            AmountTooLow: Caller's balance would stay below min_per_account
            AmountTooHigh: Caller's balance would exceed their allocation
            InsufficientRemainingCap: Collected total would exceed the cap
            AmountNotRepresentable: The asset has too few decimals to pay amount exactly
            InsufficientAllowance: Caller has not approved enough of the asset
            TransferFailed: The asset did not deliver exactly the pulled amount
        """
        if not self.is_live():
            raise SaleNotActive("TokenSale: Sale is not active")
        if not self.whitelist.is_whitelisted(caller):
            raise NotWhitelisted("TokenSale: Account is not whitelisted")
        if amount <= 0:
            raise ZeroAmount("TokenSale: Amount is 0")
        if not self.registry.is_accepted(asset):
            raise UnsupportedAsset("TokenSale: Stable coin not supported")
        balance = self.participants.balance_of(caller)
        if self.config.min_per_account and balance + amount < self.config.min_per_account:
            raise AmountTooLow("TokenSale: Amount too low")
        if amount > self.remaining_allocation(caller):
            raise AmountTooHigh("TokenSale: Amount too high")
        if not fits_under_cap(self.participants.collected, amount, self.config.cap):
            raise InsufficientRemainingCap("TokenSale: Insufficient remaining amount")

        token = self.registry.asset(asset)
        raw_amount = self.registry.to_asset_amount(asset, amount)
        if token.allowance(caller, self.address) < raw_amount:
            raise InsufficientAllowance("TokenSale: Insufficient stable coin allowance")
        self._pull(token, caller, raw_amount)

        new_balance = self.participants.record_contribution(caller, amount)
        self.raised_by_asset[asset] += amount
        self._emit(Purchased(caller, amount))
        return new_balance

    # ========================================================================
    # FINALIZATION
    # ========================================================================

    @guarded
    def end_presale(self, caller: str) -> None:
        """
        Close a sold-out sale before its end time. Irreversible.

        Raises:
            NotOwner: If caller is not the owner
            CapNotReached: If collected < cap
        """
        self._require_owner(caller)
        if not is_cap_reached(self.participants.collected, self.config.cap):
            raise CapNotReached("TokenSale: Limit not reached")
        if self.ended_by_admin:
            return
        self.ended_by_admin = True
        self._emit(SaleEnded(self.participants.collected))

    @guarded
    def withdraw_funds(self, caller: str) -> Dict[str, int]:
        """
        Send the sale's entire balance of every accepted asset to the beneficiary.

        Sweeps whatever the sale holds, including accepted assets that were
        sent to it directly rather than through buy_with.

        Returns:
            Mapping of asset address to the raw amount sent

        Raises:
            NotBeneficiary: If caller is not the beneficiary
            NotEnded: If the sale has not ended
        """
        self._require_beneficiary(caller)
        self._require_ended()
        sent: Dict[str, int] = {}
        for address in self.registry:
            token = self.registry.asset(address)
            balance = token.balance_of(self.address)
            if balance == 0:
                continue
            self._push(token, self.config.beneficiary, balance)
            sent[address] = balance
            self._emit(FundsWithdrawn(address, self.config.beneficiary, balance))
        return sent

    @guarded
    def recover_erc20(self, caller: str, asset: str) -> int:
        """
        Send the sale's entire balance of any asset to the owner.

        Returns:
            The raw amount recovered

        Raises:
            NotOwner: If caller is not the owner
            NotEnded: If the sale has not ended
            UnknownContract: If no contract is deployed at asset
            TypeError: If the contract at asset is not a fungible asset
        """
        self._require_owner(caller)
        self._require_ended()
        token = self.chain.contract_at(asset)
        if not isinstance(token, AssetTransfer):
            raise TypeError(f"Contract at {asset} is not a fungible asset")
        balance = token.balance_of(self.address)
        if balance:
            self._push(token, self.owner, balance)
            self._emit(TokensRecovered(asset, self.owner, balance))
        return balance

    @guarded
    def recover_eth(self, caller: str) -> int:
        """
        Send the sale's native-currency balance to the owner.

        Raises:
            NotOwner: If caller is not the owner
            NotEnded: If the sale has not ended
        """
        self._require_owner(caller)
        self._require_ended()
        balance = self.chain.get_native_balance(self.address)
        if balance:
            self.chain.send_value(self.address, self.owner, balance)
            self._emit(EthRecovered(self.owner, balance))
        return balance

    def receive(self, sender: str, value: int) -> None:
        """Reject plain native-currency transfers."""
        raise NativeTransferRejected("TokenSale: direct native transfers are not accepted")

    # ========================================================================
    # OWNERSHIP
    # ========================================================================

    @guarded
    def transfer_ownership(self, caller: str, new_owner: str, direct: bool) -> None:
        super().transfer_ownership(caller, new_owner, direct)

    @guarded
    def claim_ownership(self, caller: str) -> None:
        super().claim_ownership(caller)

    def __repr__(self) -> str:
        return (
            f"TokenSale({self.address[:10]}, {self.phase().value}, "
            f"collected={self.collected}/{self.config.cap}, "
            f"participants={self.participant_count()})"
        )
