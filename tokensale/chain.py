"""
chain.py - In-Process Host Chain

The Chain is the execution environment a TokenSale runs on. It is the only
module that holds asset balances, and every change to them goes through it.

Key responsibilities:
    - Multi-asset balance book: balances[holder][asset_address], with an
      inverted index of non-zero holders per asset
    - Allowances and native-currency balances
    - Contract registry (address -> object) and named deployments
    - Logical clock that only moves forward
    - Event log with monotonic sequence numbers
    - Atomic calls: snapshot before, restore on any exception
"""

from __future__ import annotations
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type
import copy
import itertools

from .core import (
    DEFAULT_GENESIS_TIME,
    AllowanceExceeded, InsufficientBalance, NativeTransferRejected, UnknownContract,
    derive_address,
)


@dataclass(frozen=True, slots=True)
class LoggedEvent:
    """
    An event emitted by a contract, as recorded in the chain's event log.

    Attributes:
        emitter: Address of the contract that emitted the event
        event: The event record (a frozen dataclass from core)
        sequence_number: Monotonic position in the chain's log
        timestamp: Chain time when the event was emitted
    """
    emitter: str
    event: Any
    sequence_number: int
    timestamp: datetime

    def __repr__(self) -> str:
        return f"#{self.sequence_number} {self.emitter[:10]} {self.event!r}"


@dataclass(frozen=True, slots=True)
class _Snapshot:
    balances: Dict[str, Dict[str, int]]
    allowances: Dict[Tuple[str, str, str], int]
    native_balances: Dict[str, int]
    event_count: int
    next_sequence: int


class Chain:
    """
    Host environment for contracts: balances, time, events, atomic calls.

    Thread Safety:
        Not thread-safe on its own. TokenSale serializes its calls with a lock;
        other writers should do the same.

    Example:
        chain = Chain("local", initial_time=datetime(2025, 1, 1))
        usdt = create_token(chain, "USDT", "Tether USD", 6, supply=10**12, holder="deployer")
        usdt.transfer("deployer", "alice", 350 * 10**6)
        chain.advance_time(timedelta(days=1))
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
    ):
        """
        Create a chain.

        Args:
            name: Chain identifier, used when deriving contract addresses
            initial_time: Starting time (default: 1970-01-01)
            verbose: Print contract registrations and call results (default: True)
        """
        self.name = name
        self.verbose = verbose
        self._current_time: datetime = initial_time or DEFAULT_GENESIS_TIME
        # holder -> asset address -> amount
        self.balances: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        # (asset, owner, spender) -> amount
        self.allowances: Dict[Tuple[str, str, str], int] = {}
        self.native_balances: Dict[str, int] = defaultdict(int)
        self.contracts: Dict[str, Any] = {}
        self.deployments: Dict[str, str] = {}
        self.event_log: List[LoggedEvent] = []
        self._next_sequence: int = 0
        self._nonce = itertools.count()
        # asset -> {holder -> amount} for O(1) holder lookups
        self._holders_by_asset: Dict[str, Dict[str, int]] = defaultdict(dict)
        # rollbacks collected by each open atomic call, innermost last
        self._open_calls: List[List[Tuple[Callable[[Any], None], Any]]] = []

    # ========================================================================
    # TIME
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the chain."""
        return self._current_time

    def advance_time(self, delta: timedelta) -> datetime:
        """
        Move the clock forward by delta.

        Raises:
            ValueError: If delta is negative
        """
        if delta < timedelta(0):
            raise ValueError(f"Cannot move time backwards: {delta}")
        self._current_time = self._current_time + delta
        return self._current_time

    def set_time(self, new_time: datetime) -> None:
        """
        Move the clock to an absolute time.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # CONTRACTS
    # ========================================================================

    def new_address(self, label: str) -> str:
        """Derive a fresh, deterministic address for a contract being deployed."""
        return derive_address(self.name, label, next(self._nonce))

    def register_contract(self, address: str, contract: Any, name: Optional[str] = None) -> str:
        """
        Make a contract reachable at an address.

        Args:
            address: Address the contract lives at
            contract: The contract object
            name: Optional deployment name (e.g. "TokenSale") for later lookup

        Raises:
            ValueError: If the address is already taken
        """
        if address in self.contracts:
            raise ValueError(f"Address {address} already has a contract")
        self.contracts[address] = contract
        if name is not None:
            self.deployments[name] = address
        if self.verbose:
            label = f" as {name}" if name else ""
            print(f"📝 Deployed: {type(contract).__name__} at {address}{label}")
        return address

    def contract_at(self, address: str) -> Any:
        """
        Return the contract deployed at an address.

        Raises:
            UnknownContract: If nothing is deployed there
        """
        try:
            return self.contracts[address]
        except KeyError:
            raise UnknownContract(f"No contract at {address}") from None

    def get_deployment(self, name: str) -> Optional[Any]:
        """Return the contract registered under a deployment name, or None."""
        address = self.deployments.get(name)
        return self.contracts.get(address) if address else None

    # ========================================================================
    # ASSET BALANCE BOOK
    # ========================================================================

    def get_balance(self, holder: str, asset: str) -> int:
        """Balance of an asset held by an address (0 if never touched)."""
        return self.balances[holder][asset]

    def get_holders(self, asset: str) -> Dict[str, int]:
        """All non-zero holders of an asset."""
        return dict(self._holders_by_asset.get(asset, {}))

    def total_supply(self, asset: str) -> int:
        """Sum of all balances of an asset."""
        return sum(self._holders_by_asset.get(asset, {}).values())

    def mint(self, asset: str, holder: str, amount: int) -> None:
        """Create amount of an asset in holder's balance."""
        if amount < 0:
            raise ValueError(f"Cannot mint a negative amount: {amount}")
        self._set_balance(holder, asset, self.balances[holder][asset] + amount)

    def move(self, asset: str, source: str, dest: str, amount: int) -> None:
        """
        Move amount of an asset between two holders.

        Raises:
            InsufficientBalance: If source holds less than amount
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Cannot move a negative amount: {amount}")
        available = self.balances[source][asset]
        if available < amount:
            raise InsufficientBalance(
                f"{source} holds {available} of {asset}, needs {amount}"
            )
        self._set_balance(source, asset, available - amount)
        self._set_balance(dest, asset, self.balances[dest][asset] + amount)

    def get_allowance(self, asset: str, owner: str, spender: str) -> int:
        return self.allowances.get((asset, owner, spender), 0)

    def set_allowance(self, asset: str, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Allowance cannot be negative: {amount}")
        self.allowances[(asset, owner, spender)] = amount

    def spend_allowance(self, asset: str, owner: str, spender: str, amount: int) -> None:
        """
        Consume part of an allowance.

        Raises:
            AllowanceExceeded: If the allowance is smaller than amount
        """
        current = self.get_allowance(asset, owner, spender)
        if current < amount:
            raise AllowanceExceeded(
                f"{spender} may spend {current} of {asset} for {owner}, needs {amount}"
            )
        self.allowances[(asset, owner, spender)] = current - amount

    def _set_balance(self, holder: str, asset: str, amount: int) -> None:
        self.balances[holder][asset] = amount
        if amount:
            self._holders_by_asset[asset][holder] = amount
        else:
            self._holders_by_asset[asset].pop(holder, None)

    # ========================================================================
    # NATIVE CURRENCY
    # ========================================================================

    def get_native_balance(self, holder: str) -> int:
        return self.native_balances[holder]

    def fund(self, holder: str, amount: int) -> None:
        """Credit native currency to an address (genesis allocation, faucet)."""
        self.native_balances[holder] += amount

    def send_value(self, sender: str, recipient: str, amount: int) -> None:
        """
        Transfer native currency the normal way.

        If the recipient is a contract, its receive(sender, amount) hook is
        called first; a contract without one rejects the value.

        Raises:
            InsufficientBalance: If sender holds less than amount
            NativeTransferRejected: If the recipient contract refuses it
        """
        contract = self.contracts.get(recipient)
        if contract is not None:
            receive = getattr(contract, "receive", None)
            if receive is None:
                raise NativeTransferRejected(f"{recipient} does not accept native currency")
            receive(sender, amount)
        self._move_native(sender, recipient, amount)

    def force_send(self, sender: str, recipient: str, amount: int) -> None:
        """Transfer native currency without consulting the recipient."""
        self._move_native(sender, recipient, amount)

    def _move_native(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Cannot send a negative amount: {amount}")
        if self.native_balances[sender] < amount:
            raise InsufficientBalance(
                f"{sender} holds {self.native_balances[sender]} native, needs {amount}"
            )
        self.native_balances[sender] -= amount
        self.native_balances[recipient] += amount

    # ========================================================================
    # EVENTS
    # ========================================================================

    def emit(self, emitter: str, event: Any) -> LoggedEvent:
        """Append an event to the log."""
        logged = LoggedEvent(
            emitter=emitter,
            event=event,
            sequence_number=self._next_sequence,
            timestamp=self._current_time,
        )
        self._next_sequence += 1
        self.event_log.append(logged)
        return logged

    def get_events(self, emitter: Optional[str] = None, event_type: Optional[Type] = None) -> List[Any]:
        """
        Return event records in emission order, optionally filtered.

        Args:
            emitter: Only events emitted by this address
            event_type: Only events of this class
        """
        return [
            logged.event for logged in self.event_log
            if (emitter is None or logged.emitter == emitter)
            and (event_type is None or isinstance(logged.event, event_type))
        ]

    # ========================================================================
    # ATOMIC CALLS
    # ========================================================================

    def snapshot(self) -> _Snapshot:
        """Capture everything a call may change."""
        balances = defaultdict(lambda: defaultdict(int))
        for holder, bals in self.balances.items():
            balances[holder] = defaultdict(int, bals)
        return _Snapshot(
            balances=balances,
            allowances=dict(self.allowances),
            native_balances=defaultdict(int, self.native_balances),
            event_count=len(self.event_log),
            next_sequence=self._next_sequence,
        )

    def restore(self, snap: _Snapshot) -> None:
        """Roll the chain back to a snapshot taken earlier in the same call."""
        self.balances = snap.balances
        self.allowances = snap.allowances
        self.native_balances = snap.native_balances
        del self.event_log[snap.event_count:]
        self._next_sequence = snap.next_sequence
        self._holders_by_asset = defaultdict(dict)
        for holder, bals in self.balances.items():
            for asset, amount in bals.items():
                if amount:
                    self._holders_by_asset[asset][holder] = amount

    @contextmanager
    def atomic(self, label: str, caller: Optional[str] = None,
               extra_state: Optional[Any] = None,
               restore_extra: Optional[Callable[[Any], None]] = None) -> Iterator[None]:
        """
        Run a block as one all-or-nothing call.

        On any exception, chain state is restored, restore_extra (if given) is
        called with a deep copy of extra_state taken before the block, and the
        exception propagates unchanged.

        Calls may nest, for example when an asset callback calls another
        contract. A nested call that succeeds hands its rollback to the
        enclosing call, so a later failure of the outer call also puts the
        inner contract's state back.

        Args:
            label: Call name for the verbose log
            caller: Calling address for the verbose log
            extra_state: Contract-owned state to roll back alongside the chain
            restore_extra: Callback that puts extra_state back in place
        """
        snap = self.snapshot()
        rollbacks: List[Tuple[Callable[[Any], None], Any]] = []
        if restore_extra is not None:
            rollbacks.append((restore_extra, copy.deepcopy(extra_state)))
        first_event = len(self.event_log)
        self._open_calls.append(rollbacks)
        try:
            yield
        except Exception as e:
            self._open_calls.pop()
            self.restore(snap)
            # Latest first, so each contract ends at its earliest saved state.
            for restore, saved in reversed(rollbacks):
                restore(saved)
            if self.verbose:
                print(f"✗ REVERTED {label}: {type(e).__name__}: {e}")
            raise
        self._open_calls.pop()
        if self._open_calls:
            self._open_calls[-1].extend(rollbacks)
        if self.verbose:
            self._print_call_result(label, caller, self.event_log[first_event:])

    def _print_call_result(self, label: str, caller: Optional[str], events: List[LoggedEvent]) -> None:
        """Print a boxed summary of an applied call and the events it emitted."""
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            f"┌{bar}┐",
            f"│{pad(' Call: ' + label)}│",
            f"│{pad('   caller : ' + str(caller))}│",
            f"│{pad('   time   : ' + str(self._current_time))}│",
        ]
        if events:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' Events (' + str(len(events)) + '):')}│")
            for logged in events:
                lines.append(f"│{pad('   ' + repr(logged))}│")
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad(' ✓ APPLIED')}│")
        lines.append(f"└{bar}┘")
        print("\n".join(lines))
