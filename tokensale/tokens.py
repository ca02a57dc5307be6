"""
tokens.py - Fungible Assets on the Host Chain

Two asset flavours, both keeping their balances in the Chain's balance book:

1. StandardToken: returns True from transfer/transfer_from/approve and raises
   AssetError on failure.
2. TetherToken: returns nothing from transfers (an older calling convention
   the sale has to tolerate) and refuses to change a non-zero allowance to
   another non-zero value.

create_token() deploys either flavour and mints the initial supply.
"""

from __future__ import annotations
from typing import Optional

from .chain import Chain
from .core import ZERO_ADDRESS, Approval, InsufficientBalance, Transfer, is_zero_address


class StandardToken:
    """
    A fungible asset with boolean-returning transfers.

    Attributes:
        chain: Host chain holding the balances
        address: Contract address (also the asset key in the balance book)
        name: Human-readable name
        symbol: Ticker (e.g. "DAI")
    """

    def __init__(self, chain: Chain, name: str, symbol: str, decimals: int, address: Optional[str] = None):
        if decimals < 0:
            raise ValueError(f"decimals must be non-negative, got {decimals}")
        self.chain = chain
        self.name = name
        self.symbol = symbol
        self._decimals = decimals
        self._address = address or chain.new_address(symbol)
        chain.register_contract(self._address, self)

    @property
    def address(self) -> str:
        return self._address

    def decimals(self) -> int:
        return self._decimals

    def total_supply(self) -> int:
        return self.chain.total_supply(self._address)

    def balance_of(self, holder: str) -> int:
        return self.chain.get_balance(holder, self._address)

    def allowance(self, owner: str, spender: str) -> int:
        return self.chain.get_allowance(self._address, owner, spender)

    def mint(self, holder: str, amount: int) -> None:
        self.chain.mint(self._address, holder, amount)
        self.chain.emit(self._address, Transfer(ZERO_ADDRESS, holder, amount))

    def approve(self, owner: str, spender: str, amount: int) -> Optional[bool]:
        self.chain.set_allowance(self._address, owner, spender, amount)
        self.chain.emit(self._address, Approval(owner, spender, amount))
        return True

    def transfer(self, sender: str, recipient: str, amount: int) -> Optional[bool]:
        self._move(sender, recipient, amount)
        return True

    def transfer_from(self, spender: str, payer: str, recipient: str, amount: int) -> Optional[bool]:
        # Balance is checked before the allowance is consumed so a failed pull spends nothing.
        if self.balance_of(payer) < amount:
            raise InsufficientBalance(f"{payer} holds {self.balance_of(payer)} {self.symbol}, needs {amount}")
        self.chain.spend_allowance(self._address, payer, spender, amount)
        self._move(payer, recipient, amount)
        return True

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if is_zero_address(recipient):
            raise ValueError("Cannot transfer to the zero address")
        self.chain.move(self._address, sender, recipient, amount)
        self.chain.emit(self._address, Transfer(sender, recipient, amount))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.symbol}, decimals={self._decimals})"


class TetherToken(StandardToken):
    """
    A fungible asset whose transfers return None instead of a boolean.

    approve() follows the same convention and rejects moving an allowance
    from one non-zero value to another; it must be reset to 0 first.
    """

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount != 0 and self.allowance(owner, spender) != 0:
            raise ValueError("Allowance must be reset to 0 before setting a new value")
        super().approve(owner, spender, amount)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        super().transfer(sender, recipient, amount)

    def transfer_from(self, spender: str, payer: str, recipient: str, amount: int) -> None:
        super().transfer_from(spender, payer, recipient, amount)


def create_token(
    chain: Chain,
    symbol: str,
    name: str,
    decimals: int,
    supply: int = 0,
    holder: Optional[str] = None,
    returns_bool: bool = True,
) -> StandardToken:
    """
    Deploy a token and mint its initial supply.

    Args:
        chain: Host chain to deploy on
        symbol: Ticker (e.g. "USDT")
        name: Full name (e.g. "Tether USD")
        decimals: Native precision of the token
        supply: Amount minted at deployment, in native units
        holder: Address receiving the initial supply (required if supply > 0)
        returns_bool: False deploys a TetherToken

    Returns:
        The deployed token

    Example:
        usdt = create_token(chain, "USDT", "Tether USD", 6, 1_000_000 * 10**6, "deployer",
                            returns_bool=False)
        dai = create_token(chain, "DAI", "Dai Stablecoin", 18, 1_000_000 * 10**18, "deployer")
    """
    if supply and not holder:
        raise ValueError("holder is required when minting an initial supply")
    cls = StandardToken if returns_bool else TetherToken
    token = cls(chain, name, symbol, decimals)
    if supply:
        token.mint(holder, supply)
    return token
