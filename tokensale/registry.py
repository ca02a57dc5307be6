"""
registry.py - Accepted Stablecoins

The StableCoinRegistry is the fixed set of assets a sale accepts, in the
order they were configured, together with each asset's native precision.
Precisions are read from the assets once, at construction, and never again.

Conversions:
    normalize(asset, raw)        asset units -> accounting units (round down)
    to_asset_amount(asset, amt)  accounting units -> asset units (exact or rejected)

With SALE_DECIMALS = 2, a 6-decimal asset maps 35000 accounting units
(350.00) to 350_000_000 raw units, and an 18-decimal asset maps 15000 to
150 * 10**18.
"""

from __future__ import annotations
from typing import Dict, Iterable, Tuple

from .chain import Chain
from .core import (
    SALE_DECIMALS,
    AssetTransfer, UnsupportedAsset,
    scale_amount,
)


class StableCoinRegistry:
    """Immutable, ordered set of accepted payment assets and their decimals."""

    def __init__(self, chain: Chain, addresses: Iterable[str]):
        """
        Resolve and freeze the accepted assets.

        Args:
            chain: Host chain the assets are deployed on
            addresses: Asset addresses in the order they should be listed;
                       repeated addresses keep their first position

        Raises:
            UnknownContract: If an address has no contract behind it
            TypeError: If a contract does not implement AssetTransfer
        """
        assets: Dict[str, AssetTransfer] = {}
        decimals: Dict[str, int] = {}
        for address in addresses:
            if address in assets:
                continue
            asset = chain.contract_at(address)
            if not isinstance(asset, AssetTransfer):
                raise TypeError(f"Contract at {address} is not a fungible asset")
            assets[address] = asset
            decimals[address] = asset.decimals()
        self._assets = assets
        self._decimals = decimals
        self._order: Tuple[str, ...] = tuple(assets)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self):
        return iter(self._order)

    def __contains__(self, address: object) -> bool:
        return address in self._assets

    def is_accepted(self, address: str) -> bool:
        return address in self._assets

    def list_accepted(self) -> Tuple[str, ...]:
        """Accepted asset addresses in configured order."""
        return self._order

    def asset(self, address: str) -> AssetTransfer:
        """
        Return the asset behind an accepted address.

        Raises:
            UnsupportedAsset: If the address is not accepted
        """
        self._require(address)
        return self._assets[address]

    def decimals_of(self, address: str) -> int:
        self._require(address)
        return self._decimals[address]

    def normalize(self, address: str, raw_amount: int) -> int:
        """
        Convert an amount in the asset's native units to accounting units.

        Raises:
            UnsupportedAsset: If the address is not accepted
        """
        self._require(address)
        return scale_amount(raw_amount, self._decimals[address], SALE_DECIMALS)

    def to_asset_amount(self, address: str, amount: int) -> int:
        """
        Convert an amount in accounting units to the asset's native units.

        Raises:
            UnsupportedAsset: If the address is not accepted
            AmountNotRepresentable: If the asset has too few decimals to pay amount exactly
        """
        self._require(address)
        return scale_amount(amount, SALE_DECIMALS, self._decimals[address], exact=True)

    def _require(self, address: str) -> None:
        if address not in self._assets:
            raise UnsupportedAsset(f"TokenSale: Stable coin not supported: {address}")
