"""
test_registry.py - Unit tests for StableCoinRegistry
"""

import pytest

from tokensale import (
    StableCoinRegistry, UnsupportedAsset, UnknownContract, AmountNotRepresentable,
    create_token,
)


class TestConstruction:

    def test_order_preserved(self, chain, usdt, dai):
        registry = StableCoinRegistry(chain, [dai.address, usdt.address])
        assert registry.list_accepted() == (dai.address, usdt.address)
        assert list(registry) == [dai.address, usdt.address]
        assert len(registry) == 2

    def test_duplicates_collapsed(self, chain, usdt, dai):
        registry = StableCoinRegistry(chain, [usdt.address, dai.address, usdt.address])
        assert registry.list_accepted() == (usdt.address, dai.address)

    def test_empty(self, chain):
        registry = StableCoinRegistry(chain, [])
        assert registry.list_accepted() == ()

    def test_unknown_address(self, chain):
        with pytest.raises(UnknownContract):
            StableCoinRegistry(chain, ["0xmissing"])

    def test_non_asset_contract(self, chain):
        chain.register_contract("0xnotatoken", object())
        with pytest.raises(TypeError):
            StableCoinRegistry(chain, ["0xnotatoken"])

    def test_decimals_cached(self, chain, usdt, dai):
        registry = StableCoinRegistry(chain, [usdt.address, dai.address])
        usdt._decimals = 99
        assert registry.decimals_of(usdt.address) == 6
        assert registry.decimals_of(dai.address) == 18


class TestMembership:

    def test_is_accepted(self, chain, usdt, dai):
        registry = StableCoinRegistry(chain, [usdt.address])
        assert registry.is_accepted(usdt.address)
        assert usdt.address in registry
        assert not registry.is_accepted(dai.address)

    def test_unaccepted_lookups_raise(self, chain, usdt, dai):
        registry = StableCoinRegistry(chain, [usdt.address])
        with pytest.raises(UnsupportedAsset):
            registry.asset(dai.address)
        with pytest.raises(UnsupportedAsset):
            registry.normalize(dai.address, 1)
        with pytest.raises(UnsupportedAsset):
            registry.to_asset_amount(dai.address, 1)


class TestConversion:

    def test_normalize(self, chain, usdt, dai):
        registry = StableCoinRegistry(chain, [usdt.address, dai.address])
        assert registry.normalize(usdt.address, 350 * 10**6) == 35000
        assert registry.normalize(dai.address, 150 * 10**18) == 15000

    def test_normalize_rounds_down(self, chain, usdt):
        registry = StableCoinRegistry(chain, [usdt.address])
        assert registry.normalize(usdt.address, 9_999) == 0
        assert registry.normalize(usdt.address, 19_999) == 1

    def test_to_asset_amount(self, chain, usdt, dai):
        registry = StableCoinRegistry(chain, [usdt.address, dai.address])
        assert registry.to_asset_amount(usdt.address, 35000) == 350_000_000
        assert registry.to_asset_amount(dai.address, 15000) == 150 * 10**18

    def test_coarse_asset_requires_exact_amounts(self, chain):
        """A 0-decimal asset pays whole units only."""
        coarse = create_token(chain, "WHOLE", "Whole Dollar", 0)
        registry = StableCoinRegistry(chain, [coarse.address])
        assert registry.to_asset_amount(coarse.address, 100) == 1
        assert registry.to_asset_amount(coarse.address, 2_500) == 25
        with pytest.raises(AmountNotRepresentable):
            registry.to_asset_amount(coarse.address, 101)
        with pytest.raises(AmountNotRepresentable):
            registry.to_asset_amount(coarse.address, 1)
        assert registry.normalize(coarse.address, 2) == 200
