"""
test_sale_construction.py - Unit tests for TokenSale construction and getters

Tests:
- Parameter validation and its order
- Registration on the chain
- Read-only getters and SaleInfo
"""

import pytest
from dataclasses import FrozenInstanceError
from datetime import timedelta

from tokensale import (
    ZERO_ADDRESS, Phase, SaleConfig, TokenSale, UnknownContract,
    ZeroAddress, ZeroCap, ZeroDuration, EndBeforeNow, UnsupportedAsset,
)
from conftest import OWNER, BENEFICIARY, ALICE, MALLORY, MIN, MAX, CAP, DURATION


class TestValidation:

    def test_zero_owner(self, make_sale):
        with pytest.raises(ZeroAddress, match="Ownable"):
            make_sale(owner=ZERO_ADDRESS)

    def test_zero_beneficiary(self, make_sale):
        with pytest.raises(ZeroAddress, match="TokenSale"):
            make_sale(beneficiary=ZERO_ADDRESS)

    def test_zero_cap(self, make_sale):
        with pytest.raises(ZeroCap):
            make_sale(cap=0)

    def test_zero_duration(self, make_sale):
        with pytest.raises(ZeroDuration):
            make_sale(duration=timedelta(0))

    def test_end_before_now(self, make_sale, chain):
        with pytest.raises(EndBeforeNow):
            make_sale(start_time=chain.current_time - timedelta(days=3))

    def test_end_exactly_now(self, make_sale, chain):
        with pytest.raises(EndBeforeNow):
            make_sale(start_time=chain.current_time - DURATION)

    def test_past_start_with_future_end(self, make_sale, chain):
        sale = make_sale(start_time=chain.current_time - timedelta(days=1))
        assert sale.is_live()

    def test_order_zero_address_before_cap(self, make_sale):
        with pytest.raises(ZeroAddress):
            make_sale(owner=ZERO_ADDRESS, cap=0, duration=timedelta(0))

    def test_order_cap_before_duration(self, make_sale):
        with pytest.raises(ZeroCap):
            make_sale(cap=0, duration=timedelta(0))

    def test_order_duration_before_end(self, make_sale, chain):
        with pytest.raises(ZeroDuration):
            make_sale(duration=timedelta(0), start_time=chain.current_time - timedelta(days=9))

    def test_negative_limits(self, make_sale):
        with pytest.raises(ValueError):
            make_sale(min_per_account=-1)

    def test_unknown_stable_coin(self, make_sale):
        with pytest.raises(UnknownContract):
            make_sale(stable_coins=["0xmissing"])

    def test_failed_construction_registers_nothing(self, make_sale, chain):
        before = dict(chain.contracts)
        with pytest.raises(ZeroCap):
            make_sale(cap=0)
        assert chain.contracts == before


class TestDeployment:

    def test_registered_on_chain(self, sale, chain):
        assert chain.contract_at(sale.address) is sale

    def test_named_deployment(self, make_sale, chain):
        sale = make_sale(name="TokenSale")
        assert chain.get_deployment("TokenSale") is sale

    def test_explicit_address(self, make_sale, chain):
        sale = make_sale(address="0xsale")
        assert sale.address == "0xsale"
        assert chain.contract_at("0xsale") is sale


class TestGetters:

    def test_parameters(self, sale, chain):
        assert sale.beneficiary == BENEFICIARY
        assert sale.min_per_account == MIN
        assert sale.max_per_account == MAX
        assert sale.cap == CAP
        assert sale.start_time == chain.current_time
        assert sale.duration == DURATION

    def test_config_frozen(self, sale):
        assert isinstance(sale.config, SaleConfig)
        with pytest.raises(FrozenInstanceError):
            sale.config.cap = 1

    def test_acceptable_stable_coins(self, sale, usdt, dai):
        assert sale.acceptable_stable_coins() == (usdt.address, dai.address)

    def test_initial_state(self, sale):
        assert sale.collected == 0
        assert sale.participant_count() == 0
        assert sale.remaining_cap() == CAP
        assert sale.whitelisted_only is True
        assert sale.whitelist_round == 1
        assert sale.ended_by_admin is False

    def test_max_allocation_of(self, sale):
        assert sale.max_allocation_of(ALICE) == MAX
        assert sale.max_allocation_of(MALLORY) == 0

    def test_max_allocation_unlimited(self, make_sale):
        sale = make_sale(max_per_account=0)
        sale.add_whitelisted_addresses(OWNER, [ALICE])
        assert sale.max_allocation_of(ALICE) == 0
        assert sale.remaining_allocation(ALICE) == CAP

    def test_remaining_allocation(self, sale):
        assert sale.remaining_allocation(ALICE) == MAX
        assert sale.remaining_allocation(MALLORY) == 0

    def test_raised_by_unsupported(self, sale):
        with pytest.raises(UnsupportedAsset):
            sale.raised_by("0xmissing")

    def test_sale_info(self, sale):
        info = sale.get_sale_info()
        assert info.phase is Phase.LIVE
        assert info.collected == 0
        assert info.cap == CAP
        assert info.remaining == CAP
        assert info.participants == 0
        assert info.end_time == sale.end_time
        assert info.whitelisted_only is True
        assert info.whitelist_round == 1
        assert info.ended_by_admin is False

    def test_repr(self, sale):
        assert "TokenSale" in repr(sale)
        assert "live" in repr(sale)

    def test_direct_construction(self, chain, usdt):
        sale = TokenSale(
            chain, OWNER, BENEFICIARY, 0, 0, 1,
            chain.current_time, timedelta(seconds=1), [usdt.address],
        )
        assert sale.is_live()
