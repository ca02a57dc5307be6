"""
test_deployment.py - Deployment helper and presets

Tests:
- Network names and stablecoin presets
- Seed sale parameters
- deploy_token_sale: start time resolution, reuse, banner
- A full seed sale run on a local chain
"""

import pytest
from datetime import datetime, timedelta

from tokensale import (
    Chain, SEED_SALE, NETWORK_STABLECOINS,
    chain_name, stable_coins_for, deploy_token_sale, create_token,
    UnknownContract, AmountTooHigh,
)


@pytest.fixture
def local_chain():
    return Chain("local", initial_time=datetime(2021, 6, 14), verbose=False)


@pytest.fixture
def stable_pair(local_chain):
    usdt = create_token(local_chain, "USDT", "Tether USD", 6, returns_bool=False)
    usdc = create_token(local_chain, "USDC", "USD Coin", 6)
    return usdt, usdc


class TestPresets:

    def test_chain_names(self):
        assert chain_name(1) == "Mainnet"
        assert chain_name(4) == "Rinkeby"
        assert chain_name(31337) == "Unknown"

    def test_stable_coins(self):
        assert stable_coins_for(1) == NETWORK_STABLECOINS[1]
        assert stable_coins_for(4) == NETWORK_STABLECOINS[4]
        assert stable_coins_for(999) == NETWORK_STABLECOINS[1]
        assert len(NETWORK_STABLECOINS[1]) == 2

    def test_seed_sale(self):
        assert SEED_SALE.start_time == datetime(2021, 6, 15, 9, 0)
        assert SEED_SALE.duration == timedelta(seconds=122400)
        assert SEED_SALE.min_per_account == 1_00
        assert SEED_SALE.max_per_account == 250_00
        assert SEED_SALE.cap == 50_000_00

    def test_overrides(self):
        params = SEED_SALE.with_overrides(cap=10_00)
        assert params.cap == 10_00
        assert params.beneficiary == SEED_SALE.beneficiary
        assert SEED_SALE.cap == 50_000_00


class TestDeployTokenSale:

    def test_deploys_seed_sale(self, local_chain, stable_pair):
        usdt, usdc = stable_pair
        result = deploy_token_sale(
            local_chain, "0xdeployer", "0xowner",
            stable_coins=[usdt.address, usdc.address],
        )
        assert result.newly_deployed
        sale = result.sale
        assert sale.owner == "0xowner"
        assert sale.beneficiary == SEED_SALE.beneficiary
        assert sale.start_time == SEED_SALE.start_time
        assert sale.acceptable_stable_coins() == (usdt.address, usdc.address)
        assert local_chain.get_deployment("TokenSale") is sale

    def test_reuses_existing(self, local_chain, stable_pair):
        coins = [t.address for t in stable_pair]
        first = deploy_token_sale(local_chain, "0xdeployer", "0xowner", stable_coins=coins)
        second = deploy_token_sale(local_chain, "0xdeployer", "0xowner", stable_coins=coins)
        assert not second.newly_deployed
        assert second.sale is first.sale

    def test_none_start_means_now(self, local_chain, stable_pair):
        params = SEED_SALE.with_overrides(start_time=None)
        result = deploy_token_sale(
            local_chain, "0xdeployer", "0xowner", params=params,
            stable_coins=[t.address for t in stable_pair],
        )
        assert result.sale.start_time == local_chain.current_time
        assert result.sale.is_live()

    def test_preset_coins_must_exist(self, local_chain):
        with pytest.raises(UnknownContract):
            deploy_token_sale(local_chain, "0xdeployer", "0xowner", chain_id=1)

    def test_banner(self, capsys):
        chain = Chain("loud", initial_time=datetime(2021, 6, 14))
        usdt = create_token(chain, "USDT", "Tether USD", 6, returns_bool=False)
        deploy_token_sale(chain, "0xdeployer", "0xowner", stable_coins=[usdt.address])
        out = capsys.readouterr().out
        assert "network: Unknown (local)" in out
        assert "deployer: 0xdeployer" in out
        assert "TokenSale deployed at" in out
        assert "Done!" in out
        deploy_token_sale(chain, "0xdeployer", "0xowner", stable_coins=[usdt.address])
        assert "Re-used existing TokenSale" in capsys.readouterr().out


class TestSeedSaleRun:

    def test_full_run(self, local_chain, stable_pair):
        usdt, usdc = stable_pair
        sale = deploy_token_sale(
            local_chain, "0xdeployer", "0xowner",
            stable_coins=[usdt.address, usdc.address],
        ).sale
        buyers = [f"0xbuyer{i}" for i in range(3)]
        for b in buyers:
            usdt.mint(b, 1_000 * 10**6)
            usdc.mint(b, 1_000 * 10**6)
        sale.add_whitelisted_addresses("0xowner", buyers)

        assert not sale.is_live()
        local_chain.set_time(SEED_SALE.start_time)
        assert sale.is_live()

        usdt.approve(buyers[0], sale.address, 250 * 10**6)
        sale.buy_with(buyers[0], usdt.address, 250_00)
        usdc.approve(buyers[1], sale.address, 100 * 10**6)
        sale.buy_with(buyers[1], usdc.address, 1_00)
        with pytest.raises(AmountTooHigh):
            sale.buy_with(buyers[0], usdc.address, 1_00)

        local_chain.set_time(SEED_SALE.start_time + SEED_SALE.duration)
        assert sale.is_ended()
        sale.withdraw_funds(SEED_SALE.beneficiary)
        assert usdt.balance_of(SEED_SALE.beneficiary) == 250 * 10**6
        assert usdc.balance_of(SEED_SALE.beneficiary) == 1 * 10**6
        assert sale.collected == 251_00
