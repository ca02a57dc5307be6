#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: A Token Sale Step by Step

Walks through the life of a two-stablecoin sale on a local chain. Each step
builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Setup       - The chain, two assets with different precisions, the sale
  4-6:   Buying      - Whitelist rounds, purchases, normalization to one unit
  7-8:   Guard Rails - Rejections in a fixed order, all-or-nothing rollback
  9-10:  Closing     - Ending a sold-out sale and withdrawing the proceeds

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from tokensale import (
    Chain, TokenSale, create_token,
    SaleError, Purchased,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    duration: timedelta = timedelta(days=2)

    # Sale limits, in accounting units (hundredths of a dollar)
    min_per_account: int = 200_00
    max_per_account: int = 500_00
    cap: int = 1_200_00

    # Initial holdings, in whole dollars
    buyer_funds: int = 10_000


CONFIG = DemoConfig()

OWNER = "0xowner"
BENEFICIARY = "0xtreasury"
ALICE = "0xalice"
BOB = "0xbob"
MALLORY = "0xmallory"

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def try_call(description: str, fn, *args):
    """Run a sale call and report the rejection instead of stopping."""
    print(f">>> {description}")
    try:
        result = fn(*args)
    except SaleError as e:
        print(f"    rejected: {type(e).__name__}: {e}")
        return None
    print(f"    ok -> {result}")
    return result


# ============================================================================
# PHASE 1: SETUP
# ============================================================================

def step_01_chain():
    step_header(1, "The Chain",
        "See the environment the sale runs in: a clock, balances and an event log.")
    chain = Chain("tutorial", initial_time=CONFIG.start_time, verbose=True)
    print(f"Chain name:    {chain.name}")
    print(f"Current time:  {chain.current_time}")
    print(f"Contracts:     {len(chain.contracts)}")
    print(f"Events:        {len(chain.event_log)}")
    return chain


def step_02_assets(chain: Chain):
    step_header(2, "Two Stablecoins",
        "Deploy a 6-decimal and an 18-decimal dollar and fund the buyers.")
    usdt = create_token(chain, "USDT", "Tether USD", 6, returns_bool=False)
    dai = create_token(chain, "DAI", "Dai Stablecoin", 18)
    for buyer in (ALICE, BOB, MALLORY):
        usdt.mint(buyer, CONFIG.buyer_funds * 10**6)
        dai.mint(buyer, CONFIG.buyer_funds * 10**18)

    section_header("Same dollar, different raw units")
    print(f"alice USDT raw: {usdt.balance_of(ALICE):>30,}")
    print(f"alice DAI raw:  {dai.balance_of(ALICE):>30,}")
    return usdt, dai


def step_03_sale(chain: Chain, usdt, dai):
    step_header(3, "Deploying the Sale",
        "Fix the window, the limits and the accepted assets.")
    sale = TokenSale(
        chain,
        owner=OWNER,
        beneficiary=BENEFICIARY,
        min_per_account=CONFIG.min_per_account,
        max_per_account=CONFIG.max_per_account,
        cap=CONFIG.cap,
        start_time=chain.current_time,
        duration=CONFIG.duration,
        stable_coins=[usdt.address, dai.address],
    )
    print(f"\n{sale!r}")
    print(f"Window:   {sale.start_time} -> {sale.end_time}")
    print(f"Accepted: {sale.acceptable_stable_coins()}")
    return sale


# ============================================================================
# PHASE 2: BUYING
# ============================================================================

def step_04_whitelist(sale: TokenSale):
    step_header(4, "Whitelist Round 1",
        "Only listed addresses can buy while the gate is on.")
    sale.add_whitelisted_addresses(OWNER, [ALICE, BOB])
    for who in (ALICE, BOB, MALLORY):
        print(f"{who:12} whitelisted: {sale.is_whitelisted(who)}  "
              f"allocation: {sale.remaining_allocation(who)}")


def step_05_buy(sale: TokenSale, usdt, dai):
    step_header(5, "Buying With Two Assets",
        "Amounts are given in accounting units; the sale pulls the scaled asset amount.")
    usdt.approve(ALICE, sale.address, 350 * 10**6)
    sale.buy_with(ALICE, usdt.address, 350_00)
    dai.approve(ALICE, sale.address, 150 * 10**18)
    sale.buy_with(ALICE, dai.address, 150_00)

    section_header("Normalized ledger")
    print(f"alice balance:          {sale.balance_of(ALICE)}")
    print(f"alice remaining:        {sale.remaining_allocation(ALICE)}")
    print(f"raised via USDT:        {sale.raised_by(usdt.address)}")
    print(f"raised via DAI:         {sale.raised_by(dai.address)}")
    print(f"sale holds USDT raw:    {usdt.balance_of(sale.address):,}")
    print(f"sale holds DAI raw:     {dai.balance_of(sale.address):,}")


def step_06_round_two(sale: TokenSale):
    step_header(6, "Whitelist Round 2",
        "Advancing the round retires the previous list.")
    sale.advance_round(OWNER, 2)
    sale.add_whitelisted_addresses(OWNER, [BOB, MALLORY])
    for who in (ALICE, BOB, MALLORY):
        print(f"{who:12} whitelisted: {sale.is_whitelisted(who)}")


# ============================================================================
# PHASE 3: GUARD RAILS
# ============================================================================

def step_07_rejections(sale: TokenSale, usdt):
    step_header(7, "Rejections",
        "Every check has its own error, and the first failing check wins.")
    usdt.approve(BOB, sale.address, 10_000 * 10**6)
    try_call("alice buys 200.00 (no longer whitelisted)", sale.buy_with, ALICE, usdt.address, 200_00)
    try_call("bob buys 0", sale.buy_with, BOB, usdt.address, 0)
    try_call("bob buys 1.00 (below the minimum)", sale.buy_with, BOB, usdt.address, 1_00)
    try_call("bob buys 600.00 (above the maximum)", sale.buy_with, BOB, usdt.address, 600_00)
    try_call("bob buys 500.00", sale.buy_with, BOB, usdt.address, 500_00)


def step_08_atomicity(sale: TokenSale, chain: Chain, dai):
    step_header(8, "All or Nothing",
        "A failed call leaves balances, allowances and events exactly as they were.")
    dai.approve(MALLORY, sale.address, 1)
    before = (dai.balance_of(MALLORY), dai.allowance(MALLORY, sale.address), len(chain.event_log))
    try_call("mallory buys 200.00 with a 1-wei allowance", sale.buy_with, MALLORY, dai.address, 200_00)
    after = (dai.balance_of(MALLORY), dai.allowance(MALLORY, sale.address), len(chain.event_log))
    print(f"\nbefore: {before}")
    print(f"after:  {after}")
    print(f"unchanged: {before == after}")


# ============================================================================
# PHASE 4: CLOSING
# ============================================================================

def step_09_end(sale: TokenSale, dai):
    step_header(9, "Selling Out",
        "The owner may close the sale early once the cap is reached.")
    try_call("owner ends the sale before the cap", sale.end_presale, OWNER)
    dai.approve(MALLORY, sale.address, 200 * 10**18)
    sale.buy_with(MALLORY, dai.address, sale.remaining_cap())
    print(f"\ncollected {sale.collected} of {sale.cap}")
    sale.end_presale(OWNER)
    print(f"phase: {sale.phase().value}")


def step_10_withdraw(sale: TokenSale, chain: Chain, usdt, dai):
    step_header(10, "Withdrawal",
        "The beneficiary sweeps every accepted asset the sale holds.")
    try_call("owner withdraws", sale.withdraw_funds, OWNER)
    sale.withdraw_funds(BENEFICIARY)
    print(f"\ntreasury USDT: {usdt.balance_of(BENEFICIARY) / 10**6:,.2f}")
    print(f"treasury DAI:  {dai.balance_of(BENEFICIARY) / 10**18:,.2f}")

    section_header("Participants")
    for index, p in enumerate(sale.participants_in_range(0, sale.participant_count() - 1)):
        print(f"  #{index} {p.address:12} {p.balance / 100:>10,.2f}")

    section_header("Purchase events")
    for event in chain.get_events(emitter=sale.address, event_type=Purchased):
        print(f"  {event}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       TOKEN SALE - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    chain = step_01_chain()
    wait_for_enter()
    usdt, dai = step_02_assets(chain)
    wait_for_enter()
    sale = step_03_sale(chain, usdt, dai)
    wait_for_enter()

    step_04_whitelist(sale)
    wait_for_enter()
    step_05_buy(sale, usdt, dai)
    wait_for_enter()
    step_06_round_two(sale)
    wait_for_enter()

    step_07_rejections(sale, usdt)
    wait_for_enter()
    step_08_atomicity(sale, chain, dai)
    wait_for_enter()

    step_09_end(sale, dai)
    wait_for_enter()
    step_10_withdraw(sale, chain, usdt, dai)

    print(f"\n{'='*70}")
    print("Tutorial complete.")
    print(f"{'='*70}")


if __name__ == "__main__":
    main()
