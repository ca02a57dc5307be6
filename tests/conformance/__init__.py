"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the TokenSale system.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - collected equals the sum of balances, never above cap
2. monotonicity.py - balances and participant indices never move backwards
3. atomicity.py - rejected calls leave sale and chain state untouched
4. whitelist.py - membership is idempotent and scoped to the current round
5. enumeration.py - ranged and indexed enumeration agree with the ledger

These tests use hypothesis for property-based testing.
"""
