"""
whitelist.py - Round-Based Whitelist

Membership is recorded per (address, round). Only the current round counts:
advancing the round leaves every earlier membership in place but inert, so a
private-round list does not leak into the public round.

Authorization and event emission are the sale's job; this module only keeps
the state and its rules.
"""

from __future__ import annotations
from typing import Iterable, Optional, Set, Tuple

from .core import InvalidRound


class Whitelist:
    """
    Whitelist state: on/off switch, current round, and recorded memberships.

    Attributes:
        whitelisted_only: When False, every address is eligible
        round: Current round, starting at 1
    """

    def __init__(self, whitelisted_only: bool = True, initial_round: int = 1):
        self.whitelisted_only = whitelisted_only
        self.round = initial_round
        self._members: Set[Tuple[str, int]] = set()

    def set_whitelisted_only(self, flag: bool) -> None:
        """Turn the gate on or off. Recorded memberships are kept either way."""
        self.whitelisted_only = bool(flag)

    def advance_round(self, new_round: int) -> None:
        """
        Move to a later round.

        Raises:
            InvalidRound: If new_round is not strictly greater than the current round
        """
        if new_round <= self.round:
            raise InvalidRound(
                f"TokenSale: New round {new_round} must be greater than current round {self.round}"
            )
        self.round = new_round

    def add_addresses(self, addresses: Iterable[str]) -> None:
        """Record addresses for the current round. Adding an address twice is a no-op."""
        for address in addresses:
            self._members.add((address, self.round))

    def is_member(self, address: str, round_number: int) -> bool:
        """Whether the address was recorded for a given round."""
        return (address, round_number) in self._members

    def is_whitelisted(self, address: str) -> bool:
        """True if the gate is off, or the address is recorded for the current round."""
        if not self.whitelisted_only:
            return True
        return (address, self.round) in self._members

    def members(self, round_number: Optional[int] = None) -> Set[str]:
        """Addresses recorded for a round (default: the current round)."""
        target = self.round if round_number is None else round_number
        return {address for address, r in self._members if r == target}
