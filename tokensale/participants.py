"""
participants.py - Participant Ledger

Append-only record of who contributed and how much, in the order they first
contributed.

Invariants:
    - collected == sum of all balances
    - balances never decrease
    - an address appears at most once in the participant sequence
    - an address's index never changes once assigned
"""

from __future__ import annotations
from typing import Dict, Iterator, List, Tuple

from .core import IndexOutOfRange, InvalidRange, ParticipantData


class ParticipantLedger:
    """Cumulative normalized contributions per address, in participation order."""

    def __init__(self):
        self._balances: Dict[str, int] = {}
        self._order: List[str] = []
        self._index: Dict[str, int] = {}
        self.collected: int = 0

    def record_contribution(self, address: str, amount: int) -> int:
        """
        Credit a contribution and return the address's new balance.

        The first nonzero contribution appends the address to the participant
        sequence. A zero amount records nothing.

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Contribution cannot be negative: {amount}")
        if amount == 0:
            return self.balance_of(address)
        if address not in self._index:
            self._index[address] = len(self._order)
            self._order.append(address)
        new_balance = self._balances.get(address, 0) + amount
        self._balances[address] = new_balance
        self.collected += amount
        return new_balance

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def index_of(self, address: str) -> int:
        """
        Position of an address in participation order.

        Raises:
            KeyError: If the address never contributed
        """
        return self._index[address]

    def participant_count(self) -> int:
        return len(self._order)

    def participant_at(self, index: int) -> ParticipantData:
        """
        Raises:
            IndexOutOfRange: If index is negative or >= participant_count()
        """
        if index < 0 or index >= len(self._order):
            raise IndexOutOfRange(f"Incorrect index: {index}")
        address = self._order[index]
        return ParticipantData(address, self._balances[address])

    def participants_in_range(self, start: int, end: int) -> Tuple[ParticipantData, ...]:
        """
        Participants from start to end, both inclusive.

        Raises:
            InvalidRange: If start > end, start < 0, or end >= participant_count()
        """
        if start > end or start < 0 or end >= len(self._order):
            raise InvalidRange(f"Incorrect range: [{start}, {end}]")
        return tuple(
            ParticipantData(address, self._balances[address])
            for address in self._order[start:end + 1]
        )

    def __iter__(self) -> Iterator[ParticipantData]:
        for address in self._order:
            yield ParticipantData(address, self._balances[address])

    def __len__(self) -> int:
        return len(self._order)
