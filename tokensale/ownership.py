"""
ownership.py - Two-Step Ownership

Ownable keeps an owner and an optional pending owner. Ownership moves either
directly (direct=True) or in two steps: the current owner nominates a
candidate, and the candidate claims.

Subclasses provide _emit(event) to publish OwnershipTransferred.
"""

from __future__ import annotations
from typing import Any

from .core import (
    ZERO_ADDRESS,
    NotOwner, NotPendingOwner, OwnershipTransferred, ZeroAddress,
    is_zero_address,
)


class Ownable:
    """
    Owner / pending-owner bookkeeping with a two-step handoff.

    Attributes:
        owner: Current owner address
        pending_owner: Nominated candidate, or ZERO_ADDRESS when none
    """

    def __init__(self, owner: str):
        """
        Raises:
            ZeroAddress: If owner is the zero address
        """
        if is_zero_address(owner):
            raise ZeroAddress("Ownable: zero address")
        self.owner = owner
        self.pending_owner = ZERO_ADDRESS
        self._emit(OwnershipTransferred(ZERO_ADDRESS, owner))

    def _emit(self, event: Any) -> None:
        raise NotImplementedError

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise NotOwner("Ownable: caller is not the owner")

    def transfer_ownership(self, caller: str, new_owner: str, direct: bool) -> None:
        """
        Hand ownership to new_owner, now or after they claim it.

        Args:
            caller: Must be the current owner
            new_owner: Candidate address (never the zero address)
            direct: True transfers immediately; False records a pending owner

        Raises:
            NotOwner: If caller is not the owner
            ZeroAddress: If new_owner is the zero address
        """
        self._require_owner(caller)
        if is_zero_address(new_owner):
            raise ZeroAddress("Ownable: zero address")
        if direct:
            self._set_owner(new_owner)
        else:
            self.pending_owner = new_owner

    def claim_ownership(self, caller: str) -> None:
        """
        Complete a two-step handoff.

        Raises:
            NotPendingOwner: If caller is not the nominated candidate
        """
        if is_zero_address(caller) or caller != self.pending_owner:
            raise NotPendingOwner("Ownable: caller != pending owner")
        self._set_owner(caller)

    def _set_owner(self, new_owner: str) -> None:
        previous = self.owner
        self.owner = new_owner
        self.pending_owner = ZERO_ADDRESS
        self._emit(OwnershipTransferred(previous, new_owner))
