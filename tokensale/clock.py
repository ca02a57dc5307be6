"""
clock.py - Sale Clock and Cap Guard

Pure functions deriving the sale's lifecycle from explicit inputs. No sale
object, no chain: every dependency is a parameter, so each rule can be
tested on its own.

Phase rules:
    ENDED        now >= end_time, or the owner ended the sale
    NOT_STARTED  now < start_time
    LIVE         otherwise

ENDED is terminal: time only moves forward and the admin flag is never
cleared.
"""

from __future__ import annotations
from datetime import datetime

from .core import Phase


def compute_phase(
    start_time: datetime,
    end_time: datetime,
    now: datetime,
    ended_by_admin: bool,
) -> Phase:
    """
    Derive the sale phase.

    Args:
        start_time: First instant contributions are accepted
        end_time: First instant contributions are no longer accepted
        now: Current chain time
        ended_by_admin: Whether the owner closed the sale early

    Returns:
        Phase.NOT_STARTED, Phase.LIVE or Phase.ENDED
    """
    if ended_by_admin or now >= end_time:
        return Phase.ENDED
    if now < start_time:
        return Phase.NOT_STARTED
    return Phase.LIVE


def is_cap_reached(collected: int, cap: int) -> bool:
    return collected >= cap


def remaining_cap(collected: int, cap: int) -> int:
    """Headroom left under the cap, never negative."""
    return max(0, cap - collected)


def fits_under_cap(collected: int, amount: int, cap: int) -> bool:
    """Whether adding amount keeps the collected total at or below the cap."""
    return collected + amount <= cap
