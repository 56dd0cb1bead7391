"""
Acceptance predicates (pure decisions, no state mutation).

- Bond acceptable: backed by the reserve collateral and its time to maturity
  lies in [min_sec, max_sec).
- Tranche acceptable for minting: it is the most senior tranche of the
  current deposit bond.
- Rollover acceptable: the incoming tranche is mint-acceptable and the
  outgoing asset is either the collateral or a stale reserve tranche (its
  bond no longer passes the bond predicate). Fresh collateral is never ejected.
"""

from __future__ import annotations

from typing import Any, Container, Optional

from .interfaces import Bond


def bond_of(token: Any) -> Optional[Bond]:
    """Return the parent bond of a tranche, or None for a non-tranche token."""
    getter = getattr(token, "bond", None)
    if not callable(getter):
        return None
    return getter()


def is_acceptable_bond(bond: Optional[Bond], collateral: Any, min_sec: int, max_sec: int) -> bool:
    if bond is None:
        return False
    if bond.collateral_token() is not collateral:
        return False
    ttm = bond.seconds_to_maturity()
    return min_sec <= ttm < max_sec


def is_acceptable_for_reserve(tranche: Any, deposit_bond: Optional[Bond]) -> bool:
    """Only the senior tranche of the deposit bond may back new supply.

    A token that merely claims the deposit bond as its parent is rejected:
    identity must match the bond's own senior tranche.
    """
    if deposit_bond is None or tranche is None:
        return False
    if bond_of(tranche) is not deposit_bond:
        return False
    return deposit_bond.senior_tranche() is tranche


def is_acceptable_rollover(
    tranche_in: Any,
    token_out: Any,
    *,
    collateral: Any,
    deposit_bond: Optional[Bond],
    reserve: Container[Any],
    min_sec: int,
    max_sec: int,
) -> bool:
    if not is_acceptable_for_reserve(tranche_in, deposit_bond):
        return False

    # Rolling into the underlying collateral is always allowed.
    if token_out is collateral:
        return True

    if is_acceptable_for_reserve(token_out, deposit_bond):
        return False
    if token_out not in reserve:
        return False
    return not is_acceptable_bond(bond_of(token_out), collateral, min_sec, max_sec)


__all__ = [
    "bond_of",
    "is_acceptable_bond",
    "is_acceptable_for_reserve",
    "is_acceptable_rollover",
]
