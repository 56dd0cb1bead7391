"""
Core datatypes returned by the engine.

These datatypes are intentionally minimal and immutable so that previews and
executed operations can be compared directly in tests.

Notes:
- Amounts are raw integer token units.
- Asset identities are the token objects themselves (address-equivalent handles).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional


# ---------------------------------------------------------------------------
# Token amounts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TokenAmount:
    """An (asset, amount) pair, e.g. one leg of a redemption."""

    token: Any
    amount: int

    def is_zero(self) -> bool:
        return self.amount == 0


@dataclass(frozen=True)
class RolloverData:
    """Result of a rollover computation.

    Fields:
    - tranche_in_amt: tranches accepted into the reserve.
    - token_out_amt: reserve tokens handed to the roller.
    Both are zero for a degenerate (null) rollover.
    """

    tranche_in_amt: int = 0
    token_out_amt: int = 0

    def is_null(self) -> bool:
        return self.tranche_in_amt == 0 and self.token_out_amt == 0


# ---------------------------------------------------------------------------
# Reserve view
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReserveAsset:
    """Read-only description of one reserve member.

    category is "collateral" for the underlying at index 0, "tranche" otherwise.
    bond, seniority and seconds_to_maturity are None for the collateral.
    """

    token: Any
    category: Literal["collateral", "tranche"]
    balance: int
    price: int
    bond: Optional[Any] = None
    seniority: Optional[int] = None
    seconds_to_maturity: Optional[int] = None


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Event:
    """An engine event, e.g. Event("ReserveSynced", {"token": t, "balance": 0})."""

    name: str
    args: Dict[str, Any] = field(default_factory=dict)


__all__ = [
    "TokenAmount",
    "RolloverData",
    "ReserveAsset",
    "Event",
]
