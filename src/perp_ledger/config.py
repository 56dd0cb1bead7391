from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Mapping

from .core.constants import UNBOUNDED
from .core.exc import InvalidTrancheMaturityBounds


@dataclass(frozen=True)
class PerpConfig:
    """Engine configuration.

    min/max_tranche_maturity_sec: tolerance window [min, max) on a bond's time
    to maturity for it to become the deposit bond.
    max_supply / max_mint_amt_per_tranche: post-condition caps on minting.
    authorized_rollers: empty means anyone may roll over.
    """
    min_tranche_maturity_sec: int = 1
    max_tranche_maturity_sec: int = UNBOUNDED
    max_supply: int = UNBOUNDED
    max_mint_amt_per_tranche: int = UNBOUNDED
    authorized_rollers: FrozenSet[Any] = field(default_factory=frozenset)

    def __post_init__(self):
        for name in ("min_tranche_maturity_sec", "max_tranche_maturity_sec",
                     "max_supply", "max_mint_amt_per_tranche"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.min_tranche_maturity_sec > self.max_tranche_maturity_sec:
            raise InvalidTrancheMaturityBounds(self.min_tranche_maturity_sec, self.max_tranche_maturity_sec)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PerpConfig":
        """Build from a JSON-style mapping; unknown keys are rejected, missing keys default."""
        known = {"min_tranche_maturity_sec", "max_tranche_maturity_sec", "max_supply",
                 "max_mint_amt_per_tranche", "authorized_rollers"}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown config keys: {sorted(unknown)}")
        kwargs = {k: int(v) for k, v in data.items() if k != "authorized_rollers"}
        if "authorized_rollers" in data:
            kwargs["authorized_rollers"] = frozenset(data["authorized_rollers"])
        return cls(**kwargs)


__all__ = ["PerpConfig"]
