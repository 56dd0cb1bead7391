"""
In-memory bond world: a settable clock, tranche bonds and a periodic issuer.

Semantics follow the tranche-bond model the engine expects:
- Depositing collateral into a bond mints every tranche by its ratio
  (ratios are parts of TRANCHE_RATIO_GRANULARITY, senior first).
- At maturity the bond's collateral is assigned to tranches in seniority
  order, each senior tranche capped at its face value, the most junior one
  taking the remainder. Matured tranches redeem pro-rata for their share.
- The issuer creates one bond per issue window and lazily issues when asked
  for the latest bond.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .core.exc import AmountDomainError, InvariantViolation
from .interfaces import Bond, BondIssuer, Token, Tranche
from .token import FungibleToken

TRANCHE_RATIO_GRANULARITY = 1000


@dataclass
class SimClock:
    """Seconds since an arbitrary epoch; tests move it explicitly."""
    now: int = 0

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self.now += seconds
        return self.now


class SimTranche(FungibleToken, Tranche):

    def __init__(self, parent: "SimBond", index: int, symbol: str) -> None:
        super().__init__(f"{parent.name}-{symbol}", symbol)
        self._bond = parent
        self.index = index

    def bond(self) -> "SimBond":
        return self._bond


class SimBond(Bond):

    def __init__(
        self,
        collateral: FungibleToken,
        tranche_ratios: Sequence[int],
        maturity_date: int,
        clock: SimClock,
        *,
        name: str = "BOND",
    ) -> None:
        if not tranche_ratios or sum(tranche_ratios) != TRANCHE_RATIO_GRANULARITY:
            raise ValueError(f"tranche ratios must sum to {TRANCHE_RATIO_GRANULARITY}")
        self.name = name
        self.collateral = collateral
        self.maturity_date = maturity_date
        self.clock = clock
        self._ratios = list(tranche_ratios)
        self._tranches = [
            SimTranche(self, i, chr(ord("A") + i) if i < len(tranche_ratios) - 1 else "Z")
            for i in range(len(tranche_ratios))
        ]
        self._is_mature = False
        self._tranche_collateral: Dict[SimTranche, int] = {}

    def __repr__(self) -> str:
        return f"<SimBond {self.name} maturity={self.maturity_date}>"

    # --- Bond views ---

    def collateral_token(self) -> Token:
        return self.collateral

    def seconds_to_maturity(self) -> int:
        return max(0, self.maturity_date - self.clock.now)

    def is_mature(self) -> bool:
        return self._is_mature

    def tranche_count(self) -> int:
        return len(self._tranches)

    def tranche_at(self, index: int) -> Tuple[SimTranche, int]:
        return self._tranches[index], self._ratios[index]

    def total_debt(self) -> int:
        return sum(t.total_supply() for t in self._tranches)

    # --- deposits ---

    def deposit(self, holder: Any, amount: int) -> List[int]:
        """Lock `amount` collateral from holder and mint tranches by ratio."""
        if self._is_mature:
            raise InvariantViolation("cannot deposit into a mature bond")
        if amount <= 0:
            raise AmountDomainError("deposit amount must be > 0")
        debt, collateral_bal = self.total_debt(), self.collateral.balance_of(self)
        debt_amt = amount if debt == 0 or collateral_bal == 0 else amount * debt // collateral_bal
        self.collateral.transfer(holder, self, amount)
        minted = []
        for tranche, ratio in zip(self._tranches, self._ratios):
            amt = debt_amt * ratio // TRANCHE_RATIO_GRANULARITY
            tranche.mint(holder, amt)
            minted.append(amt)
        return minted

    # --- maturity ---

    def mature(self) -> None:
        if self._is_mature:
            raise InvariantViolation("bond already mature")
        if self.seconds_to_maturity() > 0:
            raise InvariantViolation("bond has not reached maturity")
        remaining = self.collateral.balance_of(self)
        last = len(self._tranches) - 1
        for i, tranche in enumerate(self._tranches):
            share = remaining if i == last else min(tranche.total_supply(), remaining)
            self._tranche_collateral[tranche] = share
            remaining -= share
        self._is_mature = True

    def redeem_mature(self, holder: Any, tranche: Tranche, amount: int) -> None:
        if not self._is_mature:
            raise InvariantViolation("bond is not mature")
        if tranche not in self._tranche_collateral:
            raise InvariantViolation(f"{tranche!r} is not a tranche of {self!r}")
        if amount == 0:
            return
        supply = tranche.total_supply()
        payout = self._tranche_collateral[tranche] * amount // supply
        tranche.burn(holder, amount)
        self._tranche_collateral[tranche] -= payout
        self.collateral.transfer(self, holder, payout)


class SimBondIssuer(BondIssuer):
    """Issues a bond at the start of every `issue_frequency`-second window."""

    def __init__(
        self,
        collateral: FungibleToken,
        clock: SimClock,
        *,
        issue_frequency: int,
        bond_duration: int,
        tranche_ratios: Sequence[int] = (500, 500),
        issue_window_offset: int = 0,
    ) -> None:
        if issue_frequency <= 0 or bond_duration <= 0:
            raise ValueError("issue_frequency and bond_duration must be > 0")
        self.collateral = collateral
        self.clock = clock
        self.issue_frequency = issue_frequency
        self.bond_duration = bond_duration
        self.tranche_ratios = tuple(tranche_ratios)
        self.issue_window_offset = issue_window_offset
        self.issued: List[SimBond] = []
        self._last_window: Optional[int] = None

    def collateral_token(self) -> Token:
        return self.collateral

    def _window_start(self) -> int:
        now = self.clock.now - self.issue_window_offset
        return now - (now % self.issue_frequency) + self.issue_window_offset

    def issue(self) -> bool:
        """Create the bond for the current window; False if it already exists."""
        window = self._window_start()
        if self._last_window is not None and window <= self._last_window:
            return False
        bond = SimBond(
            self.collateral,
            self.tranche_ratios,
            window + self.bond_duration,
            self.clock,
            name=f"BOND-{len(self.issued)}",
        )
        self.issued.append(bond)
        self._last_window = window
        return True

    def get_latest_bond(self) -> SimBond:
        self.issue()
        return self.issued[-1]


__all__ = [
    "TRANCHE_RATIO_GRANULARITY",
    "SimClock",
    "SimTranche",
    "SimBond",
    "SimBondIssuer",
]
