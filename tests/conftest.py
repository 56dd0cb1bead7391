from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Optional

import pytest

# Import project primitives
from perp_ledger import (
    PerpetualTranche,
    PerpConfig,
    FungibleToken,
    TablePricingStrategy,
    BasicFeeStrategy,
    SimClock,
    SimBondIssuer,
    SimBond,
    UNIT_PRICE,
)
from perp_ledger.interfaces import PricingStrategy


# -----------------------------
# World constants
# -----------------------------

ISSUE_FREQUENCY = 1_000
BOND_DURATION = 10_000
MIN_MATURITY = 5_000
MAX_MATURITY = 20_000
SENIOR_RATIO = 200
JUNIOR_RATIO = 800

OWNER = "owner"
KEEPER = "keeper"
ALICE = "alice"
BOB = "bob"


# -----------------------------
# Test helpers
# -----------------------------


class ReentrantPricing(PricingStrategy):
    """Pricing stub that calls back into the engine while it prices a tranche.

    `callback(engine)` runs inside compute_tranche_price once `armed` is set.
    """

    def __init__(self, callback: Callable[[Any], None]) -> None:
        self.callback = callback
        self.engine: Optional[PerpetualTranche] = None
        self.armed = False

    def decimals(self) -> int:
        return 8

    def compute_tranche_price(self, tranche) -> int:
        if self.armed and self.engine is not None:
            self.armed = False
            self.callback(self.engine)
        return UNIT_PRICE


@dataclass
class World:
    clock: SimClock
    collateral: FungibleToken
    issuer: SimBondIssuer
    pricing: TablePricingStrategy
    fees: BasicFeeStrategy
    perp: PerpetualTranche

    def current_bond(self) -> SimBond:
        return self.perp.get_deposit_bond()

    def senior(self, bond: Optional[SimBond] = None):
        return (bond or self.current_bond()).tranche_at(0)[0]

    def tranche_up(self, holder: str, collateral_amt: int, bond: Optional[SimBond] = None):
        """Fund holder with collateral, deposit into the bond, return its senior tranche."""
        bond = bond or self.current_bond()
        self.collateral.mint(holder, collateral_amt)
        bond.deposit(holder, collateral_amt)
        return bond.tranche_at(0)[0]

    def advance(self, seconds: int) -> None:
        self.clock.advance(seconds)

    def event_names(self):
        return [e.name for e in self.perp.events]


def make_world(config: Optional[PerpConfig] = None, pricing=None, fees=None) -> World:
    clock = SimClock(now=0)
    collateral = FungibleToken("Collateral", "COL")
    issuer = SimBondIssuer(
        collateral,
        clock,
        issue_frequency=ISSUE_FREQUENCY,
        bond_duration=BOND_DURATION,
        tranche_ratios=(SENIOR_RATIO, JUNIOR_RATIO),
    )
    pricing = pricing or TablePricingStrategy()
    fees = fees or BasicFeeStrategy()
    cfg = config or PerpConfig(
        min_tranche_maturity_sec=MIN_MATURITY,
        max_tranche_maturity_sec=MAX_MATURITY,
    )
    perp = PerpetualTranche(
        "Perpetual Tranche",
        "PERP",
        collateral,
        issuer,
        pricing,
        fees,
        owner=OWNER,
        keeper=KEEPER,
        config=cfg,
    )
    return World(clock, collateral, issuer, pricing, fees, perp)


# -----------------------------
# Pytest fixtures
# -----------------------------

@pytest.fixture()
def world() -> World:
    return make_world()


@pytest.fixture()
def world_factory() -> Callable[..., World]:
    return make_world


@pytest.fixture()
def reentrant_world():
    """World whose pricing strategy redeems 1 perp from inside a deposit once armed."""
    pricing = ReentrantPricing(lambda engine: engine.redeem(1, sender=ALICE))
    w = make_world(pricing=pricing)
    pricing.engine = w.perp
    return w, pricing


@pytest.fixture()
def seeded_world(world: World) -> World:
    """Alice has deposited 1000 senior tranches of the first bond (1000 perps outstanding)."""
    t0 = world.tranche_up(ALICE, 5_000)
    world.perp.deposit(t0, 1_000, sender=ALICE)
    return world
