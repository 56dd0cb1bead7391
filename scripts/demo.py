"""Walkthrough of the perp reserve engine on an in-memory bond world.

Scenarios covered:
S1) Deposit into a {200 collateral, 300 tranche} reserve, 500 supply, zero fee
S2) Same state with a 2% mint fee
S3) Redeem 50 of 500 supply, zero fee
S4a) Rollover 100 fresh tranches for collateral at a +1% rollover fee
S4b) Same rollover with only 50 collateral held → inverse branch (in rounds up)

Amounts are raw integer token units; prices and fees are 8-decimal fixed point.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional
import argparse
import json
import logging
import sys

from perp_ledger import (
    PerpetualTranche,
    PerpConfig,
    FungibleToken,
    UnitPricingStrategy,
    BasicFeeStrategy,
    SimClock,
    SimBondIssuer,
    PerpError,
    PRICE_DECIMALS,
    PERC_DECIMALS,
)
from perp_ledger.core.fmt import from_fixed_pt, to_perc_fixed_pt

OWNER = "owner"
ISSUE_FREQUENCY = 1_000
BOND_DURATION = 10_000

DEFAULT_CONFIG = {
    "min_tranche_maturity_sec": 5_000,
    "max_tranche_maturity_sec": 20_000,
}


# ---------- world ----------

@dataclass
class DemoWorld:
    clock: SimClock
    collateral: FungibleToken
    issuer: SimBondIssuer
    fees: BasicFeeStrategy
    perp: PerpetualTranche

    def fresh_senior(self, holder: str, amount: int):
        """Give holder `amount` senior tranches of the current deposit bond."""
        bond = self.perp.get_deposit_bond()
        senior, ratio = bond.tranche_at(0)
        collateral_amt = amount * 1_000 // ratio
        self.collateral.mint(holder, collateral_amt)
        bond.deposit(holder, collateral_amt)
        return senior


def build_world(cfg: PerpConfig, *, matured_collateral: int, fresh_tranches: int) -> DemoWorld:
    """Reserve of `matured_collateral` collateral (swept from a matured bond) plus
    `fresh_tranches` senior tranches of the current bond, all at price 1.0."""
    clock = SimClock(now=0)
    collateral = FungibleToken("Collateral", "COL")
    issuer = SimBondIssuer(collateral, clock, issue_frequency=ISSUE_FREQUENCY,
                           bond_duration=BOND_DURATION, tranche_ratios=(200, 800))
    fees = BasicFeeStrategy()
    perp = PerpetualTranche("Perpetual Tranche", "PERP", collateral, issuer,
                            UnitPricingStrategy(), fees, owner=OWNER, config=cfg)
    w = DemoWorld(clock, collateral, issuer, fees, perp)

    if matured_collateral:
        t_old = w.fresh_senior("seed", matured_collateral)
        perp.deposit(t_old, matured_collateral, sender="seed")
        clock.advance(BOND_DURATION)
        perp.update_state()
    if fresh_tranches:
        t_new = w.fresh_senior("seed", fresh_tranches)
        perp.deposit(t_new, fresh_tranches, sender="seed")
    return w


# ---------- pretty printers ----------

def brief_reserve(w: DemoWorld) -> str:
    parts = []
    for row in w.perp.describe_reserve():
        price = from_fixed_pt(row.price, PRICE_DECIMALS)
        parts.append(f"{row.token.symbol}={row.balance}@{price}")
    return "; ".join(parts)


def print_state(w: DemoWorld) -> None:
    print(f"- Reserve: {brief_reserve(w)}")
    print(f"- Supply : {w.perp.total_supply()}  avg_price={from_fixed_pt(w.perp.get_avg_price(), PRICE_DECIMALS)}")


def perc(x: str) -> int:
    return to_perc_fixed_pt(x)


# ---------- scenarios ----------

def scenario_mint(cfg: PerpConfig, fee: str) -> None:
    w = build_world(cfg, matured_collateral=200, fresh_tranches=300)
    w.fees.update_mint_fee_perc(perc(fee))
    print(f"Mint fee = {from_fixed_pt(w.fees.compute_mint_fee_perc(), PERC_DECIMALS)}")
    print_state(w)
    t = w.fresh_senior("alice", 100)
    minted = w.perp.deposit(t, 100, sender="alice")
    print(f"- Deposit 100 {t.symbol} → minted {minted} PERP")
    print_state(w)


def scenario_redeem(cfg: PerpConfig) -> None:
    w = build_world(cfg, matured_collateral=200, fresh_tranches=300)
    print_state(w)
    w.perp.transfer("alice", 50, sender="seed")
    out = w.perp.redeem(50, sender="alice")
    got = ", ".join(f"{ta.amount} {ta.token.symbol}" for ta in out)
    print(f"- Redeem 50 PERP → {got}")
    print_state(w)


def scenario_rollover(cfg: PerpConfig, collateral_held: int) -> None:
    w = build_world(cfg, matured_collateral=collateral_held, fresh_tranches=0)
    w.fees.update_rollover_fee_perc(perc("0.01"))
    print(f"Rollover fee = {from_fixed_pt(w.fees.compute_rollover_fee_perc(), PERC_DECIMALS)}")
    print_state(w)
    t = w.fresh_senior("roller", 200)
    preview = w.perp.compute_rollover_amt(t, w.collateral, 100)
    r = w.perp.rollover(t, w.collateral, 100, sender="roller")
    branch = "inverse" if r.tranche_in_amt != 100 else "forward"
    print(f"- Rollover offer 100 {t.symbol} for COL → in={r.tranche_in_amt} out={r.token_out_amt} ({branch})")
    print(f"- Preview {'matches' if r == preview else 'differs from'} execution")
    print_state(w)


#
# -------- scenario registry helpers --------
class Scenario:
    def __init__(self, sid: str, title: str, fn: Callable[[], None]):
        self.sid = sid
        self.title = title
        self.fn = fn

scenarios: List[Scenario] = []

def add(sid: str, title: str, fn: Callable[[], None]) -> None:
    scenarios.append(Scenario(sid, title, fn))


def load_config(path: Optional[str]) -> PerpConfig:
    data = dict(DEFAULT_CONFIG)
    if path:
        with open(path, "r", encoding="utf-8") as f:
            data.update(json.load(f))
    return PerpConfig.from_mapping(data)


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Perpetual tranche reserve demo")
    parser.add_argument("--only", type=str, default=None, help="Comma-separated scenario ids to run (e.g., S1,S4b)")
    parser.add_argument("--skip", type=str, default=None, help="Comma-separated scenario ids to skip")
    parser.add_argument("--config", type=str, default=None, help="JSON file overriding engine config keys")
    parser.add_argument("--debug", action="store_true", help="Enable engine debug logging (PERP_LEDGER_DEBUG=1 also required)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(message)s")
    cfg = load_config(args.config)

    # --------------- Register scenarios ---------------
    add("S1", "S1) Deposit 100 into {200 COL, 300 T}, supply 500, zero fee", lambda: scenario_mint(cfg, "0"))
    add("S2", "S2) Same deposit with a 2% mint fee", lambda: scenario_mint(cfg, "0.02"))
    add("S3", "S3) Redeem 50 of 500 supply, zero fee", lambda: scenario_redeem(cfg))
    add("S4a", "S4a) Rollover 100 for collateral, +1% fee, 200 collateral held", lambda: scenario_rollover(cfg, 200))
    add("S4b", "S4b) Rollover 100 for collateral, +1% fee, 50 collateral held", lambda: scenario_rollover(cfg, 50))

    only = set(args.only.split(",")) if args.only else None
    skip = set(args.skip.split(",")) if args.skip else set()
    failures = 0
    for sc in scenarios:
        if (only is not None and sc.sid not in only) or sc.sid in skip:
            continue
        print("\n" + "=" * 80)
        print(f"Scenario: {sc.title}")
        try:
            sc.fn()
        except PerpError as e:
            failures += 1
            print(f"Scenario failed: {type(e).__name__}: {e}")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
