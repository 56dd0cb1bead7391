"""Reserve load study: how wide a maturity tolerance window can get before
redemptions walk too many reserve assets.

For each window width the script runs the same issuance schedule:
- every issue window a new bond is issued and a depositor mints against it;
- a roller swaps a fixed fraction of every asset up for rollover into fresh
  senior tranches;
- a small redemption is previewed and the number of non-zero legs recorded.

Output: one CSV row per (width, epoch) and, with --plot, a seaborn chart of
reserve count and redemption legs over time.
"""
from __future__ import annotations

from typing import Dict, List, Optional
import argparse
import random
import sys
from pathlib import Path

import pandas as pd
import seaborn as sns
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from perp_ledger import (
    PerpetualTranche,
    PerpConfig,
    FungibleToken,
    UnitPricingStrategy,
    BasicFeeStrategy,
    SimClock,
    SimBondIssuer,
)

DEPOSITOR = "depositor"
ROLLER = "roller"


def fund_senior(collateral: FungibleToken, bond, holder: str, amount: int):
    senior, ratio = bond.tranche_at(0)
    collateral_amt = -(-amount * 1_000 // ratio)
    collateral.mint(holder, collateral_amt)
    bond.deposit(holder, collateral_amt)
    return senior


def simulate(width: int, *, epochs: int, issue_frequency: int, bond_duration: int,
             roll_fraction: float, deposit_size: int, seed: int) -> List[Dict[str, int]]:
    rng = random.Random(seed)
    clock = SimClock(now=0)
    collateral = FungibleToken("Collateral", "COL")
    issuer = SimBondIssuer(collateral, clock, issue_frequency=issue_frequency,
                           bond_duration=bond_duration, tranche_ratios=(200, 800))
    cfg = PerpConfig(min_tranche_maturity_sec=bond_duration - width,
                     max_tranche_maturity_sec=bond_duration + 1)
    perp = PerpetualTranche("Perpetual Tranche", "PERP", collateral, issuer,
                            UnitPricingStrategy(), BasicFeeStrategy(), owner="owner", config=cfg)

    rows: List[Dict[str, int]] = []
    for epoch in range(epochs):
        if epoch:
            clock.advance(issue_frequency)
        perp.update_state()
        bond = perp.get_deposit_bond()

        if bond is not None:
            amt = deposit_size + rng.randrange(deposit_size)
            tranche = fund_senior(collateral, bond, DEPOSITOR, amt)
            perp.deposit(tranche, amt, sender=DEPOSITOR)

            rolled = 0
            for token in perp.get_reserve_tokens_up_for_rollover():
                want = int(perp.get_reserve_token_balance(token) * roll_fraction)
                if want <= 0:
                    continue
                fresh = fund_senior(collateral, bond, ROLLER, want)
                r = perp.rollover(fresh, token, want, sender=ROLLER)
                rolled += r.token_out_amt
        else:
            rolled = 0

        supply = perp.total_supply()
        legs = 0
        if supply:
            legs = sum(1 for ta in perp.compute_redemption_amts(max(1, supply // 100)) if ta.amount)
        rows.append({
            "width": width,
            "epoch": epoch,
            "time": clock.now,
            "reserve_count": perp.get_reserve_count(),
            "redeem_legs": legs,
            "rolled_out": rolled,
            "supply": supply,
            "reserve_value": perp.get_reserve_value(),
        })
    return rows


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reserve size vs. maturity tolerance window")
    parser.add_argument("--widths", type=str, default="2000,4000,6000,9000",
                        help="Comma-separated tolerance window widths in seconds")
    parser.add_argument("--epochs", type=int, default=40)
    parser.add_argument("--issue-frequency", type=int, default=1_000)
    parser.add_argument("--bond-duration", type=int, default=10_000)
    parser.add_argument("--roll-fraction", type=float, default=0.5,
                        help="Share of each stale asset rolled per epoch")
    parser.add_argument("--deposit-size", type=int, default=1_000)
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--out", type=str, default="reserve_load.csv", help="CSV output path")
    parser.add_argument("--plot", type=str, default=None, help="Optional PNG path for the chart")
    return parser.parse_args(argv)


def plot(df: pd.DataFrame, path: str) -> None:
    sns.set(style="whitegrid")
    fig, axes = plt.subplots(1, 2, figsize=(12, 4.5), sharex=True)
    sns.lineplot(data=df, x="epoch", y="reserve_count", hue="width", palette="viridis", ax=axes[0])
    axes[0].set_title("Reserve count")
    sns.lineplot(data=df, x="epoch", y="redeem_legs", hue="width", palette="viridis", ax=axes[1])
    axes[1].set_title("Redemption legs (1% of supply)")
    for ax in axes:
        ax.set_xlabel("Epoch (issue windows)")
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    widths = [int(w) for w in args.widths.split(",") if w]
    for w in widths:
        if w <= 0 or w > args.bond_duration:
            print(f"width {w} must lie in (0, bond_duration={args.bond_duration}]", file=sys.stderr)
            return 2

    rows: List[Dict[str, int]] = []
    for w in widths:
        rows.extend(simulate(
            w,
            epochs=args.epochs,
            issue_frequency=args.issue_frequency,
            bond_duration=args.bond_duration,
            roll_fraction=args.roll_fraction,
            deposit_size=args.deposit_size,
            seed=args.seed,
        ))
    df = pd.DataFrame(rows)
    Path(args.out).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(args.out, index=False)

    summary = df.groupby("width").agg(
        max_reserve=("reserve_count", "max"),
        mean_reserve=("reserve_count", "mean"),
        max_legs=("redeem_legs", "max"),
    )
    print("Reserve load summary")
    print(summary.to_string())
    print(f"[reserve-load] wrote {len(df)} rows to {args.out}")

    if args.plot:
        plot(df, args.plot)
        print(f"[reserve-load] chart saved to {args.plot}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
