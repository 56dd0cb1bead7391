"""
Exchange math for mint, redeem and rollover: **pure integer functions only**.

The engine gathers prices, balances and fee percentages from its collaborators
and delegates every amount decision to this module.

Rounding:
- mint amounts and redemption shares round down (the reserve never gives more);
- rollover forward branch (incoming fixed) rounds the outgoing amount down;
- rollover inverse branch (outgoing fixed) rounds the incoming amount up, twice,
  so rounding never improves the roller's rate beyond the fee formula.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, List, Tuple

from .core.constants import UNIT_PRICE
from .core.datatypes import RolloverData, TokenAmount
from .core.exc import AmountDomainError
from .core.fixed_point import Rounding, RolloverFee, apply_fee_down, mul_div

logger = logging.getLogger(__name__)

# --- Debug utilities (toggleable) ---
DEBUG_EXCHANGE = bool(int(os.environ.get("PERP_LEDGER_DEBUG", "0")))

def _dbg(msg: str) -> None:
    if DEBUG_EXCHANGE:
        logger.debug("[EXCHANGE] %s", msg)


# ---------------------------------------------------------------------------
# Valuation
# ---------------------------------------------------------------------------

def token_value(balance: int, price: int) -> int:
    """Value of `balance` units at `price` (fixed point), rounded down."""
    return mul_div(balance, price, UNIT_PRICE)


def reserve_value(balances_and_prices: Iterable[Tuple[int, int]]) -> int:
    """Sum of balance × price over the reserve (each term rounded down)."""
    return sum(token_value(b, p) for b, p in balances_and_prices)


# ---------------------------------------------------------------------------
# Mint
# ---------------------------------------------------------------------------

def compute_mint_amt(
    tranche_in_amt: int,
    tranche_price: int,
    total_supply: int,
    reserve_val: int,
    fee_perc: int,
) -> int:
    """Perp amount minted for depositing `tranche_in_amt` tranches.

    Issuance is share-proportional: with prior supply, depositing X% of the
    reserve value mints X% of the supply. The mint fee is settled by minting
    fewer tokens. A worthless reserve with outstanding supply mints nothing.
    """
    if tranche_in_amt < 0:
        raise AmountDomainError(f"negative deposit not allowed: {tranche_in_amt}")
    if tranche_in_amt == 0 or tranche_price == 0:
        return 0
    mint_amt = mul_div(tranche_in_amt, tranche_price, UNIT_PRICE)
    if total_supply > 0:
        if reserve_val == 0:
            _dbg("mint: supply>0 but reserve value is 0 -> 0")
            return 0
        mint_amt = mul_div(mint_amt, total_supply, reserve_val)
    mint_amt = apply_fee_down(mint_amt, fee_perc)
    _dbg(f"mint: in={tranche_in_amt} price={tranche_price} supply={total_supply} "
         f"reserve_value={reserve_val} fee={fee_perc} -> {mint_amt}")
    return mint_amt


# ---------------------------------------------------------------------------
# Redeem
# ---------------------------------------------------------------------------

def compute_redemption_amts(
    reserve_balances: Iterable[Tuple[Any, int]],
    perp_amt_burnt: int,
    total_supply: int,
    fee_perc: int,
) -> List[TokenAmount]:
    """Pro-rata share of every reserve asset for burning `perp_amt_burnt`, fee-discounted.

    One entry per reserve asset, in reserve order (zero shares included).
    """
    if perp_amt_burnt < 0 or total_supply <= 0 or perp_amt_burnt > total_supply:
        raise AmountDomainError(
            f"burn amount must lie in [0, supply]: burn={perp_amt_burnt}, supply={total_supply}"
        )
    out: List[TokenAmount] = []
    for token, balance in reserve_balances:
        share = mul_div(balance, perp_amt_burnt, total_supply)
        share = apply_fee_down(share, fee_perc)
        out.append(TokenAmount(token, share))
    return out


# ---------------------------------------------------------------------------
# Rollover
# ---------------------------------------------------------------------------

def compute_rollover_amt(
    tranche_in_amt_available: int,
    tranche_in_price: int,
    token_out_price: int,
    token_out_balance: int,
    token_out_amt_requested: int,
    fee: RolloverFee,
) -> RolloverData:
    """Value-equivalent swap amounts net of the signed rollover fee.

    Degenerate inputs (any of available in, either price, or the clamped
    request being zero) yield a null result instead of an error.
    """
    if min(tranche_in_amt_available, tranche_in_price, token_out_price,
           token_out_balance, token_out_amt_requested) < 0:
        raise AmountDomainError("rollover inputs must be non-negative")

    token_out_amt_requested = min(token_out_amt_requested, token_out_balance)
    if (tranche_in_amt_available == 0 or tranche_in_price == 0
            or token_out_price == 0 or token_out_amt_requested == 0):
        _dbg("rollover: degenerate inputs -> null result")
        return RolloverData(0, 0)

    # Forward: incoming fixed, outgoing rounds down.
    tranche_in_amt = tranche_in_amt_available
    token_out_amt = mul_div(tranche_in_amt, tranche_in_price, token_out_price)
    token_out_amt = fee.adjust_out(token_out_amt)
    if token_out_amt == 0:
        _dbg("rollover: outgoing rounds to zero -> null result")
        return RolloverData(0, 0)

    # Inverse: outgoing capped, incoming rounds up.
    if token_out_amt > token_out_amt_requested:
        token_out_amt = token_out_amt_requested
        tranche_in_amt = mul_div(token_out_amt, token_out_price, tranche_in_price, Rounding.UP)
        tranche_in_amt = fee.adjust_in(tranche_in_amt)
        _dbg(f"rollover: inverse branch out={token_out_amt} in={tranche_in_amt}")

    return RolloverData(tranche_in_amt=tranche_in_amt, token_out_amt=token_out_amt)


__all__ = [
    "token_value",
    "reserve_value",
    "compute_mint_amt",
    "compute_redemption_amts",
    "compute_rollover_amt",
]
