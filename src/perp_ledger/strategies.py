"""Reference pricing and fee strategies (fixed-point, 8 decimals).

- UnitPricingStrategy: every tranche is worth exactly one unit.
- TablePricingStrategy: explicit per-tranche prices with a default.
- BasicFeeStrategy: constant mint/burn/rollover percentages.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .core.constants import FEE_ONE, PERC_DECIMALS, PRICE_DECIMALS, UNIT_PRICE
from .interfaces import FeeStrategy, PricingStrategy


class UnitPricingStrategy(PricingStrategy):

    def decimals(self) -> int:
        return PRICE_DECIMALS

    def compute_tranche_price(self, tranche: Any) -> int:
        return UNIT_PRICE


class TablePricingStrategy(PricingStrategy):
    """Prices looked up per tranche; unknown tranches get `default_price`."""

    def __init__(self, prices: Optional[Dict[Any, int]] = None, *,
                 default_price: int = UNIT_PRICE, decimals: int = PRICE_DECIMALS) -> None:
        self._prices: Dict[Any, int] = dict(prices or {})
        self.default_price = default_price
        self._decimals = decimals

    def decimals(self) -> int:
        return self._decimals

    def set_price(self, tranche: Any, price: int) -> None:
        if price < 0:
            raise ValueError("price must be >= 0")
        self._prices[tranche] = price

    def compute_tranche_price(self, tranche: Any) -> int:
        return self._prices.get(tranche, self.default_price)


class BasicFeeStrategy(FeeStrategy):
    """Constant fee percentages.

    mint/burn in [0, FEE_ONE]; rollover in (-FEE_ONE, FEE_ONE), negative
    meaning the reserve pays the roller.
    """

    def __init__(self, mint_fee_perc: int = 0, burn_fee_perc: int = 0,
                 rollover_fee_perc: int = 0, *, decimals: int = PERC_DECIMALS) -> None:
        self._decimals = decimals
        self.update_mint_fee_perc(mint_fee_perc)
        self.update_burn_fee_perc(burn_fee_perc)
        self.update_rollover_fee_perc(rollover_fee_perc)

    def decimals(self) -> int:
        return self._decimals

    # --- updates (validated) ---

    def update_mint_fee_perc(self, perc: int) -> None:
        if perc < 0 or perc > FEE_ONE:
            raise ValueError("mint fee must satisfy 0 ≤ fee ≤ 1")
        self.mint_fee_perc = perc

    def update_burn_fee_perc(self, perc: int) -> None:
        if perc < 0 or perc > FEE_ONE:
            raise ValueError("burn fee must satisfy 0 ≤ fee ≤ 1")
        self.burn_fee_perc = perc

    def update_rollover_fee_perc(self, perc: int) -> None:
        if perc <= -FEE_ONE or perc >= FEE_ONE:
            raise ValueError("rollover fee must satisfy -1 < fee < 1")
        self.rollover_fee_perc = perc

    # --- FeeStrategy ---

    def compute_mint_fee_perc(self) -> int:
        return self.mint_fee_perc

    def compute_burn_fee_perc(self) -> int:
        return self.burn_fee_perc

    def compute_rollover_fee_perc(self) -> int:
        return self.rollover_fee_perc


__all__ = [
    "UnitPricingStrategy",
    "TablePricingStrategy",
    "BasicFeeStrategy",
]
