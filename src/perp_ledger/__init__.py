# Top-level API for perp_ledger (integer-domain).
"""
Top-level API for perp_ledger (integer-domain).

This module exposes the stable interface of the perpetual-tranche ledger:
  - PerpetualTranche: the reserve accounting and exchange engine
  - PerpConfig: engine limits and tolerance window
  - exchange math (mint / redeem / rollover) as pure integer functions

Reference collaborators (FungibleToken, strategies and the in-memory bond
world in `perp_ledger.sim`) are exported for tests, scripts and research.
"""

# NOTE:
#   All amounts are raw integer token units; prices and percentages are
#   8-decimal fixed point. Decimal helpers in `perp_ledger.core.fmt` are
#   for I/O only.

from __future__ import annotations


# Engine surface
from .perpetual import PerpetualTranche
from .config import PerpConfig
from .sandbox import LedgerSandbox

# Exchange math and predicates
from .exchange import (
    token_value,
    reserve_value,
    compute_mint_amt,
    compute_redemption_amts,
    compute_rollover_amt,
)
from .predicates import (
    bond_of,
    is_acceptable_bond,
    is_acceptable_for_reserve,
    is_acceptable_rollover,
)

# Collaborator interfaces and reference implementations
from .interfaces import Token, Tranche, Bond, BondIssuer, PricingStrategy, FeeStrategy
from .token import FungibleToken
from .strategies import UnitPricingStrategy, TablePricingStrategy, BasicFeeStrategy
from .sim import SimClock, SimTranche, SimBond, SimBondIssuer

# Core integer-domain types
from .core import (
    PRICE_DECIMALS,
    UNIT_PRICE,
    PERC_DECIMALS,
    FEE_ONE,
    TOKEN_DECIMALS,
    UNBOUNDED,
    Rounding,
    mul_div,
    RolloverFee,
    ReserveSet,
    TokenAmount,
    RolloverData,
    ReserveAsset,
    Event,
    PerpError,
)

__all__ = [
    # engine
    "PerpetualTranche",
    "PerpConfig",
    "LedgerSandbox",
    # exchange math
    "token_value",
    "reserve_value",
    "compute_mint_amt",
    "compute_redemption_amts",
    "compute_rollover_amt",
    # predicates
    "bond_of",
    "is_acceptable_bond",
    "is_acceptable_for_reserve",
    "is_acceptable_rollover",
    # collaborators
    "Token",
    "Tranche",
    "Bond",
    "BondIssuer",
    "PricingStrategy",
    "FeeStrategy",
    "FungibleToken",
    "UnitPricingStrategy",
    "TablePricingStrategy",
    "BasicFeeStrategy",
    "SimClock",
    "SimTranche",
    "SimBond",
    "SimBondIssuer",
    # core
    "PRICE_DECIMALS",
    "UNIT_PRICE",
    "PERC_DECIMALS",
    "FEE_ONE",
    "TOKEN_DECIMALS",
    "UNBOUNDED",
    "Rounding",
    "mul_div",
    "RolloverFee",
    "ReserveSet",
    "TokenAmount",
    "RolloverData",
    "ReserveAsset",
    "Event",
    "PerpError",
]
