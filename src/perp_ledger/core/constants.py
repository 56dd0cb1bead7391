"""
Perp Ledger Core Constants (integer domain)
===========================================

Only fixed-point scales and sentinels live here. Decimal quanta used for
display and I/O conversion are kept at the bottom and are never used by the
engine arithmetic.
"""

# NOTE: Prices and fee percentages are fixed-point integers; amounts are raw token units.

from decimal import Decimal

# ---------------------------------------------------------------------------
# Fixed-point scales
# ---------------------------------------------------------------------------

#: Decimals reported by pricing strategies.
PRICE_DECIMALS: int = 8
UNIT_PRICE: int = 10 ** PRICE_DECIMALS

#: Decimals reported by fee strategies; FEE_ONE is 100%.
PERC_DECIMALS: int = 8
FEE_ONE: int = 10 ** PERC_DECIMALS

#: Decimals of the perp token and of the reference tokens.
TOKEN_DECIMALS: int = 18

#: "No cap" sentinel (uint256 max), used for rollover requests and limits.
UNBOUNDED: int = 2 ** 256 - 1


# ---------------------------------------------------------------------------
# Decimal quanta for display/IO quantisation (formatting helpers)
# ---------------------------------------------------------------------------

# Smallest representable step of an 18-decimal token.
TOKEN_QUANTUM: Decimal = Decimal(1).scaleb(-TOKEN_DECIMALS)

# Smallest representable step of a price.
PRICE_QUANTUM: Decimal = Decimal(1).scaleb(-PRICE_DECIMALS)

# Smallest representable step of a fee percentage.
PERC_QUANTUM: Decimal = Decimal(1).scaleb(-PERC_DECIMALS)


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

__all__ = [
    "PRICE_DECIMALS",
    "UNIT_PRICE",
    "PERC_DECIMALS",
    "FEE_ONE",
    "TOKEN_DECIMALS",
    "UNBOUNDED",
    "TOKEN_QUANTUM",
    "PRICE_QUANTUM",
    "PERC_QUANTUM",
]
