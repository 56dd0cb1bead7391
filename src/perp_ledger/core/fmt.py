"""
Formatting helpers and Decimal bridges (non-core arithmetic).

Core arithmetic uses plain integers. Decimal here is only for I/O and
convenience (e.g., tests, logs, CLI arguments).
"""

from decimal import Decimal, getcontext, ROUND_DOWN, ROUND_UP

from .exc import AmountDomainError
from .constants import TOKEN_DECIMALS, PRICE_DECIMALS, PERC_DECIMALS

# ---------------------------------------------------------------------------
# Global Decimal precision (formatting only)
# ---------------------------------------------------------------------------

#: Default global precision (number of significant digits) for Decimal-based
#: formatting. Large enough for uint256-sized fixed-point values.
DEFAULT_DECIMAL_PRECISION: int = 80
getcontext().prec = DEFAULT_DECIMAL_PRECISION

DecimalLike = Decimal | int | str


def to_decimal(x: DecimalLike) -> Decimal:
    """Local bridge: normalise numeric-like to Decimal (I/O boundary only)."""
    return x if isinstance(x, Decimal) else Decimal(str(x))


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def fmt_dec(x: Decimal, places: int = 18) -> str:
    """Format a Decimal in scientific notation with fixed fractional digits.

    The output is stable for logs and tests, e.g.:
      Decimal('1')        -> '1.000000000000000000E+0'
      Decimal('123456')   -> '1.234560000000000000E+5'
    """
    return format(x, f".{places}E")


# ---------------------------------------------------------------------------
# Decimal <-> fixed-point bridges (I/O only)
# ---------------------------------------------------------------------------

def _scale(x: DecimalLike, decimals: int, rounding: str) -> int:
    d = to_decimal(x)
    if d.is_nan() or d.is_infinite():
        raise AmountDomainError("invalid Decimal for fixed-point conversion")
    return int(d.scaleb(decimals).to_integral_value(rounding=rounding))


def to_fixed_pt(x: DecimalLike, decimals: int = TOKEN_DECIMALS) -> int:
    """OUT-path: floor a non-negative Decimal to the fixed-point grid (won't give more OUT)."""
    if to_decimal(x) < 0:
        raise AmountDomainError("to_fixed_pt: negative not allowed")
    return _scale(x, decimals, ROUND_DOWN)


def to_fixed_pt_up(x: DecimalLike, decimals: int = TOKEN_DECIMALS) -> int:
    """IN-path: ceil a non-negative Decimal to the fixed-point grid (won't pay less IN)."""
    if to_decimal(x) < 0:
        raise AmountDomainError("to_fixed_pt_up: negative not allowed")
    return _scale(x, decimals, ROUND_UP)


def to_price_fixed_pt(x: DecimalLike) -> int:
    return to_fixed_pt(x, PRICE_DECIMALS)


def to_perc_fixed_pt(x: DecimalLike) -> int:
    """Signed percentage (e.g. '-0.01' for a 1% rebate) on the fee grid, truncated toward zero."""
    return _scale(x, PERC_DECIMALS, ROUND_DOWN)


def from_fixed_pt(n: int, decimals: int = TOKEN_DECIMALS) -> Decimal:
    """Return the Decimal view of a fixed-point integer (display only)."""
    if not isinstance(n, int):
        raise AmountDomainError("from_fixed_pt: value must be int")
    return Decimal(n).scaleb(-decimals)


__all__ = [
    "DEFAULT_DECIMAL_PRECISION",
    "DecimalLike",
    "to_decimal",
    "fmt_dec",
    "to_fixed_pt",
    "to_fixed_pt_up",
    "to_price_fixed_pt",
    "to_perc_fixed_pt",
    "from_fixed_pt",
]
