"""
Perp Ledger Core
================

Unified exports for integer-domain primitives: fixed-point scales, rounding
helpers, the reserve set, result datatypes and exceptions.
Decimal helpers are provided *only* for I/O formatting.
"""

# NOTE:
#   All engine computations are performed on plain integers (raw token units,
#   8-decimal prices and percentages) with explicit rounding direction.
#   Decimal functions exist only for I/O conversion and display.

from .constants import (
    PRICE_DECIMALS,
    UNIT_PRICE,
    PERC_DECIMALS,
    FEE_ONE,
    TOKEN_DECIMALS,
    UNBOUNDED,
)

# Decimal formatting helpers (non-core arithmetic)
from .fmt import (
    fmt_dec,
    to_fixed_pt,
    to_fixed_pt_up,
    to_price_fixed_pt,
    to_perc_fixed_pt,
    from_fixed_pt,
)

# Fixed-point arithmetic
from .fixed_point import (
    Rounding,
    mul_div,
    apply_fee_down,
    RolloverFee,
)

from .reserve_set import ReserveSet

from .datatypes import (
    TokenAmount,
    RolloverData,
    ReserveAsset,
    Event,
)

# Core exceptions
from .exc import (
    PerpError,
    UnauthorizedCall,
    UnacceptableReference,
    InvalidCollateral,
    UnexpectedDecimals,
    InvalidTrancheMaturityBounds,
    InvalidMintingLimits,
    UnacceptableDeposit,
    UnacceptableRedemption,
    UnacceptableRollover,
    UnacceptableMintAmt,
    ExceededMaxSupply,
    ExceededMaxMintPerTranche,
    UnauthorizedTransferOut,
    EnforcedPause,
    ExpectedPause,
    ReentrantCall,
    AmountDomainError,
    InvariantViolation,
    InsufficientBalance,
)

__all__ = [
    # constants
    "PRICE_DECIMALS",
    "UNIT_PRICE",
    "PERC_DECIMALS",
    "FEE_ONE",
    "TOKEN_DECIMALS",
    "UNBOUNDED",
    # fmt
    "fmt_dec",
    "to_fixed_pt",
    "to_fixed_pt_up",
    "to_price_fixed_pt",
    "to_perc_fixed_pt",
    "from_fixed_pt",
    # fixed point
    "Rounding",
    "mul_div",
    "apply_fee_down",
    "RolloverFee",
    # reserve set
    "ReserveSet",
    # datatypes
    "TokenAmount",
    "RolloverData",
    "ReserveAsset",
    "Event",
    # exceptions
    "PerpError",
    "UnauthorizedCall",
    "UnacceptableReference",
    "InvalidCollateral",
    "UnexpectedDecimals",
    "InvalidTrancheMaturityBounds",
    "InvalidMintingLimits",
    "UnacceptableDeposit",
    "UnacceptableRedemption",
    "UnacceptableRollover",
    "UnacceptableMintAmt",
    "ExceededMaxSupply",
    "ExceededMaxMintPerTranche",
    "UnauthorizedTransferOut",
    "EnforcedPause",
    "ExpectedPause",
    "ReentrantCall",
    "AmountDomainError",
    "InvariantViolation",
    "InsufficientBalance",
]
