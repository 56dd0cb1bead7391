"""
Fixed-point primitives: integer mul/div with explicit rounding and the
tagged signed rollover fee.

- Non-negative domain: all amounts, prices and unsigned percentages are >= 0.
- Rounding semantics: amounts handed OUT of the reserve round down, amounts
  taken IN round up. Callers pick the direction explicitly.
- The signed rollover fee is decoded once into a two-case value so that each
  branch carries its own rounding rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from .constants import FEE_ONE
from .exc import AmountDomainError, InvariantViolation


# ----------------------------
# Integer rounding helpers (centralised)
# ----------------------------

def _ceil_div(a: int, b: int) -> int:
    if a < 0 or b <= 0:
        raise AmountDomainError("_ceil_div expects a>=0 and b>0")
    return 0 if a == 0 else -(-a // b)


def _floor_div(a: int, b: int) -> int:
    if a < 0 or b <= 0:
        raise AmountDomainError("_floor_div expects a>=0 and b>0")
    return a // b


class Rounding(Enum):
    DOWN = "down"
    UP = "up"


def mul_div(x: int, y: int, d: int, rounding: Rounding = Rounding.DOWN) -> int:
    """Return x * y / d rounded in the requested direction (exact, no overflow)."""
    if x < 0 or y < 0:
        raise AmountDomainError(f"mul_div expects non-negative operands: x={x}, y={y}")
    if d == 0:
        raise ZeroDivisionError("mul_div by zero")
    if d < 0:
        raise AmountDomainError(f"negative denominator not allowed: d={d}")
    if rounding is Rounding.UP:
        return _ceil_div(x * y, d)
    return _floor_div(x * y, d)


def apply_fee_down(amount: int, fee_perc: int) -> int:
    """Scale amount by (1 - fee_perc), rounding down. Used for mint and burn fees."""
    if fee_perc < 0 or fee_perc > FEE_ONE:
        raise AmountDomainError(f"fee percentage out of range: {fee_perc}")
    return mul_div(amount, FEE_ONE - fee_perc, FEE_ONE)


# ----------------------------
# Signed rollover fee
# ----------------------------

@dataclass(frozen=True)
class RolloverFee:
    """Rollover fee decoded from a signed percentage.

    kind="charge": the roller pays perc (outgoing shrinks / incoming grows).
    kind="rebate": the system pays perc (outgoing grows / incoming shrinks).
    A zero fee is a charge of zero.
    """
    kind: Literal["charge", "rebate"]
    perc: int

    def __post_init__(self):
        if self.perc < 0:
            raise AmountDomainError("RolloverFee.perc is a magnitude and must be >= 0")
        if self.kind == "charge" and self.perc >= FEE_ONE:
            raise InvariantViolation(f"rollover charge must be < 100%: {self.perc}")

    @classmethod
    def from_signed(cls, fee_perc: int) -> "RolloverFee":
        if fee_perc >= 0:
            return cls("charge", fee_perc)
        return cls("rebate", -fee_perc)

    def is_zero(self) -> bool:
        return self.perc == 0

    def adjust_out(self, token_out_amt: int) -> int:
        """Forward branch: fee-adjust the outgoing amount, rounding down."""
        if self.is_zero():
            return token_out_amt
        if self.kind == "charge":
            return mul_div(token_out_amt, FEE_ONE - self.perc, FEE_ONE)
        return mul_div(token_out_amt, FEE_ONE + self.perc, FEE_ONE)

    def adjust_in(self, tranche_in_amt: int) -> int:
        """Inverse branch: fee-adjust the incoming amount, rounding up."""
        if self.is_zero():
            return tranche_in_amt
        if self.kind == "charge":
            return mul_div(tranche_in_amt, FEE_ONE, FEE_ONE - self.perc, Rounding.UP)
        return mul_div(tranche_in_amt, FEE_ONE, FEE_ONE + self.perc, Rounding.UP)


__all__ = [
    "Rounding",
    "mul_div",
    "apply_fee_down",
    "RolloverFee",
]
