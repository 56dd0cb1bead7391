from __future__ import annotations

from typing import Any, Tuple


class Token:
    """Abstract fungible token (balances only; approvals are out of scope).

    Implementations expose an integer `decimals` attribute.
    """

    decimals: int

    def balance_of(self, holder: Any) -> int:
        raise NotImplementedError

    def transfer(self, sender: Any, recipient: Any, amount: int) -> None:
        raise NotImplementedError


class Tranche(Token):
    """A token representing one risk slice of a bond."""

    def bond(self) -> "Bond":
        raise NotImplementedError


class Bond:
    """Tranche bond collaborator.

    tranche_at(i) returns (tranche, ratio); index 0 is the most senior tranche.
    redeem_mature(holder, tranche, amount) burns `amount` of holder's tranche
    and pays out the matching collateral to holder; it requires is_mature().
    """

    def collateral_token(self) -> Token:
        raise NotImplementedError

    def seconds_to_maturity(self) -> int:
        raise NotImplementedError

    def is_mature(self) -> bool:
        raise NotImplementedError

    def mature(self) -> None:
        raise NotImplementedError

    def redeem_mature(self, holder: Any, tranche: Tranche, amount: int) -> None:
        raise NotImplementedError

    def tranche_count(self) -> int:
        raise NotImplementedError

    def tranche_at(self, index: int) -> Tuple[Tranche, int]:
        raise NotImplementedError

    def senior_tranche(self) -> Tranche:
        return self.tranche_at(0)[0]


class BondIssuer:
    """Periodically creates bonds; the engine only reads the latest one."""

    def collateral_token(self) -> Token:
        raise NotImplementedError

    def get_latest_bond(self) -> Bond:
        raise NotImplementedError


class PricingStrategy:
    """Prices tranches in fixed point (decimals() digits). Collateral is never priced here."""

    def decimals(self) -> int:
        raise NotImplementedError

    def compute_tranche_price(self, tranche: Tranche) -> int:
        raise NotImplementedError


class FeeStrategy:
    """Fee percentages in fixed point (decimals() digits); rollover fee is signed."""

    def decimals(self) -> int:
        raise NotImplementedError

    def compute_mint_fee_perc(self) -> int:
        raise NotImplementedError

    def compute_burn_fee_perc(self) -> int:
        raise NotImplementedError

    def compute_rollover_fee_perc(self) -> int:
        raise NotImplementedError


__all__ = [
    "Token",
    "Tranche",
    "Bond",
    "BondIssuer",
    "PricingStrategy",
    "FeeStrategy",
]
