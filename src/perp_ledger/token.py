"""
FungibleToken: minimal balance bookkeeping (integer domain).

Holders are arbitrary hashable handles (strings in tests, engine objects for
reserves). Transfers and burns never overdraw; mints and burns keep
total_supply equal to the sum of balances.
"""

from __future__ import annotations

from typing import Any, Dict

from .core.constants import TOKEN_DECIMALS
from .core.exc import AmountDomainError, InsufficientBalance
from .interfaces import Token


class FungibleToken(Token):

    def __init__(self, name: str, symbol: str, decimals: int = TOKEN_DECIMALS) -> None:
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._balances: Dict[Any, int] = {}
        self._total_supply = 0

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.symbol}>"

    # --- views ---

    def balance_of(self, holder: Any) -> int:
        return self._balances.get(holder, 0)

    def total_supply(self) -> int:
        return self._total_supply

    # --- mutations ---

    def _debit(self, holder: Any, amount: int) -> None:
        bal = self.balance_of(holder)
        if bal < amount:
            raise InsufficientBalance(holder, bal, amount)
        if bal == amount:
            self._balances.pop(holder, None)
        else:
            self._balances[holder] = bal - amount

    def _credit(self, holder: Any, amount: int) -> None:
        if amount:
            self._balances[holder] = self.balance_of(holder) + amount

    def transfer(self, sender: Any, recipient: Any, amount: int) -> None:
        if amount < 0:
            raise AmountDomainError(f"negative transfer not allowed: {amount}")
        self._debit(sender, amount)
        self._credit(recipient, amount)

    def mint(self, holder: Any, amount: int) -> None:
        if amount < 0:
            raise AmountDomainError(f"negative mint not allowed: {amount}")
        self._credit(holder, amount)
        self._total_supply += amount

    def burn(self, holder: Any, amount: int) -> None:
        if amount < 0:
            raise AmountDomainError(f"negative burn not allowed: {amount}")
        self._debit(holder, amount)
        self._total_supply -= amount


__all__ = ["FungibleToken"]
