"""
ReserveSet: the distinct assets currently backing the perp token.

Growable array plus a reverse index (token -> position). Removal swaps the
last element into the removed slot and truncates, so add/remove/contains are
O(1) and insertion order is not preserved. Position 0 holds the underlying
collateral and can never be removed.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Tuple

from .exc import InvariantViolation


class ReserveSet:
    """Unordered set with swap-remove semantics and a pinned element at index 0."""

    def __init__(self, collateral: Any) -> None:
        if collateral is None:
            raise InvariantViolation("reserve collateral must be set")
        self._items: List[Any] = [collateral]
        self._index: Dict[Any, int] = {collateral: 0}

    # ------------- queries -------------

    @property
    def collateral(self) -> Any:
        return self._items[0]

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, token: Any) -> bool:
        return token in self._index

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._items))

    def at(self, i: int) -> Any:
        if i < 0 or i >= len(self._items):
            raise IndexError(f"reserve index out of range: {i}")
        return self._items[i]

    # ------------- mutations -------------

    def add(self, token: Any) -> bool:
        """Add token; return False if it was already tracked."""
        if token in self._index:
            return False
        self._index[token] = len(self._items)
        self._items.append(token)
        return True

    def remove(self, token: Any) -> bool:
        """Swap-remove token; return False if it was not tracked."""
        pos = self._index.get(token)
        if pos is None:
            return False
        if pos == 0:
            raise InvariantViolation("reserve collateral at index 0 cannot be removed")
        last = self._items[-1]
        self._items[pos] = last
        self._index[last] = pos
        self._items.pop()
        del self._index[token]
        return True

    # ------------- sandbox support -------------

    def snapshot(self) -> Tuple[Any, ...]:
        return tuple(self._items)

    def restore(self, items: Tuple[Any, ...]) -> None:
        self._items = list(items)
        self._index = {t: i for i, t in enumerate(self._items)}


__all__ = ["ReserveSet"]
