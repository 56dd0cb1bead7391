from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List

from .core.exc import InvariantViolation


# ----------------------------
# Ledger sandbox
# ----------------------------

@dataclass
class LedgerSandbox:
    """Stage undo actions for the mutations of one operation.

    Each mutation performed inside `atomic()` registers a compensating action.
    On success the staged actions are dropped (commit); on any exception they
    run in reverse order (rollback) and the exception propagates. Outside
    `atomic()` nothing is staged and mutations are final immediately.
    """
    staged: List[Callable[[], None]]

    def __init__(self) -> None:
        self.staged = []
        self._depth = 0

    @property
    def active(self) -> bool:
        return self._depth > 0

    def record(self, undo: Callable[[], None]) -> None:
        if self._depth > 0:
            self.staged.append(undo)

    @contextmanager
    def atomic(self) -> Iterator["LedgerSandbox"]:
        """Run a block all-or-nothing; nested blocks unwind only their own part."""
        mark = len(self.staged)
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._rollback_to(mark)
            raise
        else:
            if self._depth == 1:
                self.staged.clear()
        finally:
            self._depth -= 1

    def _rollback_to(self, mark: int) -> None:
        while len(self.staged) > mark:
            undo = self.staged.pop()
            try:
                undo()
            except Exception as e:
                raise InvariantViolation(f"sandbox rollback failed: {e}") from e


__all__ = ["LedgerSandbox"]
