"""
Core exception types for perp_ledger.

These are dependency-free and may be imported by all modules. Every engine
rejection derives from PerpError so callers can catch the whole family.
"""

__all__ = [
    "PerpError",
    # authorization
    "UnauthorizedCall",
    # configuration
    "UnacceptableReference",
    "InvalidCollateral",
    "UnexpectedDecimals",
    "InvalidTrancheMaturityBounds",
    "InvalidMintingLimits",
    # business rules
    "UnacceptableDeposit",
    "UnacceptableRedemption",
    "UnacceptableRollover",
    "UnacceptableMintAmt",
    "ExceededMaxSupply",
    "ExceededMaxMintPerTranche",
    "UnauthorizedTransferOut",
    # state
    "EnforcedPause",
    "ExpectedPause",
    "ReentrantCall",
    # arithmetic / substrate
    "AmountDomainError",
    "InvariantViolation",
    "InsufficientBalance",
]


class PerpError(Exception):
    """Base class for every error raised by the ledger."""
    pass


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

class UnauthorizedCall(PerpError):
    """Raised when the sender is not the owner, keeper or an authorized roller."""

    def __init__(self, sender, role: str):
        super().__init__(f"sender={sender!r} is not authorized as {role}")
        self.sender = sender
        self.role = role


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class UnacceptableReference(PerpError):
    """Raised when a collaborator reference is missing."""
    pass


class InvalidCollateral(PerpError):
    """Raised when a bond issuer does not issue bonds backed by the reserve collateral."""
    pass


class UnexpectedDecimals(PerpError):
    """Raised when a pricing/fee strategy reports an unexpected fixed-point scale."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"expected {expected} decimals, got {actual}")
        self.expected = expected
        self.actual = actual


class InvalidTrancheMaturityBounds(PerpError):
    """Raised when the maturity tolerance window is empty or inverted."""

    def __init__(self, min_sec: int, max_sec: int):
        super().__init__(f"invalid tranche maturity bounds [{min_sec}, {max_sec})")
        self.min_sec = min_sec
        self.max_sec = max_sec


class InvalidMintingLimits(PerpError):
    """Raised when a supply cap or per-tranche mint cap is negative."""

    def __init__(self, max_supply: int, max_mint_amt_per_tranche: int):
        super().__init__(
            f"invalid minting limits max_supply={max_supply} "
            f"max_mint_amt_per_tranche={max_mint_amt_per_tranche}"
        )
        self.max_supply = max_supply
        self.max_mint_amt_per_tranche = max_mint_amt_per_tranche


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------

class UnacceptableDeposit(PerpError):
    """Raised when a tranche may not be deposited (wrong bond or not senior)."""
    pass


class UnacceptableRedemption(PerpError):
    """Raised when the burn amount is zero or exceeds the outstanding supply."""
    pass


class UnacceptableRollover(PerpError):
    """Raised when a (tranche_in, token_out) pair fails the rollover predicate."""
    pass


class UnacceptableMintAmt(UnacceptableDeposit):
    """Raised when the deposit amount or the computed mint amount is zero."""
    pass


class ExceededMaxSupply(PerpError):
    """Raised when total supply would exceed the configured maximum."""

    def __init__(self, new_supply: int, max_supply: int):
        super().__init__(f"supply {new_supply} exceeds max supply {max_supply}")
        self.new_supply = new_supply
        self.max_supply = max_supply


class ExceededMaxMintPerTranche(PerpError):
    """Raised when the amount minted against a single tranche exceeds its cap."""

    def __init__(self, tranche, minted: int, max_mint: int):
        super().__init__(f"minted {minted} against {tranche!r} exceeds cap {max_mint}")
        self.tranche = tranche
        self.minted = minted
        self.max_mint = max_mint


class UnauthorizedTransferOut(PerpError):
    """Raised when the admin transfer path targets a reserve asset."""
    pass


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class EnforcedPause(PerpError):
    """Raised when an operation requires the engine to be running but it is paused."""
    pass


class ExpectedPause(PerpError):
    """Raised when unpausing an engine that is not paused."""
    pass


class ReentrantCall(PerpError):
    """Raised when deposit/redeem/rollover is entered while one is already executing."""
    pass


# ---------------------------------------------------------------------------
# Arithmetic / token substrate
# ---------------------------------------------------------------------------

class AmountDomainError(PerpError):
    """Raised when inputs violate the non-negative domain or basic preconditions."""
    pass


class InvariantViolation(PerpError):
    """Raised when arithmetic or bookkeeping would break core invariants."""
    pass


class InsufficientBalance(PerpError):
    """Raised when a holder tries to move or burn more tokens than it owns."""

    def __init__(self, holder, balance: int, requested: int):
        super().__init__(f"{holder!r} holds {balance}, requested {requested}")
        self.holder = holder
        self.balance = balance
        self.requested = requested
