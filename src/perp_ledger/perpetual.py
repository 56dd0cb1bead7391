"""
PerpetualTranche: reserve accounting and exchange engine for the perp token.

Flow:
  Every value-bearing entry point runs: pause check → reentrancy guard →
  lazy state refresh (update_state) → atomic body. The body consults the
  reserve set, the acceptance predicates and the external price/fee
  strategies, moves tokens, and resyncs the reserve after each movement.
  Any rejection inside the body unwinds all of its effects via the sandbox.

Invariants after every successful operation:
  - reserve index 0 is the collateral and is never removed;
  - a tranche is a reserve member iff the engine holds a positive balance;
  - minted-per-tranche <= cap and total supply <= max supply.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Set

from .config import PerpConfig
from .core.constants import PERC_DECIMALS, PRICE_DECIMALS, TOKEN_DECIMALS, UNBOUNDED, UNIT_PRICE
from .core.datatypes import Event, ReserveAsset, RolloverData, TokenAmount
from .core.exc import (
    EnforcedPause,
    ExceededMaxMintPerTranche,
    ExceededMaxSupply,
    ExpectedPause,
    InvalidCollateral,
    InvalidTrancheMaturityBounds,
    InvalidMintingLimits,
    ReentrantCall,
    UnacceptableDeposit,
    UnacceptableMintAmt,
    UnacceptableRedemption,
    UnacceptableReference,
    UnacceptableRollover,
    UnauthorizedCall,
    UnauthorizedTransferOut,
    UnexpectedDecimals,
)
from .core.fixed_point import RolloverFee, mul_div
from .core.reserve_set import ReserveSet
from .exchange import (
    compute_mint_amt,
    compute_redemption_amts,
    compute_rollover_amt,
    reserve_value,
    token_value,
)
from .interfaces import Bond, BondIssuer, FeeStrategy, PricingStrategy, Token
from .predicates import bond_of, is_acceptable_bond, is_acceptable_for_reserve, is_acceptable_rollover
from .sandbox import LedgerSandbox
from .token import FungibleToken

logger = logging.getLogger(__name__)

# --- Debug utilities (toggleable) ---
DEBUG_PERP = bool(int(os.environ.get("PERP_LEDGER_DEBUG", "0")))

def _dbg(msg: str) -> None:
    if DEBUG_PERP:
        logger.debug("[PERP] %s", msg)


class PerpetualTranche:
    """Perp token backed by a rotating reserve of senior tranches and collateral."""

    def __init__(
        self,
        name: str,
        symbol: str,
        collateral: Token,
        bond_issuer: BondIssuer,
        pricing_strategy: PricingStrategy,
        fee_strategy: FeeStrategy,
        *,
        owner: Any,
        keeper: Any = None,
        config: Optional[PerpConfig] = None,
    ) -> None:
        if collateral is None:
            raise UnacceptableReference("collateral must be set")
        cfg = config or PerpConfig()

        self.sandbox = LedgerSandbox()
        self.events: List[Event] = []
        self._perp = FungibleToken(name, symbol, TOKEN_DECIMALS)
        self._reserve = ReserveSet(collateral)
        self._minted: Dict[Any, int] = {}
        self._synced: Dict[Any, int] = {}
        self._deposit_bond: Optional[Bond] = None
        self._paused = False
        self._entered = False

        self.owner = owner
        self.keeper = owner if keeper is None else keeper
        self.min_tranche_maturity_sec = cfg.min_tranche_maturity_sec
        self.max_tranche_maturity_sec = cfg.max_tranche_maturity_sec
        self.max_supply = cfg.max_supply
        self.max_mint_amt_per_tranche = cfg.max_mint_amt_per_tranche
        self._authorized_rollers: Set[Any] = set(cfg.authorized_rollers)

        self._set_bond_issuer(bond_issuer)
        self._set_pricing_strategy(pricing_strategy)
        self._set_fee_strategy(fee_strategy)
        self._sync_reserve(collateral)

    def __repr__(self) -> str:
        return f"<PerpetualTranche {self._perp.symbol}>"

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _only_owner(self, sender: Any) -> None:
        if sender != self.owner:
            raise UnauthorizedCall(sender, "owner")

    def _only_keeper(self, sender: Any) -> None:
        if sender != self.keeper:
            raise UnauthorizedCall(sender, "keeper")

    def _only_rollers(self, sender: Any) -> None:
        if self._authorized_rollers and sender not in self._authorized_rollers:
            raise UnauthorizedCall(sender, "roller")

    def _when_not_paused(self) -> None:
        if self._paused:
            raise EnforcedPause("engine is paused")

    @contextmanager
    def _non_reentrant(self) -> Iterator[None]:
        if self._entered:
            raise ReentrantCall("deposit/redeem/rollover already executing")
        self._entered = True
        try:
            yield
        finally:
            self._entered = False

    # ------------------------------------------------------------------
    # Journaled mutations
    # ------------------------------------------------------------------

    def _emit(self, name: str, **args: Any) -> None:
        self.events.append(Event(name, args))
        self.sandbox.record(self.events.pop)

    def _transfer_in(self, token: Token, sender: Any, amount: int) -> None:
        token.transfer(sender, self, amount)
        self.sandbox.record(lambda: token.transfer(self, sender, amount))

    def _transfer_out(self, token: Token, recipient: Any, amount: int) -> None:
        token.transfer(self, recipient, amount)
        self.sandbox.record(lambda: token.transfer(recipient, self, amount))

    def _mint(self, holder: Any, amount: int) -> None:
        self._perp.mint(holder, amount)
        self.sandbox.record(lambda: self._perp.burn(holder, amount))

    def _burn(self, holder: Any, amount: int) -> None:
        self._perp.burn(holder, amount)
        self.sandbox.record(lambda: self._perp.mint(holder, amount))

    def _set_minted(self, tranche: Any, value: int) -> None:
        prev = self._minted.get(tranche)
        if value:
            self._minted[tranche] = value
        else:
            self._minted.pop(tranche, None)

        def undo() -> None:
            if prev is None:
                self._minted.pop(tranche, None)
            else:
                self._minted[tranche] = prev
        self.sandbox.record(undo)

    def _set_deposit_bond(self, bond: Bond) -> None:
        prev = self._deposit_bond
        self._deposit_bond = bond
        self.sandbox.record(lambda: setattr(self, "_deposit_bond", prev))
        self._emit("UpdatedDepositBond", bond=bond)
        _dbg(f"deposit bond -> {bond!r}")

    def _sync_reserve(self, token: Token) -> int:
        """Reconcile reserve membership of `token` with the engine's balance; return the balance."""
        balance = token.balance_of(self)
        tracked = token in self._reserve
        snap = self._reserve.snapshot()
        if balance > 0 and not tracked:
            self._reserve.add(token)
            self.sandbox.record(lambda: self._reserve.restore(snap))
        elif balance == 0 and tracked and token is not self.collateral:
            self._reserve.remove(token)
            self.sandbox.record(lambda: self._reserve.restore(snap))
            self._set_minted(token, 0)
        # ReserveSynced only when the balance moved since the last sync.
        prev = self._synced.get(token)
        if prev != balance:
            self._synced[token] = balance

            def undo() -> None:
                if prev is None:
                    self._synced.pop(token, None)
                else:
                    self._synced[token] = prev
            self.sandbox.record(undo)
            self._emit("ReserveSynced", token=token, balance=balance)
        return balance

    # ------------------------------------------------------------------
    # Lazy state refresh
    # ------------------------------------------------------------------

    def update_state(self) -> None:
        """Refresh the deposit bond and sweep matured tranches into collateral.

        Idempotent: a second call in the same external state changes nothing.
        """
        latest = self.bond_issuer.get_latest_bond()
        if latest is not self._deposit_bond and is_acceptable_bond(
            latest, self.collateral, self.min_tranche_maturity_sec, self.max_tranche_maturity_sec
        ):
            self._set_deposit_bond(latest)

        # Reverse walk: swap-remove moves the last element into the freed slot.
        for i in range(len(self._reserve) - 1, 0, -1):
            token = self._reserve.at(i)
            bond = bond_of(token)
            if bond is None:
                continue
            if bond.is_mature() or bond.seconds_to_maturity() <= 0:
                if not bond.is_mature():
                    bond.mature()
                bond.redeem_mature(self, token, token.balance_of(self))
                _dbg(f"matured {token!r} swept into collateral")
                self._sync_reserve(token)

        self._sync_reserve(self.collateral)

    # ------------------------------------------------------------------
    # Pricing helpers
    # ------------------------------------------------------------------

    def _price(self, token: Any) -> int:
        if token is self.collateral:
            return UNIT_PRICE
        return self.pricing_strategy.compute_tranche_price(token)

    def _reserve_value(self) -> int:
        return reserve_value((token.balance_of(self), self._price(token)) for token in self._reserve)

    def _compute_mint_amt(self, tranche: Any, tranche_in_amt: int) -> int:
        return compute_mint_amt(
            tranche_in_amt,
            self._price(tranche),
            self._perp.total_supply(),
            self._reserve_value(),
            self.fee_strategy.compute_mint_fee_perc(),
        )

    def _compute_redemption_amts(self, perp_amt_burnt: int) -> List[TokenAmount]:
        return compute_redemption_amts(
            [(t, t.balance_of(self)) for t in self._reserve],
            perp_amt_burnt,
            self._perp.total_supply(),
            self.fee_strategy.compute_burn_fee_perc(),
        )

    def _compute_rollover_amt(self, tranche_in: Any, token_out: Any,
                              tranche_in_amt: int, token_out_amt_requested: int) -> RolloverData:
        fee = RolloverFee.from_signed(self.fee_strategy.compute_rollover_fee_perc())
        return compute_rollover_amt(
            tranche_in_amt,
            self._price(tranche_in),
            self._price(token_out),
            token_out.balance_of(self),
            token_out_amt_requested,
            fee,
        )

    def _is_acceptable_rollover(self, tranche_in: Any, token_out: Any) -> bool:
        return is_acceptable_rollover(
            tranche_in,
            token_out,
            collateral=self.collateral,
            deposit_bond=self._deposit_bond,
            reserve=self._reserve,
            min_sec=self.min_tranche_maturity_sec,
            max_sec=self.max_tranche_maturity_sec,
        )

    def _enforce_supply_caps(self, tranche: Any) -> None:
        minted = self._minted.get(tranche, 0)
        if minted > self.max_mint_amt_per_tranche:
            raise ExceededMaxMintPerTranche(tranche, minted, self.max_mint_amt_per_tranche)
        supply = self._perp.total_supply()
        if supply > self.max_supply:
            raise ExceededMaxSupply(supply, self.max_supply)

    # ------------------------------------------------------------------
    # Value-bearing operations
    # ------------------------------------------------------------------

    def deposit(self, tranche: Any, tranche_in_amt: int, *, sender: Any) -> int:
        """Deposit senior tranches of the deposit bond and mint perps; return the minted amount."""
        self._when_not_paused()
        with self._non_reentrant():
            self.update_state()
            with self.sandbox.atomic():
                if not is_acceptable_for_reserve(tranche, self._deposit_bond):
                    raise UnacceptableDeposit(f"{tranche!r} is not the senior tranche of the deposit bond")
                if tranche_in_amt <= 0:
                    raise UnacceptableMintAmt(f"deposit amount must be > 0: {tranche_in_amt}")
                perp_amt_mint = self._compute_mint_amt(tranche, tranche_in_amt)
                if perp_amt_mint <= 0:
                    raise UnacceptableMintAmt(f"deposit of {tranche_in_amt} mints nothing")

                self._transfer_in(tranche, sender, tranche_in_amt)
                self._sync_reserve(tranche)
                self._mint(sender, perp_amt_mint)
                self._set_minted(tranche, self._minted.get(tranche, 0) + perp_amt_mint)
                self._enforce_supply_caps(tranche)
                _dbg(f"deposit {tranche_in_amt} {tranche!r} -> minted {perp_amt_mint}")
                return perp_amt_mint

    def redeem(self, perp_amt_burnt: int, *, sender: Any) -> List[TokenAmount]:
        """Burn perps for a pro-rata, fee-discounted slice of every reserve asset."""
        self._when_not_paused()
        with self._non_reentrant():
            self.update_state()
            with self.sandbox.atomic():
                supply = self._perp.total_supply()
                if perp_amt_burnt <= 0 or perp_amt_burnt > supply:
                    raise UnacceptableRedemption(f"burn amount must lie in (0, {supply}]: {perp_amt_burnt}")
                token_amts = self._compute_redemption_amts(perp_amt_burnt)
                if all(ta.is_zero() for ta in token_amts):
                    raise UnacceptableRedemption(f"burning {perp_amt_burnt} redeems nothing")

                self._burn(sender, perp_amt_burnt)
                for ta in token_amts:
                    if ta.amount > 0:
                        self._transfer_out(ta.token, sender, ta.amount)
                        self._sync_reserve(ta.token)
                _dbg(f"redeem {perp_amt_burnt} -> {len(token_amts)} assets")
                return token_amts

    def rollover(
        self,
        tranche_in: Any,
        token_out: Any,
        tranche_in_amt_available: int,
        *,
        sender: Any,
        token_out_amt_requested: int = UNBOUNDED,
    ) -> RolloverData:
        """Swap fresh senior tranches for stale reserve assets at a fee-adjusted equal value."""
        self._only_rollers(sender)
        self._when_not_paused()
        with self._non_reentrant():
            self.update_state()
            with self.sandbox.atomic():
                if not self._is_acceptable_rollover(tranche_in, token_out):
                    raise UnacceptableRollover(f"cannot roll {tranche_in!r} for {token_out!r}")
                r = self._compute_rollover_amt(tranche_in, token_out,
                                               tranche_in_amt_available, token_out_amt_requested)
                if r.is_null():
                    return r

                self._transfer_in(tranche_in, sender, r.tranche_in_amt)
                self._sync_reserve(tranche_in)
                self._transfer_out(token_out, sender, r.token_out_amt)
                self._sync_reserve(token_out)
                _dbg(f"rollover in={r.tranche_in_amt} {tranche_in!r} out={r.token_out_amt} {token_out!r}")
                return r

    # ------------------------------------------------------------------
    # Previews (refresh first, never move tokens)
    # ------------------------------------------------------------------

    def compute_mint_amt(self, tranche: Any, tranche_in_amt: int) -> int:
        self.update_state()
        return self._compute_mint_amt(tranche, tranche_in_amt)

    def compute_redemption_amts(self, perp_amt_burnt: int) -> List[TokenAmount]:
        self.update_state()
        supply = self._perp.total_supply()
        if perp_amt_burnt <= 0 or perp_amt_burnt > supply:
            raise UnacceptableRedemption(f"burn amount must lie in (0, {supply}]: {perp_amt_burnt}")
        return self._compute_redemption_amts(perp_amt_burnt)

    def compute_rollover_amt(self, tranche_in: Any, token_out: Any, tranche_in_amt_available: int,
                             token_out_amt_requested: int = UNBOUNDED) -> RolloverData:
        self.update_state()
        return self._compute_rollover_amt(tranche_in, token_out,
                                          tranche_in_amt_available, token_out_amt_requested)

    # ------------------------------------------------------------------
    # Queries (refresh first)
    # ------------------------------------------------------------------

    @property
    def collateral(self) -> Token:
        return self._reserve.collateral

    def get_deposit_bond(self) -> Optional[Bond]:
        self.update_state()
        return self._deposit_bond

    def get_reserve_count(self) -> int:
        self.update_state()
        return len(self._reserve)

    def get_reserve_at(self, i: int) -> Token:
        self.update_state()
        return self._reserve.at(i)

    def in_reserve(self, token: Any) -> bool:
        self.update_state()
        return token in self._reserve

    def get_reserve_token_balance(self, token: Any) -> int:
        self.update_state()
        return token.balance_of(self) if token in self._reserve else 0

    def get_reserve_token_value(self, token: Any) -> int:
        self.update_state()
        if token not in self._reserve:
            return 0
        return token_value(token.balance_of(self), self._price(token))

    def get_reserve_value(self) -> int:
        self.update_state()
        return self._reserve_value()

    def get_avg_price(self) -> int:
        """Reserve value per perp token (PRICE_DECIMALS fixed point)."""
        self.update_state()
        supply = self._perp.total_supply()
        if supply == 0:
            return UNIT_PRICE
        return mul_div(self._reserve_value(), UNIT_PRICE, supply)

    def get_reserve_tokens_up_for_rollover(self) -> List[Token]:
        """Reserve assets a roller may currently take out.

        The senior tranche of the deposit bond is never listed, even once that
        bond has drifted out of the tolerance window: rollovers refuse it while
        it is still mint-acceptable.
        """
        self.update_state()
        out: List[Token] = []
        for token in self._reserve:
            if token is self.collateral:
                if token.balance_of(self) > 0:
                    out.append(token)
            elif is_acceptable_for_reserve(token, self._deposit_bond):
                continue
            elif not is_acceptable_bond(bond_of(token), self.collateral,
                                        self.min_tranche_maturity_sec, self.max_tranche_maturity_sec):
                out.append(token)
        return out

    def describe_reserve(self) -> List[ReserveAsset]:
        self.update_state()
        out: List[ReserveAsset] = []
        for token in self._reserve:
            balance = token.balance_of(self)
            if token is self.collateral:
                out.append(ReserveAsset(token, "collateral", balance, UNIT_PRICE))
                continue
            bond = bond_of(token)
            seniority = next(
                (i for i in range(bond.tranche_count()) if bond.tranche_at(i)[0] is token), None
            )
            out.append(ReserveAsset(
                token, "tranche", balance, self._price(token),
                bond=bond, seniority=seniority, seconds_to_maturity=bond.seconds_to_maturity(),
            ))
        return out

    def is_acceptable_for_reserve(self, tranche: Any) -> bool:
        self.update_state()
        return is_acceptable_for_reserve(tranche, self._deposit_bond)

    def is_acceptable_rollover(self, tranche_in: Any, token_out: Any) -> bool:
        self.update_state()
        return self._is_acceptable_rollover(tranche_in, token_out)

    def compute_price(self, token: Any) -> int:
        return self._price(token)

    def minted_supply(self, tranche: Any) -> int:
        return self._minted.get(tranche, 0)

    @property
    def paused(self) -> bool:
        return self._paused

    def is_authorized_roller(self, roller: Any) -> bool:
        return roller in self._authorized_rollers

    # ------------------------------------------------------------------
    # Perp token surface
    # ------------------------------------------------------------------

    @property
    def perp_token(self) -> FungibleToken:
        return self._perp

    def balance_of(self, holder: Any) -> int:
        return self._perp.balance_of(holder)

    def total_supply(self) -> int:
        return self._perp.total_supply()

    def transfer(self, recipient: Any, amount: int, *, sender: Any) -> None:
        self._perp.transfer(sender, recipient, amount)

    # ------------------------------------------------------------------
    # Admin / config
    # ------------------------------------------------------------------

    def _set_bond_issuer(self, issuer: Optional[BondIssuer]) -> None:
        if issuer is None:
            raise UnacceptableReference("bond issuer must be set")
        if issuer.collateral_token() is not self.collateral:
            raise InvalidCollateral(f"{issuer!r} does not issue bonds backed by {self.collateral!r}")
        self.bond_issuer = issuer

    def _set_pricing_strategy(self, strategy: Optional[PricingStrategy]) -> None:
        if strategy is None:
            raise UnacceptableReference("pricing strategy must be set")
        if strategy.decimals() != PRICE_DECIMALS:
            raise UnexpectedDecimals(PRICE_DECIMALS, strategy.decimals())
        self.pricing_strategy = strategy

    def _set_fee_strategy(self, strategy: Optional[FeeStrategy]) -> None:
        if strategy is None:
            raise UnacceptableReference("fee strategy must be set")
        if strategy.decimals() != PERC_DECIMALS:
            raise UnexpectedDecimals(PERC_DECIMALS, strategy.decimals())
        self.fee_strategy = strategy

    def transfer_ownership(self, new_owner: Any, *, sender: Any) -> None:
        self._only_owner(sender)
        if new_owner is None:
            raise UnacceptableReference("owner must be set")
        prev, self.owner = self.owner, new_owner
        self._emit("OwnershipTransferred", previous=prev, owner=new_owner)

    def update_keeper(self, keeper: Any, *, sender: Any) -> None:
        self._only_owner(sender)
        self.keeper = keeper
        self._emit("UpdatedKeeper", keeper=keeper)

    def update_bond_issuer(self, issuer: Optional[BondIssuer], *, sender: Any) -> None:
        self._only_owner(sender)
        self._set_bond_issuer(issuer)
        self._emit("UpdatedBondIssuer", issuer=issuer)

    def update_pricing_strategy(self, strategy: Optional[PricingStrategy], *, sender: Any) -> None:
        self._only_owner(sender)
        self._set_pricing_strategy(strategy)
        self._emit("UpdatedPricingStrategy", strategy=strategy)

    def update_fee_strategy(self, strategy: Optional[FeeStrategy], *, sender: Any) -> None:
        self._only_owner(sender)
        self._set_fee_strategy(strategy)
        self._emit("UpdatedFeeStrategy", strategy=strategy)

    def update_tolerable_tranche_maturity(self, min_sec: int, max_sec: int, *, sender: Any) -> None:
        self._only_owner(sender)
        if min_sec < 0 or min_sec > max_sec:
            raise InvalidTrancheMaturityBounds(min_sec, max_sec)
        self.min_tranche_maturity_sec = min_sec
        self.max_tranche_maturity_sec = max_sec
        self._emit("UpdatedTolerableTrancheMaturity", min_sec=min_sec, max_sec=max_sec)

    def update_minting_limits(self, max_supply: int, max_mint_amt_per_tranche: int, *, sender: Any) -> None:
        self._only_owner(sender)
        if max_supply < 0 or max_mint_amt_per_tranche < 0:
            raise InvalidMintingLimits(max_supply, max_mint_amt_per_tranche)
        self.max_supply = max_supply
        self.max_mint_amt_per_tranche = max_mint_amt_per_tranche
        self._emit("UpdatedMintingLimits", max_supply=max_supply,
                   max_mint_amt_per_tranche=max_mint_amt_per_tranche)

    def authorize_roller(self, roller: Any, authorize: bool = True, *, sender: Any) -> None:
        self._only_owner(sender)
        if authorize:
            self._authorized_rollers.add(roller)
        else:
            self._authorized_rollers.discard(roller)
        self._emit("UpdatedRollerAuthorization", roller=roller, authorized=authorize)

    def transfer_erc20(self, token: Token, to: Any, amount: int, *, sender: Any) -> None:
        """Recover tokens sent to the engine by mistake; reserve assets can never leave this way."""
        self._only_owner(sender)
        if token in self._reserve:
            raise UnauthorizedTransferOut(f"{token!r} is a reserve asset")
        token.transfer(self, to, amount)

    def pause(self, *, sender: Any) -> None:
        self._only_keeper(sender)
        if self._paused:
            raise EnforcedPause("already paused")
        self._paused = True
        self._emit("Paused", account=sender)

    def unpause(self, *, sender: Any) -> None:
        self._only_keeper(sender)
        if not self._paused:
            raise ExpectedPause("not paused")
        self._paused = False
        self._emit("Unpaused", account=sender)


__all__ = ["PerpetualTranche"]
