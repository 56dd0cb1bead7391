import pytest

from perp_ledger import (
    PerpConfig,
    PerpetualTranche,
    FungibleToken,
    TablePricingStrategy,
    BasicFeeStrategy,
    SimBondIssuer,
    SimClock,
    ReserveAsset,
    reserve_value,
    UNIT_PRICE,
    UNBOUNDED,
)
from perp_ledger.core import (
    EnforcedPause,
    ExpectedPause,
    InvalidCollateral,
    InvalidMintingLimits,
    InvalidTrancheMaturityBounds,
    ReentrantCall,
    UnacceptableDeposit,
    UnacceptableReference,
    UnauthorizedCall,
    UnauthorizedTransferOut,
    UnexpectedDecimals,
)

ALICE, BOB, OWNER, KEEPER = "alice", "bob", "owner", "keeper"


# -----------------------------
# Lazy state refresh
# -----------------------------


def test_matured_tranche_is_swept_into_collateral(seeded_world):
    w = seeded_world
    bond0 = w.current_bond()
    t0 = w.senior(bond0)
    w.advance(10_000)
    print(f"[refresh-mature] ttm={bond0.seconds_to_maturity()} -> sweep on next query")
    assert w.perp.get_reserve_count() == 1
    assert bond0.is_mature()
    assert not w.perp.in_reserve(t0)
    assert w.perp.get_reserve_token_balance(w.collateral) == 1_000
    assert w.perp.get_reserve_value() == 1_000
    assert w.perp.get_avg_price() == UNIT_PRICE
    assert w.perp.get_deposit_bond() is not bond0


def test_bond_matured_elsewhere_is_still_swept(seeded_world):
    w = seeded_world
    bond0 = w.current_bond()
    w.advance(10_000)
    bond0.mature()
    assert w.perp.get_reserve_count() == 1
    assert w.perp.get_reserve_token_balance(w.collateral) == 1_000


def test_refresh_is_idempotent(seeded_world):
    w = seeded_world
    w.advance(10_000)
    w.perp.update_state()
    before = (w.perp.get_deposit_bond(), w.perp.get_reserve_count(), w.perp.get_reserve_value())
    n_bond_events = w.event_names().count("UpdatedDepositBond")
    w.perp.update_state()
    after = (w.perp.get_deposit_bond(), w.perp.get_reserve_count(), w.perp.get_reserve_value())
    print(f"[refresh-idempotent] {before} == {after}")
    assert before == after
    assert w.event_names().count("UpdatedDepositBond") == n_bond_events


def test_deposit_bond_only_set_inside_window(world_factory):
    w = world_factory(config=PerpConfig(min_tranche_maturity_sec=15_000, max_tranche_maturity_sec=20_000))
    print("[refresh-window] freshly issued bonds have ttm 10000 < 15000")
    assert w.perp.get_deposit_bond() is None
    bond = w.issuer.get_latest_bond()
    t = bond.tranche_at(0)[0]
    w.collateral.mint(ALICE, 1_000)
    bond.deposit(ALICE, 1_000)
    with pytest.raises(UnacceptableDeposit):
        w.perp.deposit(t, 100, sender=ALICE)
    assert not w.perp.is_acceptable_for_reserve(t)


def test_describe_reserve(seeded_world):
    w = seeded_world
    bond0 = w.current_bond()
    t0 = w.senior(bond0)
    w.pricing.set_price(t0, UNIT_PRICE // 2)
    rows = w.perp.describe_reserve()
    print(f"[describe] {rows}")
    assert rows == [
        ReserveAsset(w.collateral, "collateral", 0, UNIT_PRICE),
        ReserveAsset(t0, "tranche", 1_000, UNIT_PRICE // 2,
                     bond=bond0, seniority=0, seconds_to_maturity=10_000),
    ]
    assert w.perp.get_reserve_token_value(t0) == 500
    assert w.perp.get_avg_price() == UNIT_PRICE // 2
    assert w.perp.compute_price(w.collateral) == UNIT_PRICE
    assert w.perp.get_reserve_token_value(FungibleToken("Stray", "STR")) == 0
    assert w.perp.get_reserve_value() == reserve_value((r.balance, r.price) for r in rows) == 500


def test_queries_emit_no_events_until_balances_move(seeded_world):
    w = seeded_world
    w.perp.get_reserve_count()
    events_before = list(w.perp.events)
    w.perp.get_reserve_value()
    w.perp.get_reserve_tokens_up_for_rollover()
    w.perp.describe_reserve()
    w.perp.update_state()
    assert w.perp.events == events_before

    w.collateral.mint(w.perp, 7)
    w.perp.update_state()
    w.perp.update_state()
    new = w.perp.events[len(events_before):]
    print(f"[events] after donation: {[e.name for e in new]}")
    assert [(e.name, e.args["token"], e.args["balance"]) for e in new] == [
        ("ReserveSynced", w.collateral, 7)
    ]


# -----------------------------
# Pause and reentrancy
# -----------------------------


def test_pause_blocks_value_operations(seeded_world):
    w = seeded_world
    t0 = w.senior()
    with pytest.raises(UnauthorizedCall):
        w.perp.pause(sender=OWNER)
    w.perp.pause(sender=KEEPER)
    assert w.perp.paused
    with pytest.raises(EnforcedPause):
        w.perp.pause(sender=KEEPER)
    with pytest.raises(EnforcedPause):
        w.perp.deposit(t0, 1, sender=ALICE)
    with pytest.raises(EnforcedPause):
        w.perp.redeem(1, sender=ALICE)
    with pytest.raises(EnforcedPause):
        w.perp.rollover(t0, w.collateral, 1, sender=ALICE)
    # views still answer
    assert w.perp.get_reserve_count() == 2
    w.perp.unpause(sender=KEEPER)
    with pytest.raises(ExpectedPause):
        w.perp.unpause(sender=KEEPER)
    print("[pause] keeper-only toggle, value paths blocked while paused")
    assert "Paused" in w.event_names()
    assert w.event_names()[-1] == "Unpaused"
    w.perp.redeem(1, sender=ALICE)


def test_reentrant_callback_is_rejected(reentrant_world):
    w, pricing = reentrant_world
    t0 = w.tranche_up(ALICE, 5_000)
    w.perp.deposit(t0, 500, sender=ALICE)
    pricing.armed = True
    with pytest.raises(ReentrantCall):
        w.perp.deposit(t0, 500, sender=ALICE)
    print("[reentrancy] nested redeem from the pricing callback is refused, outer deposit unwound")
    assert w.perp.total_supply() == 500
    assert t0.balance_of(ALICE) == 500
    # guard released after the failure
    assert w.perp.deposit(t0, 500, sender=ALICE) == 500


def test_transfer_erc20_protects_reserve(seeded_world):
    w = seeded_world
    t0 = w.senior()
    stray = FungibleToken("Stray", "STR")
    stray.mint(w.perp, 10)
    with pytest.raises(UnauthorizedCall):
        w.perp.transfer_erc20(stray, BOB, 10, sender=ALICE)
    with pytest.raises(UnauthorizedTransferOut):
        w.perp.transfer_erc20(t0, BOB, 1, sender=OWNER)
    with pytest.raises(UnauthorizedTransferOut):
        w.perp.transfer_erc20(w.collateral, BOB, 0, sender=OWNER)
    w.perp.transfer_erc20(stray, BOB, 10, sender=OWNER)
    assert stray.balance_of(BOB) == 10


# -----------------------------
# Owner configuration
# -----------------------------


def test_owner_only_setters(seeded_world):
    w = seeded_world
    calls = [
        lambda s: w.perp.update_keeper(BOB, sender=s),
        lambda s: w.perp.update_pricing_strategy(TablePricingStrategy(), sender=s),
        lambda s: w.perp.update_fee_strategy(BasicFeeStrategy(), sender=s),
        lambda s: w.perp.update_bond_issuer(w.issuer, sender=s),
        lambda s: w.perp.update_tolerable_tranche_maturity(1, 100, sender=s),
        lambda s: w.perp.update_minting_limits(10, 10, sender=s),
        lambda s: w.perp.authorize_roller(BOB, sender=s),
        lambda s: w.perp.transfer_ownership(BOB, sender=s),
    ]
    for call in calls:
        with pytest.raises(UnauthorizedCall):
            call(ALICE)
    for call in calls:
        call(OWNER)
    print(f"[admin] events tail: {w.event_names()[-8:]}")
    assert w.event_names()[-8:] == [
        "UpdatedKeeper",
        "UpdatedPricingStrategy",
        "UpdatedFeeStrategy",
        "UpdatedBondIssuer",
        "UpdatedTolerableTrancheMaturity",
        "UpdatedMintingLimits",
        "UpdatedRollerAuthorization",
        "OwnershipTransferred",
    ]
    assert w.perp.owner == BOB
    assert w.perp.keeper == BOB
    with pytest.raises(UnauthorizedCall):
        w.perp.update_keeper(KEEPER, sender=OWNER)


def test_setter_validation(seeded_world):
    w = seeded_world
    other = FungibleToken("Other", "OTH")
    foreign_issuer = SimBondIssuer(other, w.clock, issue_frequency=10, bond_duration=100)
    with pytest.raises(InvalidCollateral):
        w.perp.update_bond_issuer(foreign_issuer, sender=OWNER)
    with pytest.raises(UnacceptableReference):
        w.perp.update_bond_issuer(None, sender=OWNER)
    with pytest.raises(UnexpectedDecimals):
        w.perp.update_pricing_strategy(TablePricingStrategy(decimals=6), sender=OWNER)
    with pytest.raises(UnexpectedDecimals):
        w.perp.update_fee_strategy(BasicFeeStrategy(decimals=4), sender=OWNER)
    with pytest.raises(InvalidTrancheMaturityBounds):
        w.perp.update_tolerable_tranche_maturity(10, 5, sender=OWNER)
    with pytest.raises(InvalidMintingLimits) as ei:
        w.perp.update_minting_limits(-1, 10, sender=OWNER)
    assert ei.value.max_supply == -1
    with pytest.raises(InvalidMintingLimits):
        w.perp.update_minting_limits(10, -1, sender=OWNER)
    assert w.perp.max_supply == UNBOUNDED
    assert w.perp.bond_issuer is w.issuer
    assert w.perp.min_tranche_maturity_sec == 5_000


def test_constructor_validation():
    col = FungibleToken("Collateral", "COL")
    issuer = SimBondIssuer(col, SimClock(), issue_frequency=10, bond_duration=100)
    with pytest.raises(UnacceptableReference):
        PerpetualTranche("P", "P", None, issuer, TablePricingStrategy(), BasicFeeStrategy(), owner=OWNER)
    with pytest.raises(InvalidCollateral):
        PerpetualTranche("P", "P", FungibleToken("X", "X"), issuer, TablePricingStrategy(),
                         BasicFeeStrategy(), owner=OWNER)
    perp = PerpetualTranche("P", "P", col, issuer, TablePricingStrategy(), BasicFeeStrategy(), owner=OWNER)
    assert perp.keeper == OWNER
    assert perp.perp_token.decimals == 18
