import pytest

from perp_ledger import FEE_ONE, RolloverData
from perp_ledger.core import (
    InsufficientBalance,
    UnacceptableRollover,
    UnauthorizedCall,
)

ALICE, BOB, OWNER = "alice", "bob", "owner"
ONE_PCT = FEE_ONE // 100


@pytest.fixture()
def stale(seeded_world):
    """T0 (1000 held) has drifted below the tolerance window; bob holds 1000 fresh T1."""
    w = seeded_world
    t0 = w.senior()
    w.advance(5_001)
    t1 = w.tranche_up(BOB, 5_000)
    assert t1 is not t0
    return w, t0, t1


def test_stale_tranche_is_up_for_rollover(stale):
    w, t0, t1 = stale
    ups = w.perp.get_reserve_tokens_up_for_rollover()
    print(f"[rollover-up] {ups}")
    assert ups == [t0]
    w.collateral.mint(w.perp, 10)
    assert w.perp.get_reserve_tokens_up_for_rollover() == [w.collateral, t0]


def test_rollover_zero_fee(stale):
    w, t0, t1 = stale
    r = w.perp.rollover(t1, t0, 400, sender=BOB)
    print(f"[rollover] 400 T1 for T0 -> {r}")
    assert r == RolloverData(400, 400)
    assert t0.balance_of(BOB) == 400
    assert w.perp.get_reserve_token_balance(t0) == 600
    assert w.perp.get_reserve_token_balance(t1) == 400
    assert w.perp.in_reserve(t1)
    assert w.perp.total_supply() == 1_000


def test_rollover_charge_and_preview(stale):
    w, t0, t1 = stale
    w.fees.update_rollover_fee_perc(ONE_PCT)
    preview = w.perp.compute_rollover_amt(t1, t0, 400)
    r = w.perp.rollover(t1, t0, 400, sender=BOB)
    print(f"[rollover-charge] preview={preview} executed={r}")
    assert r == preview == RolloverData(400, 396)
    # the fee stays with perp holders
    assert w.perp.get_reserve_value() == 1_004


def test_rollover_inverse_branch_rounds_incoming_up(stale):
    w, t0, t1 = stale
    w.fees.update_rollover_fee_perc(ONE_PCT)
    w.perp.rollover(t1, t0, 950, sender=BOB)
    assert w.perp.get_reserve_token_balance(t0) == 60
    # 40 requested of the 60 left: 40 out costs ceil(40 / 0.99) = 41 in
    r = w.perp.rollover(t1, t0, 50, sender=BOB, token_out_amt_requested=40)
    assert r == RolloverData(41, 40)
    w.tranche_up(BOB, 500)
    r = w.perp.rollover(t1, t0, 100, sender=BOB)
    print(f"[rollover-inverse] {r}")
    assert r == RolloverData(21, 20)
    assert not w.perp.in_reserve(t0)
    assert w.perp.minted_supply(t0) == 0


def test_rollover_inverse_overshoot_needs_balance(stale):
    w, t0, t1 = stale
    w.fees.update_rollover_fee_perc(ONE_PCT)
    carol = "carol"
    t1.transfer(BOB, carol, 50)
    # carol offers 100 but holds 50; the inverse leg asks 51
    with pytest.raises(InsufficientBalance):
        w.perp.rollover(t1, t0, 100, sender=carol, token_out_amt_requested=50)
    assert t1.balance_of(carol) == 50
    assert w.perp.get_reserve_token_balance(t0) == 1_000
    assert not w.perp.in_reserve(t1)


def test_rollover_collateral_out_and_null(stale):
    w, t0, t1 = stale
    r = w.perp.rollover(t1, w.collateral, 100, sender=BOB)
    print(f"[rollover-null] nothing to give -> {r}")
    assert r.is_null()
    assert t1.balance_of(BOB) == 1_000

    w.collateral.mint(w.perp, 300)
    r = w.perp.rollover(t1, w.collateral, 100, sender=BOB)
    assert r == RolloverData(100, 100)
    assert w.collateral.balance_of(BOB) == 100
    assert w.perp.get_reserve_token_balance(w.collateral) == 200


def test_rollover_unacceptable_pairs(stale):
    w, t0, t1 = stale
    with pytest.raises(UnacceptableRollover):
        w.perp.rollover(t0, t1, 10, sender=BOB)
    with pytest.raises(UnacceptableRollover):
        w.perp.rollover(t1, t1, 10, sender=BOB)
    junior1 = w.current_bond().tranche_at(1)[0]
    with pytest.raises(UnacceptableRollover):
        w.perp.rollover(junior1, t0, 10, sender=BOB)
    assert not w.perp.is_acceptable_rollover(t1, junior1)
    assert w.perp.is_acceptable_rollover(t1, t0)


def test_fresh_reserve_tranche_cannot_be_taken(seeded_world):
    w = seeded_world
    t0 = w.senior()
    w.advance(w.issuer.issue_frequency)
    t1 = w.tranche_up(BOB, 5_000)
    # T0 is no longer the deposit tranche but still inside the window
    with pytest.raises(UnacceptableRollover):
        w.perp.rollover(t1, t0, 10, sender=BOB)
    assert w.perp.get_reserve_tokens_up_for_rollover() == []


def test_drifted_deposit_tranche_is_not_up_for_rollover(seeded_world):
    w = seeded_world
    t0 = w.senior()
    w.perp.update_tolerable_tranche_maturity(9_500, 10_001, sender=OWNER)
    w.advance(999)
    # the deposit bond left the window but no newer bond exists yet
    assert w.perp.get_deposit_bond() is t0.bond()
    assert w.perp.is_acceptable_for_reserve(t0)
    assert w.perp.get_reserve_tokens_up_for_rollover() == []
    assert not w.perp.is_acceptable_rollover(t0, t0)

    w.advance(1)
    t1 = w.tranche_up(BOB, 500)
    assert t1 is not t0
    print(f"[rollover-drift] up after the next issue: {w.perp.get_reserve_tokens_up_for_rollover()}")
    assert w.perp.get_reserve_tokens_up_for_rollover() == [t0]
    assert w.perp.is_acceptable_rollover(t1, t0)


def test_roller_allowlist(stale):
    w, t0, t1 = stale
    w.perp.authorize_roller(ALICE, sender=OWNER)
    with pytest.raises(UnauthorizedCall):
        w.perp.rollover(t1, t0, 10, sender=BOB)
    assert w.perp.is_authorized_roller(ALICE)

    w.perp.authorize_roller(BOB, sender=OWNER)
    assert w.perp.rollover(t1, t0, 10, sender=BOB) == RolloverData(10, 10)

    # an empty allowlist lets anyone roll
    w.perp.authorize_roller(ALICE, False, sender=OWNER)
    w.perp.authorize_roller(BOB, False, sender=OWNER)
    t1.transfer(BOB, ALICE, 10)
    print("[rollover-allowlist] emptied list admits everyone")
    assert w.perp.rollover(t1, t0, 10, sender=ALICE) == RolloverData(10, 10)
