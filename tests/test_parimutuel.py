"""Parimutuel calculator unit tests."""

import pytest

from cazino.engine.parimutuel import (
    apply_wager,
    distribute_payouts,
    parse_initial_odds,
    probability,
    rounding_dust,
)
from cazino.errors import InvalidOdds
from cazino.models import Bet, BetStatus, Side, Wager


def _bet(yes_pool, no_pool, status=BetStatus.ACTIVE):
    return Bet(
        id="b1",
        market_id="m1",
        subject_user_id="bob",
        created_by="alice",
        description="Bob burns the turkey",
        initial_odds="1:1",
        status=status,
        yes_pool=yes_pool,
        no_pool=no_pool,
        created_at=0,
    )


def _wager(user_id, side, amount, n=0):
    return Wager(
        id=f"w{n}",
        bet_id="b1",
        user_id=user_id,
        side=side,
        amount=amount,
        placed_at=n,
        yes_pool_after=0,
        no_pool_after=0,
        probability_after=0.5,
    )


def test_probability_empty_pools_is_even():
    assert probability(0, 0) == 0.5


def test_probability_one_sided_pools():
    assert probability(250, 0) == 1.0
    assert probability(0, 250) == 0.0


@pytest.mark.parametrize("yes,no", [(1, 0), (0, 1), (100, 200), (7, 3), (1, 999_999)])
def test_probability_in_unit_interval_and_complementary(yes, no):
    p = probability(yes, no)
    assert 0 <= p <= 1
    assert abs(p + probability(no, yes) - 1) < 1e-9


def test_apply_wager_returns_pools_and_potential_payout():
    assert apply_wager(100, 100, Side.YES, 50) == (150, 100, 83)
    assert apply_wager(100, 100, Side.NO, 100) == (100, 200, 150)


def test_apply_wager_zero_amount_on_empty_side():
    assert apply_wager(0, 0, Side.NO, 0) == (0, 0, 0)


def test_distribute_payouts_splits_proportionally():
    bet = _bet(300, 200, BetStatus.RESOLVED_YES)
    wagers = [
        _wager("alice", Side.YES, 100, 1),
        _wager("carol", Side.NO, 200, 2),
        _wager("dave", Side.YES, 200, 3),
    ]
    payouts = distribute_payouts(bet, wagers)
    assert payouts == {"alice": 166, "dave": 333}
    assert list(payouts) == ["alice", "dave"]
    assert rounding_dust(bet, payouts) == 1


def test_distribute_payouts_aggregates_repeat_wagers():
    bet = _bet(150, 50, BetStatus.RESOLVED_YES)
    wagers = [
        _wager("alice", Side.YES, 100, 1),
        _wager("bob", Side.NO, 50, 2),
        _wager("alice", Side.YES, 50, 3),
    ]
    assert distribute_payouts(bet, wagers) == {"alice": 200}


def test_dust_bounded_by_winner_count():
    bet = _bet(3, 7, BetStatus.RESOLVED_YES)
    wagers = [_wager(f"u{i}", Side.YES, 1, i) for i in range(3)] + [_wager("x", Side.NO, 7, 9)]
    payouts = distribute_payouts(bet, wagers)
    assert all(amount == 3 for amount in payouts.values())
    dust = rounding_dust(bet, payouts)
    assert 0 <= dust < len(payouts)
    assert sum(payouts.values()) <= bet.total_pool


def test_unresolved_bet_pays_nothing():
    bet = _bet(100, 100)
    assert distribute_payouts(bet, [_wager("alice", Side.YES, 100)]) == {}


def test_empty_winning_pool_pays_nothing():
    bet = _bet(100, 0, BetStatus.RESOLVED_NO)
    payouts = distribute_payouts(bet, [_wager("alice", Side.YES, 100)])
    assert payouts == {}
    assert rounding_dust(bet, payouts) == 0


@pytest.mark.parametrize("label", ["1:1", "3:1", "1:10"])
def test_parse_initial_odds_seeds_yes_pool(label):
    assert parse_initial_odds(label, 100) == (100, 0)


@pytest.mark.parametrize("label", ["", "1", "1:2:3", "a:b", "0:1", "1:-2", "3/1"])
def test_parse_initial_odds_rejects_malformed(label):
    with pytest.raises(InvalidOdds):
        parse_initial_odds(label, 100)
