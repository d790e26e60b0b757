"""Rule validator unit tests."""

import pytest

from cazino.engine import rules
from cazino.errors import (
    AdminOnly,
    AlreadyResolved,
    BetNotActive,
    CannotBetOnSelf,
    InsufficientBalance,
    InvalidAmount,
    InvalidMarketStatus,
    MarketNotOpen,
    NotInMarket,
)
from cazino.models import Bet, BetStatus, Market, MarketStatus, User


def _market(status=MarketStatus.OPEN):
    return Market(
        id="m1",
        name="Family",
        status=status,
        created_by="admin",
        opens_at=0,
        closes_at=1,
        starting_balance=1000,
        invite_code="ABCDEF",
        created_at=0,
    )


def _user(user_id="alice", balance=1000, is_admin=False, market_id="m1"):
    return User(
        id=user_id,
        market_id=market_id,
        device_id=f"dev-{user_id}",
        display_name=user_id.title(),
        balance=balance,
        is_admin=is_admin,
        joined_at=0,
    )


def _bet(status=BetStatus.ACTIVE, subject="bob"):
    return Bet(
        id="b1",
        market_id="m1",
        subject_user_id=subject,
        created_by="alice",
        description="x",
        initial_odds="1:1",
        status=status,
        created_at=0,
    )


def test_valid_wager_passes():
    assert rules.validate_wager(_market(), _bet(), _user(), 100) is None


def test_wager_requires_open_market():
    with pytest.raises(MarketNotOpen):
        rules.validate_wager(_market(MarketStatus.DRAFT), _bet(), _user(), 10)


@pytest.mark.parametrize("status", [BetStatus.PENDING, BetStatus.RESOLVED_YES, BetStatus.CHALLENGED])
def test_wager_requires_active_bet(status):
    with pytest.raises(BetNotActive):
        rules.validate_wager(_market(), _bet(status), _user(), 10)


def test_wager_balance_checked_before_amount_sign():
    with pytest.raises(InsufficientBalance) as exc:
        rules.validate_wager(_market(), _bet(), _user(balance=50), 100)
    assert exc.value.needed == 100
    assert exc.value.available == 50
    with pytest.raises(InvalidAmount):
        rules.validate_wager(_market(), _bet(), _user(balance=50), 0)


def test_first_failing_rule_wins():
    # Closed market and resolved bet and self-wager: market status is reported
    with pytest.raises(MarketNotOpen):
        rules.validate_wager(_market(MarketStatus.CLOSED), _bet(BetStatus.RESOLVED_NO, "bob"), _user("bob"), 10)


def test_self_wager_rejected_even_for_admin():
    with pytest.raises(CannotBetOnSelf):
        rules.validate_wager(_market(), _bet(subject="mom"), _user("mom", is_admin=True), 10)


@pytest.mark.parametrize("status", [MarketStatus.DRAFT, MarketStatus.OPEN])
def test_bet_creation_allowed_before_close(status):
    rules.validate_bet_creation(_market(status), _user(), "alice", 100)


@pytest.mark.parametrize("status", [MarketStatus.CLOSED, MarketStatus.RESOLVED])
def test_bet_creation_rejected_after_close(status):
    with pytest.raises(InvalidMarketStatus):
        rules.validate_bet_creation(_market(status), _user(), "bob", 100)


def test_bet_creation_checks_opening_wager():
    with pytest.raises(InsufficientBalance):
        rules.validate_bet_creation(_market(), _user(balance=10), "bob", 100)
    with pytest.raises(InvalidAmount):
        rules.validate_bet_creation(_market(), _user(), "bob", 0)


def test_resolution_admin_only():
    with pytest.raises(AdminOnly):
        rules.validate_bet_resolution(_bet(), _user())


def test_resolution_of_resolved_bet():
    with pytest.raises(AlreadyResolved):
        rules.validate_bet_resolution(_bet(BetStatus.RESOLVED_YES), _user(is_admin=True))
    with pytest.raises(BetNotActive):
        rules.validate_bet_resolution(_bet(BetStatus.PENDING), _user(is_admin=True))


def test_approval_admin_only():
    with pytest.raises(AdminOnly):
        rules.validate_bet_approval(_user())
    rules.validate_bet_approval(_user(is_admin=True))


@pytest.mark.parametrize(
    "current,target",
    [
        (MarketStatus.DRAFT, MarketStatus.OPEN),
        (MarketStatus.OPEN, MarketStatus.CLOSED),
        (MarketStatus.CLOSED, MarketStatus.RESOLVED),
    ],
)
def test_market_moves_one_step_forward(current, target):
    rules.validate_market_transition(_market(current), _user(is_admin=True), target)


@pytest.mark.parametrize(
    "current,target",
    [
        (MarketStatus.DRAFT, MarketStatus.CLOSED),
        (MarketStatus.OPEN, MarketStatus.OPEN),
        (MarketStatus.RESOLVED, MarketStatus.OPEN),
        (MarketStatus.CLOSED, MarketStatus.DRAFT),
    ],
)
def test_market_cannot_skip_or_go_back(current, target):
    with pytest.raises(InvalidMarketStatus):
        rules.validate_market_transition(_market(current), _user(is_admin=True), target)


def test_market_transition_admin_only():
    with pytest.raises(AdminOnly):
        rules.validate_market_transition(_market(MarketStatus.DRAFT), _user(), MarketStatus.OPEN)


def test_same_market():
    rules.validate_same_market("m1", _user())
    with pytest.raises(NotInMarket):
        rules.validate_same_market("m2", _user())
