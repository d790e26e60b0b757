"""Hidden-bet redaction."""

import pytest

from cazino.engine.visibility import NOBODY, is_hidden_from, to_view, to_views
from cazino.models import Bet, BetStatus


def _bet(hide=True, status=BetStatus.ACTIVE):
    return Bet(
        id="b1",
        market_id="m1",
        subject_user_id="bob",
        created_by="alice",
        description="Bob cries at the toast",
        initial_odds="3:1",
        status=status,
        yes_pool=100,
        no_pool=300,
        hide_from_subject=hide,
        created_at=5,
    )


def test_subject_sees_redacted_view():
    view = to_view(_bet(), "bob")
    assert view.is_hidden
    assert view.subject_user_id is None
    assert view.description is None
    # pools and status stay visible
    assert (view.yes_pool, view.no_pool) == (100, 300)
    assert view.status == BetStatus.ACTIVE
    assert view.probability == 0.25


def test_everyone_else_sees_everything():
    for viewer in ("alice", "carol", NOBODY):
        view = to_view(_bet(), viewer)
        assert not view.is_hidden
        assert view.subject_user_id == "bob"
        assert view.description == "Bob cries at the toast"


def test_unhidden_bet_visible_to_subject():
    assert not is_hidden_from(_bet(hide=False), "bob")


@pytest.mark.parametrize("status", [BetStatus.RESOLVED_YES, BetStatus.RESOLVED_NO, BetStatus.CHALLENGED])
def test_revealed_after_resolution(status):
    assert not is_hidden_from(_bet(status=status), "bob")


def test_pending_stays_hidden():
    assert is_hidden_from(_bet(status=BetStatus.PENDING), "bob")


def test_to_views_keeps_order():
    bets = [_bet(), _bet(hide=False).model_copy(update={"id": "b2"})]
    views = to_views(bets, "bob")
    assert [v.id for v in views] == ["b1", "b2"]
    assert [v.is_hidden for v in views] == [True, False]
