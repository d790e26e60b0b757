"""Hidden-bet rule: redact a bet's subject and description from its own subject until it resolves."""

from __future__ import annotations

from collections.abc import Iterable

from cazino.engine.parimutuel import probability
from cazino.models import Bet, BetStatus, BetView

# Viewer id that matches no subject, so nothing is ever redacted for it
NOBODY = "00000000-0000-0000-0000-000000000000"

_REVEALED = (BetStatus.RESOLVED_YES, BetStatus.RESOLVED_NO, BetStatus.CHALLENGED)


def is_hidden_from(bet: Bet, viewing_user_id: str) -> bool:
    return (
        bet.hide_from_subject
        and bet.subject_user_id == viewing_user_id
        and bet.status not in _REVEALED
    )


def to_view(bet: Bet, viewing_user_id: str) -> BetView:
    """Project a bet for one viewer. Pools, status and timing stay visible either way."""
    hidden = is_hidden_from(bet, viewing_user_id)
    return BetView(
        id=bet.id,
        market_id=bet.market_id,
        is_hidden=hidden,
        subject_user_id=None if hidden else bet.subject_user_id,
        description=None if hidden else bet.description,
        created_by=bet.created_by,
        initial_odds=bet.initial_odds,
        status=bet.status,
        yes_pool=bet.yes_pool,
        no_pool=bet.no_pool,
        probability=probability(bet.yes_pool, bet.no_pool),
        created_at=bet.created_at,
        resolved_at=bet.resolved_at,
    )


def to_views(bets: Iterable[Bet], viewing_user_id: str) -> list[BetView]:
    return [to_view(b, viewing_user_id) for b in bets]
