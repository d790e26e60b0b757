"""Game rules - preconditions for every state transition.

Each validator returns None when the action is allowed and raises a
RuleError subclass naming the violated rule otherwise. No I/O, no mutation.
"""

from __future__ import annotations

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

# Allowed market transitions: target -> required current status
_MARKET_TRANSITIONS = {
    MarketStatus.OPEN: MarketStatus.DRAFT,
    MarketStatus.CLOSED: MarketStatus.OPEN,
    MarketStatus.RESOLVED: MarketStatus.CLOSED,
}
_TRANSITION_VERBS = {
    MarketStatus.OPEN: "open",
    MarketStatus.CLOSED: "close",
    MarketStatus.RESOLVED: "resolve",
}


def validate_wager(market: Market, bet: Bet, user: User, amount: int) -> None:
    """A user may wager on an active bet in an open market, never on a bet about themselves."""
    if market.status != MarketStatus.OPEN:
        raise MarketNotOpen()
    if bet.status != BetStatus.ACTIVE:
        raise BetNotActive()
    if user.balance < amount:
        raise InsufficientBalance(needed=amount, available=user.balance)
    if amount <= 0:
        raise InvalidAmount("Amount must be positive")
    # Applies to admins too
    if bet.subject_user_id == user.id:
        raise CannotBetOnSelf()


def validate_bet_creation(market: Market, user: User, subject_user_id: str, opening_wager: int) -> None:
    """Bets can be proposed while the market is Draft or Open. Creators may name themselves as subject."""
    if market.status not in (MarketStatus.DRAFT, MarketStatus.OPEN):
        raise InvalidMarketStatus()
    if user.balance < opening_wager:
        raise InsufficientBalance(needed=opening_wager, available=user.balance)
    if opening_wager <= 0:
        raise InvalidAmount("Opening wager must be positive")


def validate_bet_approval(user: User) -> None:
    if not user.is_admin:
        raise AdminOnly()


def validate_bet_resolution(bet: Bet, user: User) -> None:
    """Admin only; the bet must still be Active."""
    if not user.is_admin:
        raise AdminOnly()
    if bet.status != BetStatus.ACTIVE:
        if bet.status.is_resolved:
            raise AlreadyResolved()
        raise BetNotActive()


def validate_market_transition(market: Market, user: User, target: MarketStatus) -> None:
    """Admin only, one step forward at a time: Draft -> Open -> Closed -> Resolved."""
    if not user.is_admin:
        raise AdminOnly()
    required = _MARKET_TRANSITIONS.get(target)
    if required is None or market.status != required:
        raise InvalidMarketStatus(current=market.status.value, action=_TRANSITION_VERBS.get(target, target.value))


def validate_same_market(market_id: str, user: User) -> None:
    if user.market_id != market_id:
        raise NotInMarket(user.id, market_id)
