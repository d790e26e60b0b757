"""Canonical schema (Pydantic) - Market, User, Bet, Wager and derived views."""

from cazino.models.bet import Bet, BetStatus, BetView, ProbabilityPoint, Side
from cazino.models.ledger import LeaderboardEntry, Payout
from cazino.models.market import Market, MarketStatus, User
from cazino.models.wager import Wager

__all__ = [
    "Market",
    "MarketStatus",
    "User",
    "Bet",
    "BetStatus",
    "BetView",
    "ProbabilityPoint",
    "Side",
    "Wager",
    "Payout",
    "LeaderboardEntry",
]
