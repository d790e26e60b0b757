"""Payout, LeaderboardEntry - derived ledger results."""

from __future__ import annotations

from pydantic import BaseModel

from cazino.models.market import User


class Payout(BaseModel):
    """Coins credited to a winner when a bet resolves."""

    user_id: str
    amount: int


class LeaderboardEntry(BaseModel):
    user: User
    profit: int  # balance - market starting balance
    rank: int  # 1-based, strictly positional
