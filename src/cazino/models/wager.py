"""Wager - one stake on one side of a bet, with the pool state it produced."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from cazino.models.bet import Side


class Wager(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    bet_id: str
    user_id: str
    side: Side
    amount: int = Field(..., gt=0)
    placed_at: int  # ms epoch

    # Pool state right after this wager (chart reconstruction)
    yes_pool_after: int = Field(..., ge=0)
    no_pool_after: int = Field(..., ge=0)
    probability_after: float = Field(..., ge=0, le=1)
