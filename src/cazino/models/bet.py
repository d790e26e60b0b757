"""Bet, BetView, ProbabilityPoint - binary propositions about a participant."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Side(str, Enum):
    YES = "YES"
    NO = "NO"


class BetStatus(str, Enum):
    """Bet lifecycle.

    Bets are created ACTIVE. PENDING belongs to the admin-approval flow and
    CHALLENGED is reserved for disputes; nothing in the engine sets it yet.
    """

    PENDING = "pending"
    ACTIVE = "active"
    RESOLVED_YES = "resolvedyes"
    RESOLVED_NO = "resolvedno"
    CHALLENGED = "challenged"

    @property
    def is_resolved(self) -> bool:
        return self in (BetStatus.RESOLVED_YES, BetStatus.RESOLVED_NO)

    @classmethod
    def resolved(cls, outcome: Side) -> BetStatus:
        return cls.RESOLVED_YES if outcome == Side.YES else cls.RESOLVED_NO


class Bet(BaseModel):
    """A YES/NO bet about one participant of a market."""

    model_config = ConfigDict(frozen=True)

    id: str
    market_id: str
    subject_user_id: str  # who the bet is about
    created_by: str
    description: str
    initial_odds: str  # e.g. "3:1", display only
    status: BetStatus = BetStatus.ACTIVE
    yes_pool: int = Field(0, ge=0)
    no_pool: int = Field(0, ge=0)
    hide_from_subject: bool = False
    created_at: int  # ms epoch
    resolved_at: int | None = None

    @property
    def total_pool(self) -> int:
        return self.yes_pool + self.no_pool

    @property
    def winning_side(self) -> Side | None:
        if self.status == BetStatus.RESOLVED_YES:
            return Side.YES
        if self.status == BetStatus.RESOLVED_NO:
            return Side.NO
        return None

    def pool(self, side: Side) -> int:
        return self.yes_pool if side == Side.YES else self.no_pool


class BetView(BaseModel):
    """Bet as seen by one viewer. Subject and description are None when hidden."""

    model_config = ConfigDict(frozen=True)

    id: str
    market_id: str
    is_hidden: bool
    subject_user_id: str | None = None
    description: str | None = None
    created_by: str
    initial_odds: str
    status: BetStatus
    yes_pool: int
    no_pool: int
    probability: float = Field(..., ge=0, le=1, description="YES probability in [0, 1]")
    created_at: int
    resolved_at: int | None = None


class ProbabilityPoint(BaseModel):
    """One point of a bet's YES-probability chart."""

    timestamp: int  # ms epoch
    yes_probability: float = Field(..., ge=0, le=1)
