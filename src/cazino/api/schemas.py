"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from cazino.models import (
    Bet,
    BetStatus,
    BetView,
    LeaderboardEntry,
    Market,
    MarketStatus,
    Payout,
    ProbabilityPoint,
    Side,
    User,
)


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code: not_found, constraint, internal")


# --- Markets ---
class CreateMarketRequest(BaseModel):
    name: str = Field(..., min_length=1)
    admin_name: str = Field(..., min_length=1)
    duration_hours: int | None = None  # [market] default_duration_hours when absent
    starting_balance: int | None = None  # [market] default_starting_balance when absent
    avatar: str = "👑"
    device_id: str | None = None  # generated when absent
    invite_code: str | None = None  # custom code; generated when absent


class CreateMarketResponse(BaseModel):
    market: Market
    user: User
    invite_code: str


class JoinMarketRequest(BaseModel):
    display_name: str = Field(..., min_length=1)
    avatar: str = ""
    device_id: str | None = None


class JoinMarketResponse(BaseModel):
    market: Market
    user: User


class LeaderboardResponse(BaseModel):
    users: list[LeaderboardEntry]


class DeviceMarketInfo(BaseModel):
    market: Market
    user: User


class DeviceMarketsResponse(BaseModel):
    markets: list[DeviceMarketInfo]


# --- Bets ---
class CreateBetRequest(BaseModel):
    subject_user_id: str
    description: str = Field(..., min_length=1)
    initial_odds: str = "1:1"
    opening_wager: int
    hide_from_subject: bool = False


class BetResponse(BaseModel):
    bet: BetView


class PlaceWagerRequest(BaseModel):
    side: Side
    amount: int


class WagerResponse(BaseModel):
    bet_id: str
    user_id: str
    side: Side
    amount: int
    new_yes_pool: int
    new_no_pool: int
    new_probability: float


class ResolveBetRequest(BaseModel):
    outcome: Side


class ResolveBetResponse(BaseModel):
    bet: BetView
    payouts: list[Payout]


class ProbabilityChartResponse(BaseModel):
    points: list[ProbabilityPoint]


class RevealResponse(BaseModel):
    bets: list[BetView]


class PendingBetsResponse(BaseModel):
    bets: list[Bet]


# --- WebSocket notifications (server -> client) ---
class MarketUpdate(BaseModel):
    type: Literal["market_update"] = "market_update"
    market_id: str
    market: Market


class UserJoined(BaseModel):
    type: Literal["user_joined"] = "user_joined"
    market_id: str
    user_id: str
    display_name: str


class BetCreated(BaseModel):
    type: Literal["bet_created"] = "bet_created"
    market_id: str
    bet_id: str
    # Omitted when the bet is hidden from its subject; clients fetch their own view
    description: str | None = None


class BetApproved(BaseModel):
    type: Literal["bet_approved"] = "bet_approved"
    market_id: str
    bet_id: str


class WagerPlaced(BaseModel):
    """Everything an observer needs to update odds without refetching the bet."""

    type: Literal["wager_placed"] = "wager_placed"
    market_id: str
    bet_id: str
    user_id: str
    side: Side
    amount: int
    new_yes_pool: int
    new_no_pool: int
    new_probability: float


class BetResolved(BaseModel):
    type: Literal["bet_resolved"] = "bet_resolved"
    market_id: str
    bet_id: str
    outcome: Side
    status: BetStatus
    payouts: list[Payout] = Field(default_factory=list)


class MarketStatusChanged(BaseModel):
    type: Literal["market_status_changed"] = "market_status_changed"
    market_id: str
    status: MarketStatus


class MarketDeleted(BaseModel):
    type: Literal["market_deleted"] = "market_deleted"
    market_id: str


class Pong(BaseModel):
    type: Literal["pong"] = "pong"


class WsError(BaseModel):
    type: Literal["error"] = "error"
    message: str


# --- WebSocket client messages ---
class Subscribe(BaseModel):
    type: Literal["subscribe"] = "subscribe"
    market_id: str


class Ping(BaseModel):
    type: Literal["ping"] = "ping"
