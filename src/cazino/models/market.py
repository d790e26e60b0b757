"""Market, User - a betting session and its participants."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MarketStatus(str, Enum):
    """Market lifecycle. Only moves forward."""

    DRAFT = "draft"  # collecting players and bet ideas
    OPEN = "open"  # betting period
    CLOSED = "closed"  # resolution period
    RESOLVED = "resolved"  # final results


class Market(BaseModel):
    """A time-boxed prediction market (e.g. "Thanksgiving 2026")."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: MarketStatus = MarketStatus.DRAFT
    created_by: str  # admin user id
    opens_at: int  # ms epoch
    closes_at: int  # ms epoch, informational only
    starting_balance: int = Field(..., ge=0)
    invite_code: str
    created_at: int  # ms epoch


class User(BaseModel):
    """A participant, recognised by device id rather than a login."""

    model_config = ConfigDict(frozen=True)

    id: str
    market_id: str
    device_id: str
    display_name: str
    avatar: str = ""
    balance: int = Field(..., ge=0)
    is_admin: bool = False
    joined_at: int  # ms epoch
