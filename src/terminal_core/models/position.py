"""Account and position models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Side = Literal["LONG", "SHORT"]
Role = Literal["broker", "trader"]


class Account(BaseModel):
    """A broker or trader account with its cash balance."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    role: Role = "trader"
    balance: Decimal = Field(default=Decimal("0"), ge=0)
    last_bonus_percent: Decimal = Decimal("0")
    last_seen_at: datetime | None = None
    created_at: datetime | None = None


class Position(BaseModel):
    """An open or closed simulated exposure owned by one account."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    symbol: str
    side: Side
    quantity: Decimal = Field(gt=0)
    entry_price: Decimal = Field(gt=0)
    opened_at: datetime
    status: Literal["OPEN", "CLOSED"] = "OPEN"
    is_copied: bool = False
    signal_id: int | None = None
    exit_price: Decimal | None = None
    closed_at: datetime | None = None
    realised_pnl: Decimal | None = None

    @property
    def notional(self) -> Decimal:
        return self.quantity * self.entry_price


class PositionValuation(BaseModel):
    """An open position marked against a current price."""

    position: Position
    current_price: Decimal
    unrealised_pnl: Decimal


class PortfolioSummary(BaseModel):
    """Balance plus mark-to-market of every open position."""

    account_id: int
    balance: Decimal
    positions: list[PositionValuation] = Field(default_factory=list)
    total_unrealised_pnl: Decimal = Decimal("0")
    last_bonus_percent: Decimal = Decimal("0")
