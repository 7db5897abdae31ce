"""Signal model — broadcast by a broker to every trader."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from terminal_core.models.position import Side


class Signal(BaseModel):
    """A broker-issued trade suggestion."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    broker_id: int | None = None
    symbol: str
    side: Side
    reference_price: Decimal = Field(gt=0)
    quantity: Decimal = Field(gt=0)
    rationale: str = ""
    created_at: datetime
    expires_at: datetime | None = None
