"""Order result models returned by venue adapters."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .markets import Outcome, Venue, utcnow


class OrderStatus(str, Enum):
    """Normalized fill status of a placed order."""

    FILLED = "filled"
    PENDING = "pending"
    REJECTED = "rejected"


class OrderResult(BaseModel):
    """Normalized outcome of a single order placement."""

    order_id: str
    venue: Venue
    market_id: str
    side: Outcome
    amount: float = Field(..., gt=0)
    limit_price: float = Field(..., description="Limit price actually sent, 0-100 scale.")
    status: OrderStatus
    tx_ref: Optional[str] = None
    placed_at: datetime = Field(default_factory=utcnow)

    @property
    def succeeded(self) -> bool:
        return self.status is not OrderStatus.REJECTED


__all__ = ["OrderResult", "OrderStatus"]
