"""Hedged position models tracked by the ledger."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from .markets import Outcome, Venue, utcnow
from .opportunities import TradeAction


class PositionStatus(str, Enum):
    """Lifecycle state of a position."""

    ACTIVE = "active"
    PARTIALLY_FILLED = "partially_filled"
    REDEEMED = "redeemed"
    EXPIRED = "expired"


OPEN_STATUSES = frozenset({PositionStatus.ACTIVE, PositionStatus.PARTIALLY_FILLED})


class LegAmounts(BaseModel):
    """Amounts held on one venue, split by outcome."""

    up: float = Field(0.0, ge=0)
    down: float = Field(0.0, ge=0)

    def amount_for(self, side: Outcome) -> float:
        return self.up if side is Outcome.UP else self.down


class Position(BaseModel):
    """A hedge opened by the executor and followed through to redemption."""

    position_id: str = Field(default_factory=lambda: uuid4().hex)
    market_id: str
    venue_b_market_id: str
    action: TradeAction
    venue_a: LegAmounts = Field(default_factory=LegAmounts)
    venue_b: LegAmounts = Field(default_factory=LegAmounts)
    total_cost: float
    expected_profit: float
    status: PositionStatus = PositionStatus.ACTIVE
    end_time: Optional[datetime] = None
    opened_at: datetime = Field(default_factory=utcnow)
    closed_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def venue_a_market_id(self) -> str:
        return self.market_id

    def market_id_for(self, venue: Venue) -> str:
        return self.venue_a_market_id if venue is Venue.POLYMARKET else self.venue_b_market_id

    def nonzero_legs(self) -> list[tuple[Venue, Outcome, float]]:
        """Return every (venue, side, amount) leg with a recorded amount."""

        legs: list[tuple[Venue, Outcome, float]] = []
        for venue, amounts in ((Venue.POLYMARKET, self.venue_a), (Venue.KALSHI, self.venue_b)):
            for side in (Outcome.UP, Outcome.DOWN):
                amount = amounts.amount_for(side)
                if amount > 0:
                    legs.append((venue, side, amount))
        return legs


__all__ = ["LegAmounts", "OPEN_STATUSES", "Position", "PositionStatus"]
