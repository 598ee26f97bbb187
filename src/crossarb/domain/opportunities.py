"""Arbitrage opportunity models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .markets import Outcome, Venue, utcnow


class OpportunityKind(str, Enum):
    """Which leg combinations were eligible when the opportunity was detected."""

    BOTH = "both"
    A_UP_B_DOWN = "a_up_b_down"
    A_DOWN_B_UP = "a_down_b_up"


class TradeAction(str, Enum):
    """Directional trade chosen for an opportunity."""

    BUY_A_UP_B_DOWN = "buy_a_up_b_down"
    BUY_A_DOWN_B_UP = "buy_a_down_b_up"
    SKIP = "skip"

    def side_for(self, venue: Venue) -> Outcome:
        """Return the outcome bought on `venue` for this action."""

        if self is TradeAction.SKIP:
            raise ValueError("skip has no legs")
        venue_a_side = Outcome.UP if self is TradeAction.BUY_A_UP_B_DOWN else Outcome.DOWN
        return venue_a_side if venue is Venue.POLYMARKET else venue_a_side.opposite


class LegPrices(BaseModel):
    """The four quoted leg prices observed at detection time."""

    model_config = ConfigDict(frozen=True)

    a_up: float
    a_down: float
    b_up: float
    b_down: float

    def price_for(self, venue: Venue, side: Outcome) -> float:
        if venue is Venue.POLYMARKET:
            return self.a_up if side is Outcome.UP else self.a_down
        return self.b_up if side is Outcome.UP else self.b_down


class Opportunity(BaseModel):
    """Immutable, per-tick arbitrage decision for one matched market."""

    model_config = ConfigDict(frozen=True)

    market_id: str
    venue_b_market_id: str
    title: str
    kind: OpportunityKind
    action: TradeAction
    total_cost: float = Field(..., gt=0, description="Combined cost of the chosen legs (0-200 scale).")
    profit_potential: float = Field(..., description="Percentage return on total cost at par 100.")
    leg_prices: LegPrices
    settlement_a: Optional[float] = None
    settlement_b: Optional[float] = None
    end_time: Optional[datetime] = None
    detected_at: datetime = Field(default_factory=utcnow)

    @property
    def is_actionable(self) -> bool:
        return self.action is not TradeAction.SKIP

    def limit_price(self, venue: Venue) -> float:
        """Quoted price of the leg bought on `venue`."""

        return self.leg_prices.price_for(venue, self.action.side_for(venue))


__all__ = ["LegPrices", "Opportunity", "OpportunityKind", "TradeAction"]
