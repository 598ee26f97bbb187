"""Market, quote and venue models shared by the core and the venue adapters."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Venue(str, Enum):
    """Supported trading venues. Polymarket is venue A, Kalshi is venue B."""

    POLYMARKET = "polymarket"
    KALSHI = "kalshi"


class Outcome(str, Enum):
    """Binary outcome direction of a 15-minute up/down market."""

    UP = "up"
    DOWN = "down"

    @property
    def opposite(self) -> Outcome:
        return Outcome.DOWN if self is Outcome.UP else Outcome.UP


def utcnow() -> datetime:
    return datetime.now(UTC)


class MarketDescriptor(BaseModel):
    """Normalized open-market listing entry returned by a venue adapter."""

    id: str = Field(..., description="Venue-specific market identifier (ticker or condition id).")
    title: str
    close_time: datetime
    series_tag: str = Field(..., description="Canonical series marker, e.g. BTC-15M.")
    resolved: bool = False
    outcome_tokens: Optional[tuple[str, str]] = Field(
        default=None,
        description="(up, down) outcome token ids for venues that trade tokens.",
    )


class Quote(BaseModel):
    """Best executable prices for one market on one venue, on a 0-100 scale.

    Up and down prices are observed independently and need not sum to 100.
    `settlement_price` is only present once the venue reports an implied
    resolution value.
    """

    model_config = ConfigDict(frozen=True)

    up_price: float = Field(..., ge=0, le=100)
    down_price: float = Field(..., ge=0, le=100)
    settlement_price: Optional[float] = Field(default=None, ge=0, le=100)
    observed_at: datetime = Field(default_factory=utcnow)


class MatchedMarket(BaseModel):
    """Equivalent markets on both venues with their live quotes for one scan tick."""

    market_id: str = Field(..., description="Venue A market id; identity of the pair.")
    title: str
    end_time: datetime
    resolved: bool = False
    venue_a_market_id: str
    venue_b_market_id: str
    venue_a_quote: Quote
    venue_b_quote: Quote


__all__ = ["MarketDescriptor", "MatchedMarket", "Outcome", "Quote", "Venue", "utcnow"]
