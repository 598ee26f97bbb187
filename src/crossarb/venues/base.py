"""Venue adapter abstraction consumed by the core."""

from __future__ import annotations

import abc
from typing import Sequence

from crossarb.domain.markets import MarketDescriptor, Outcome, Quote, Venue
from crossarb.domain.orders import OrderResult


class VenueError(RuntimeError):
    """Raised when a venue call fails or returns an unusable payload."""

    def __init__(self, venue: Venue | str, message: str) -> None:
        self.venue = venue.value if isinstance(venue, Venue) else venue
        super().__init__(f"{self.venue}: {message}")


class ListingUnavailableError(VenueError):
    """Raised when the open-market listing cannot be fetched."""


class QuoteUnavailableError(VenueError):
    """Raised when a market has no usable two-sided quote."""


class OrderRejectedError(VenueError):
    """Raised when a venue refuses an order outright."""


def clamp_price(price: float, low: float = 1.0, high: float = 99.0) -> float:
    """Clamp a 0-100 limit price into the venue's tradable range."""

    return min(max(price, low), high)


class VenueAdapter(abc.ABC):
    """Abstract base class for venue-specific adapters.

    Implementations normalize every payload into the domain contracts before
    returning; nothing venue-shaped crosses this boundary.
    """

    venue: Venue

    def __init__(self, venue: Venue) -> None:
        self.venue = venue

    @abc.abstractmethod
    async def list_open_markets(self, series_filter: str) -> Sequence[MarketDescriptor]:
        """Return the currently open markets in the given series."""

    @abc.abstractmethod
    async def get_quote(self, market_id: str) -> Quote:
        """Return best executable up/down prices for a market."""

    @abc.abstractmethod
    async def place_order(
        self,
        market_id: str,
        side: Outcome,
        amount: float,
        limit_price: float,
    ) -> OrderResult:
        """Buy `amount` of `side` with a 0-100 limit price clamped to the venue range."""

    @abc.abstractmethod
    async def close_leg(self, market_id: str, side: Outcome, amount: float) -> OrderResult:
        """Sell back a previously bought leg to flatten exposure."""

    @abc.abstractmethod
    async def is_resolved(self, market_id: str) -> bool:
        """Return True once the venue reports the market settled."""

    @abc.abstractmethod
    async def redeem(self, market_id: str, side: Outcome) -> bool:
        """Redeem a settled leg. Must be safe to call more than once."""

    async def close(self) -> None:
        """Release transport resources."""


__all__ = [
    "ListingUnavailableError",
    "OrderRejectedError",
    "QuoteUnavailableError",
    "VenueAdapter",
    "VenueError",
    "clamp_price",
]
