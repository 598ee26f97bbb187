"""Venue adapters normalizing Polymarket and Kalshi into the core contracts."""

from crossarb.venues.base import (
    ListingUnavailableError,
    OrderRejectedError,
    QuoteUnavailableError,
    VenueAdapter,
    VenueError,
    clamp_price,
)
from crossarb.venues.kalshi import KalshiAdapter
from crossarb.venues.polymarket import PolymarketAdapter

__all__ = [
    "KalshiAdapter",
    "ListingUnavailableError",
    "OrderRejectedError",
    "PolymarketAdapter",
    "QuoteUnavailableError",
    "VenueAdapter",
    "VenueError",
    "clamp_price",
]
