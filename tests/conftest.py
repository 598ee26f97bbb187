"""Test configuration and fixtures."""

import asyncio
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Ensure the src/ directory is on sys.path so `import crossarb` works without installation.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if SRC_PATH.exists():
    sys.path.insert(0, str(SRC_PATH))

from crossarb.domain.markets import MarketDescriptor, MatchedMarket, Outcome, Quote, Venue  # noqa: E402
from crossarb.domain.orders import OrderResult, OrderStatus  # noqa: E402
from crossarb.venues.base import OrderRejectedError, VenueAdapter, VenueError  # noqa: E402

CLOSE_TIME = datetime(2026, 1, 5, 12, 15, tzinfo=UTC)


class FakeVenue(VenueAdapter):
    """Scripted in-memory venue used across the core tests.

    Set `markets`, `quotes`, `resolved` and the failure switches directly;
    every call is recorded in `orders`, `closed_legs` and `redeemed`.
    """

    def __init__(self, venue: Venue) -> None:
        super().__init__(venue)
        self.markets: list[MarketDescriptor] = []
        self.quotes: dict[str, Quote] = {}
        self.resolved: set[str] = set()
        self.orders: list[tuple[str, Outcome, float, float]] = []
        self.closed_legs: list[tuple[str, Outcome, float]] = []
        self.redeemed: list[tuple[str, Outcome]] = []
        self.listing_error = False
        self.quote_errors: set[str] = set()
        self.order_error: Exception | None = None
        self.order_status = OrderStatus.FILLED
        self.order_delay = 0.0
        self.close_status = OrderStatus.FILLED
        self.close_error: Exception | None = None
        self.resolution_error = False
        self.redeem_results: dict[tuple[str, Outcome], bool] = {}

    async def list_open_markets(self, series_filter):
        if self.listing_error:
            raise VenueError(self.venue, "listing down")
        return list(self.markets)

    async def get_quote(self, market_id):
        if market_id in self.quote_errors or market_id not in self.quotes:
            raise VenueError(self.venue, f"no quote for {market_id}")
        return self.quotes[market_id]

    async def place_order(self, market_id, side, amount, limit_price):
        if self.order_delay:
            await asyncio.sleep(self.order_delay)
        self.orders.append((market_id, side, amount, limit_price))
        if self.order_error is not None:
            raise self.order_error
        return OrderResult(
            order_id=f"{self.venue.value}-{len(self.orders)}",
            venue=self.venue,
            market_id=market_id,
            side=side,
            amount=amount,
            limit_price=limit_price,
            status=self.order_status,
        )

    async def close_leg(self, market_id, side, amount):
        self.closed_legs.append((market_id, side, amount))
        if self.close_error is not None:
            raise self.close_error
        if self.close_status is OrderStatus.REJECTED:
            raise OrderRejectedError(self.venue, "no bids")
        return OrderResult(
            order_id=f"{self.venue.value}-close-{len(self.closed_legs)}",
            venue=self.venue,
            market_id=market_id,
            side=side,
            amount=amount,
            limit_price=1.0,
            status=self.close_status,
        )

    async def is_resolved(self, market_id):
        if self.resolution_error:
            raise VenueError(self.venue, "status unavailable")
        return market_id in self.resolved

    async def redeem(self, market_id, side):
        self.redeemed.append((market_id, side))
        return self.redeem_results.get((market_id, side), True)


def _descriptor(market_id, close_time=CLOSE_TIME, series_tag="BTC-15M", **kwargs):
    return MarketDescriptor(
        id=market_id,
        title=kwargs.pop("title", f"Bitcoin Up or Down {market_id}"),
        close_time=close_time,
        series_tag=series_tag,
        **kwargs,
    )


def _matched(a_up, a_down, b_up, b_down, settlement_a=None, settlement_b=None, market_id="pm-1"):
    return MatchedMarket(
        market_id=market_id,
        title="Bitcoin Up or Down 12:00-12:15",
        end_time=CLOSE_TIME,
        venue_a_market_id=market_id,
        venue_b_market_id="KXBTC15M-1",
        venue_a_quote=Quote(up_price=a_up, down_price=a_down, settlement_price=settlement_a),
        venue_b_quote=Quote(up_price=b_up, down_price=b_down, settlement_price=settlement_b),
    )


@pytest.fixture
def venue_a():
    return FakeVenue(Venue.POLYMARKET)


@pytest.fixture
def venue_b():
    return FakeVenue(Venue.KALSHI)


@pytest.fixture
def make_descriptor():
    return _descriptor


@pytest.fixture
def make_matched():
    return _matched
