"""Market pair resolution between the two venues."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Sequence

from structlog import get_logger

from crossarb.domain.markets import MarketDescriptor, MatchedMarket
from crossarb.venues.base import VenueAdapter, VenueError

logger = get_logger(__name__)

DEFAULT_TOLERANCE_SECONDS = 60.0


def find_match(
    market: MarketDescriptor,
    candidates: Sequence[MarketDescriptor],
    series_tag: str,
    tolerance_seconds: float = DEFAULT_TOLERANCE_SECONDS,
) -> MarketDescriptor | None:
    """Return the first candidate closing within tolerance in the same series.

    Ties are resolved by list order, not by closeness or title similarity.
    """

    for candidate in candidates:
        delta = abs((market.close_time - candidate.close_time).total_seconds())
        if delta < tolerance_seconds and series_tag in candidate.series_tag:
            return candidate
    return None


def match_markets(
    venue_a_markets: Sequence[MarketDescriptor],
    venue_b_markets: Sequence[MarketDescriptor],
    series_tag: str,
    tolerance_seconds: float = DEFAULT_TOLERANCE_SECONDS,
) -> list[tuple[MarketDescriptor, MarketDescriptor]]:
    """Pair each venue A market with at most one venue B market."""

    pairs = []
    for market in venue_a_markets:
        candidate = find_match(market, venue_b_markets, series_tag, tolerance_seconds)
        if candidate is not None:
            pairs.append((market, candidate))
    return pairs


@dataclass(slots=True)
class MarketPairResolver:
    """Builds the per-tick set of matched markets with live quotes."""

    venue_a: VenueAdapter
    venue_b: VenueAdapter
    series_tag: str = "BTC-15M"
    tolerance_seconds: float = DEFAULT_TOLERANCE_SECONDS

    async def resolve(self) -> list[MatchedMarket]:
        """Return matched markets for this tick; an empty list if either listing fails."""

        try:
            venue_a_markets, venue_b_markets = await asyncio.gather(
                self.venue_a.list_open_markets(self.series_tag),
                self.venue_b.list_open_markets(self.series_tag),
            )
        except VenueError as exc:
            logger.warning("market_listing_failed", error=str(exc))
            return []

        pairs = match_markets(
            venue_a_markets,
            venue_b_markets,
            self.series_tag,
            self.tolerance_seconds,
        )
        logger.info(
            "markets_matched",
            venue_a_markets=len(venue_a_markets),
            venue_b_markets=len(venue_b_markets),
            pairs=len(pairs),
        )

        matched = []
        for market_a, market_b in pairs:
            matched_market = await self._quote_pair(market_a, market_b)
            if matched_market is not None:
                matched.append(matched_market)
        return matched

    async def _quote_pair(
        self, market_a: MarketDescriptor, market_b: MarketDescriptor
    ) -> MatchedMarket | None:
        try:
            quote_a, quote_b = await asyncio.gather(
                self.venue_a.get_quote(market_a.id),
                self.venue_b.get_quote(market_b.id),
            )
        except VenueError as exc:
            logger.warning(
                "market_quote_failed",
                market=market_a.id,
                hedge_market=market_b.id,
                error=str(exc),
            )
            return None

        return MatchedMarket(
            market_id=market_a.id,
            title=market_a.title,
            end_time=market_a.close_time,
            resolved=market_a.resolved or market_b.resolved,
            venue_a_market_id=market_a.id,
            venue_b_market_id=market_b.id,
            venue_a_quote=quote_a,
            venue_b_quote=quote_b,
        )


__all__ = ["DEFAULT_TOLERANCE_SECONDS", "MarketPairResolver", "find_match", "match_markets"]
