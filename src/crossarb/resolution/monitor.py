"""Resolution polling and redemption of settled hedges."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta

from structlog import get_logger

from crossarb.domain.markets import Outcome, Venue, utcnow
from crossarb.domain.positions import Position
from crossarb.ledger.positions import PositionLedger
from crossarb.venues.base import VenueAdapter, VenueError

logger = get_logger(__name__)


@dataclass(slots=True)
class ResolutionMonitor:
    """Redeems open positions once both venues report the market resolved.

    A position is marked redeemed only when every non-zero leg redeems;
    otherwise it stays open and is retried on the next poll.
    """

    venue_a: VenueAdapter
    venue_b: VenueAdapter
    expire_after_seconds: float | None = None

    async def check_and_redeem(self, ledger: PositionLedger) -> int:
        """Run one poll over the ledger and return how many positions were redeemed."""

        positions = ledger.list_open()
        if not positions:
            return 0
        results = await asyncio.gather(
            *(self._check_position(ledger, position) for position in positions)
        )
        redeemed = sum(results)
        logger.info("redemption_poll_complete", open=len(positions), redeemed=redeemed)
        return redeemed

    async def redeem_position(self, position: Position) -> bool:
        """Redeem every non-zero leg concurrently; True only if all succeed."""

        legs = position.nonzero_legs()
        results = await asyncio.gather(
            *(self._redeem_leg(position, venue, side) for venue, side, _ in legs)
        )
        return all(results)

    async def _check_position(self, ledger: PositionLedger, position: Position) -> bool:
        resolved_a, resolved_b = await asyncio.gather(
            self._is_resolved(self.venue_a, position.market_id_for(Venue.POLYMARKET)),
            self._is_resolved(self.venue_b, position.market_id_for(Venue.KALSHI)),
        )
        if not (resolved_a and resolved_b):
            self._maybe_expire(ledger, position)
            return False

        if await self.redeem_position(position):
            ledger.mark_redeemed(position)
            logger.info(
                "position_redeemed",
                position_id=position.position_id,
                market=position.market_id,
            )
            return True

        logger.error(
            "position_redemption_incomplete",
            position_id=position.position_id,
            market=position.market_id,
        )
        return False

    async def _is_resolved(self, adapter: VenueAdapter, market_id: str) -> bool:
        try:
            return await adapter.is_resolved(market_id)
        except VenueError as exc:
            logger.warning(
                "resolution_check_failed",
                venue=adapter.venue.value,
                market=market_id,
                error=str(exc),
            )
            return False

    async def _redeem_leg(self, position: Position, venue: Venue, side: Outcome) -> bool:
        adapter = self.venue_a if venue is Venue.POLYMARKET else self.venue_b
        market_id = position.market_id_for(venue)
        try:
            return await adapter.redeem(market_id, side)
        except VenueError as exc:
            logger.warning(
                "redeem_leg_failed",
                venue=venue.value,
                market=market_id,
                side=side.value,
                error=str(exc),
            )
            return False

    def _maybe_expire(self, ledger: PositionLedger, position: Position) -> None:
        if self.expire_after_seconds is None or position.end_time is None:
            return
        deadline = position.end_time + timedelta(seconds=self.expire_after_seconds)
        if utcnow() >= deadline:
            logger.warning(
                "position_expired_unresolved",
                position_id=position.position_id,
                market=position.market_id,
                end_time=position.end_time.isoformat(),
            )
            ledger.mark_expired(position)


__all__ = ["ResolutionMonitor"]
