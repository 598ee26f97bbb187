"""Bot orchestration tying matching, evaluation, execution and redemption together."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from structlog import get_logger

from crossarb.bot.scheduling import SingleFlightTicker
from crossarb.domain.opportunities import Opportunity
from crossarb.domain.positions import Position
from crossarb.execution.executor import HedgeExecutor
from crossarb.ledger.positions import PositionLedger, PositionsSummary
from crossarb.matching.resolver import MarketPairResolver
from crossarb.resolution.monitor import ResolutionMonitor
from crossarb.signals.evaluator import OpportunityEvaluator
from crossarb.venues.base import VenueError

logger = get_logger(__name__)


@dataclass
class ArbitrageBot:
    """Explicitly wired session context: components, adapters and the ledger."""

    resolver: MarketPairResolver
    evaluator: OpportunityEvaluator
    executor: HedgeExecutor
    monitor: ResolutionMonitor
    ledger: PositionLedger
    available_balance: float = 1000.0
    scan_interval_seconds: float = 5.0
    redeem_interval_seconds: float = 60.0
    summary_interval_seconds: float = 300.0
    _stop: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    async def scan_and_trade(self) -> list[Position]:
        """Run one scan tick and return the positions opened during it."""

        matched = await self.resolver.resolve()
        opened: list[Position] = []
        for market in matched:
            if market.resolved:
                continue
            opportunity = self.evaluator.detect(market)
            if opportunity is None:
                continue
            position = await self._trade(opportunity)
            if position is not None:
                opened.append(position)

        logger.info("scan_complete", matched=len(matched), opened=len(opened))
        return opened

    async def redeem_tick(self) -> int:
        return await self.monitor.check_and_redeem(self.ledger)

    def log_summary(self) -> PositionsSummary:
        summary = self.ledger.summary()
        logger.info("positions_summary", **summary.as_dict())
        return summary

    async def _log_summary_tick(self) -> None:
        self.log_summary()

    async def run(self) -> None:
        """Run scan, redemption and summary tickers until `stop` is called."""

        self._stop.clear()
        tickers = [
            SingleFlightTicker("scan", self.scan_interval_seconds, self.scan_and_trade),
            SingleFlightTicker("redeem", self.redeem_interval_seconds, self.redeem_tick),
            SingleFlightTicker("summary", self.summary_interval_seconds, self._log_summary_tick),
        ]
        logger.info("bot_started", tickers=[ticker.name for ticker in tickers])
        await asyncio.gather(*(ticker.run(self._stop) for ticker in tickers))
        logger.info("bot_stopped")

    def stop(self) -> None:
        logger.info("bot_stopping")
        self._stop.set()

    async def _trade(self, opportunity: Opportunity) -> Position | None:
        # Find, execute and append under one lock so a market never gets two open hedges.
        async with self.ledger.lock:
            if self.ledger.has_open_position(opportunity.market_id):
                logger.info("position_already_open", market=opportunity.market_id)
                return None
            if not await self._still_valid(opportunity):
                return None

            amount = self.executor.calculate_trade_amount(self.available_balance)
            outcome = await self.executor.execute_hedge(opportunity, amount)
            if outcome.position is not None:
                self.ledger.append(outcome.position)
            elif outcome.exposure is not None:
                self.ledger.append(outcome.exposure)
            return outcome.position

    async def _still_valid(self, opportunity: Opportunity) -> bool:
        try:
            quote_a, quote_b = await asyncio.gather(
                self.resolver.venue_a.get_quote(opportunity.market_id),
                self.resolver.venue_b.get_quote(opportunity.venue_b_market_id),
            )
        except VenueError as exc:
            logger.warning("requote_failed", market=opportunity.market_id, error=str(exc))
            return False
        return self.evaluator.validate(opportunity, quote_a, quote_b)


__all__ = ["ArbitrageBot"]
