"""Two-legged hedge execution across venues with partial-fill handling."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from crossarb.domain.markets import Outcome, Venue
from crossarb.domain.opportunities import Opportunity
from crossarb.domain.orders import OrderResult
from crossarb.domain.positions import LegAmounts, Position, PositionStatus
from crossarb.venues.base import VenueAdapter, VenueError

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class LegOutcome:
    """Observed result of placing one leg."""

    venue: Venue
    market_id: str
    side: Outcome
    limit_price: float
    order: OrderResult | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.order is not None and self.order.succeeded


@dataclass(slots=True)
class ExecutionOutcome:
    """Everything that happened while executing one opportunity."""

    opportunity: Opportunity
    amount: float
    legs: list[LegOutcome] = field(default_factory=list)
    position: Position | None = None
    exposure: Position | None = None
    unwound: bool = False

    @property
    def partially_filled(self) -> bool:
        return sum(1 for leg in self.legs if leg.succeeded) == 1


@dataclass(slots=True)
class HedgeExecutor:
    """Sizes and places both legs of a hedge concurrently.

    A position is only created when both legs succeed. When exactly one leg
    fills, the surviving leg is flattened if `unwind_partial_fills` is set;
    otherwise, or if flattening fails, the outcome carries a
    ``PARTIALLY_FILLED`` exposure for the ledger.
    """

    venue_a: VenueAdapter
    venue_b: VenueAdapter
    min_trade_amount: float = 10.0
    max_trade_amount: float = 1000.0
    trade_percentage: float = 0.1
    order_timeout_seconds: float = 10.0
    unwind_partial_fills: bool = True
    dry_run: bool = False

    def calculate_trade_amount(self, available_balance: float) -> float:
        """Fixed fraction of the balance, clamped to the trade amount band."""

        calculated = available_balance * self.trade_percentage
        return min(max(calculated, self.min_trade_amount), self.max_trade_amount)

    async def execute(self, opportunity: Opportunity, amount: float) -> Position | None:
        """Execute the hedge and return the ACTIVE position, or None on any failure."""

        outcome = await self.execute_hedge(opportunity, amount)
        return outcome.position

    async def execute_hedge(self, opportunity: Opportunity, amount: float) -> ExecutionOutcome:
        outcome = ExecutionOutcome(opportunity=opportunity, amount=amount)
        log = logger.bind(market=opportunity.market_id, action=opportunity.action.value, amount=amount)

        if amount < self.min_trade_amount or amount > self.max_trade_amount:
            log.warning(
                "trade_amount_out_of_range",
                min_trade_amount=self.min_trade_amount,
                max_trade_amount=self.max_trade_amount,
            )
            return outcome
        if not opportunity.is_actionable:
            log.warning("opportunity_not_actionable")
            return outcome

        plan = [
            LegOutcome(
                venue=venue,
                market_id=market_id,
                side=opportunity.action.side_for(venue),
                limit_price=opportunity.limit_price(venue),
            )
            for venue, market_id in (
                (Venue.POLYMARKET, opportunity.market_id),
                (Venue.KALSHI, opportunity.venue_b_market_id),
            )
        ]
        outcome.legs = plan

        if self.dry_run:
            log.info(
                "dry_run_hedge",
                legs=[
                    {"venue": leg.venue.value, "side": leg.side.value, "price": leg.limit_price}
                    for leg in plan
                ],
            )
            return outcome

        # Both legs run to completion; one failing never cancels the other.
        await asyncio.gather(*(self._place_leg(leg, amount) for leg in plan))

        filled = [leg for leg in plan if leg.succeeded]
        if len(filled) == 2:
            outcome.position = self._build_position(opportunity, amount)
            log.info(
                "hedge_executed",
                total_cost=outcome.position.total_cost,
                expected_profit=outcome.position.expected_profit,
                orders=[leg.order.order_id for leg in plan if leg.order is not None],
            )
        elif not filled:
            log.error("hedge_failed", errors=[leg.error for leg in plan])
        else:
            failed = next(leg for leg in plan if not leg.succeeded)
            log.error(
                "hedge_partially_filled",
                filled_venue=filled[0].venue.value,
                failed_venue=failed.venue.value,
                error=failed.error,
            )
            await self._handle_partial_fill(outcome, filled[0])
        return outcome

    def _adapter(self, venue: Venue) -> VenueAdapter:
        return self.venue_a if venue is Venue.POLYMARKET else self.venue_b

    async def _place_leg(self, leg: LegOutcome, amount: float) -> None:
        adapter = self._adapter(leg.venue)
        try:
            leg.order = await asyncio.wait_for(
                adapter.place_order(leg.market_id, leg.side, amount, leg.limit_price),
                timeout=self.order_timeout_seconds,
            )
        except TimeoutError:
            leg.error = f"timed out after {self.order_timeout_seconds}s"
        except VenueError as exc:
            leg.error = str(exc)
        except Exception as exc:
            logger.exception("hedge_leg_crashed", venue=leg.venue.value, market=leg.market_id)
            leg.error = repr(exc)
        else:
            if not leg.order.succeeded:
                leg.error = f"order {leg.order.order_id} {leg.order.status.value}"

        if leg.error is not None:
            logger.warning(
                "hedge_leg_failed",
                venue=leg.venue.value,
                market=leg.market_id,
                side=leg.side.value,
                error=leg.error,
            )

    async def _handle_partial_fill(self, outcome: ExecutionOutcome, leg: LegOutcome) -> None:
        log = logger.bind(market=leg.market_id, venue=leg.venue.value, side=leg.side.value)
        if self.unwind_partial_fills:
            try:
                result = await asyncio.wait_for(
                    self._adapter(leg.venue).close_leg(leg.market_id, leg.side, outcome.amount),
                    timeout=self.order_timeout_seconds,
                )
            except (TimeoutError, VenueError) as exc:
                log.error("partial_fill_unwind_failed", error=str(exc) or type(exc).__name__)
            except Exception:
                # The filled leg must still reach the ledger as exposure.
                log.exception("partial_fill_unwind_crashed")
            else:
                if result.succeeded:
                    outcome.unwound = True
                    log.info("partial_fill_unwound", order_id=result.order_id)
                    return
                log.error("partial_fill_unwind_failed", error=result.status.value)

        amounts = LegAmounts(**{leg.side.value: outcome.amount})
        opportunity = outcome.opportunity
        outcome.exposure = Position(
            market_id=opportunity.market_id,
            venue_b_market_id=opportunity.venue_b_market_id,
            action=opportunity.action,
            venue_a=amounts if leg.venue is Venue.POLYMARKET else LegAmounts(),
            venue_b=amounts if leg.venue is Venue.KALSHI else LegAmounts(),
            total_cost=leg.limit_price * outcome.amount / 100,
            expected_profit=0.0,
            status=PositionStatus.PARTIALLY_FILLED,
            end_time=opportunity.end_time,
        )
        log.warning("unhedged_exposure_recorded", cost=outcome.exposure.total_cost)

    @staticmethod
    def _build_position(opportunity: Opportunity, amount: float) -> Position:
        side_a = opportunity.action.side_for(Venue.POLYMARKET)
        side_b = opportunity.action.side_for(Venue.KALSHI)
        return Position(
            market_id=opportunity.market_id,
            venue_b_market_id=opportunity.venue_b_market_id,
            action=opportunity.action,
            venue_a=LegAmounts(**{side_a.value: amount}),
            venue_b=LegAmounts(**{side_b.value: amount}),
            total_cost=opportunity.total_cost * amount / 100,
            expected_profit=opportunity.profit_potential * amount / 100,
            end_time=opportunity.end_time,
        )


__all__ = ["ExecutionOutcome", "HedgeExecutor", "LegOutcome"]
