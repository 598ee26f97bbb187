"""Arbitrage detection and direction selection for matched markets."""

from __future__ import annotations

from dataclasses import dataclass

from structlog import get_logger

from crossarb.domain.markets import MatchedMarket, Quote
from crossarb.domain.opportunities import LegPrices, Opportunity, OpportunityKind, TradeAction

logger = get_logger(__name__)

PAR_VALUE = 100.0


def profit_potential(total_cost: float) -> float:
    """Percentage return of paying `total_cost` for a guaranteed par payout."""

    return (PAR_VALUE - total_cost) / total_cost * 100


def _cheaper_action(cost_up_down: float, cost_down_up: float) -> TradeAction:
    if cost_up_down < cost_down_up:
        return TradeAction.BUY_A_UP_B_DOWN
    return TradeAction.BUY_A_DOWN_B_UP


def choose_action(
    eligible_up_down: bool,
    eligible_down_up: bool,
    cost_up_down: float,
    cost_down_up: float,
    settlement_a: float | None,
    settlement_b: float | None,
) -> TradeAction:
    """Pick the trade direction for the eligible leg combinations.

    With both combinations eligible, a settlement disagreement decides the
    direction and the cheaper combination breaks ties or missing data. With a
    single eligible combination, the trade requires both settlement prices
    and a disagreement pointing the same way; anything else is a skip.
    """

    has_settlements = settlement_a is not None and settlement_b is not None

    if eligible_up_down and eligible_down_up:
        if has_settlements:
            if settlement_b > settlement_a:
                return TradeAction.BUY_A_UP_B_DOWN
            if settlement_a > settlement_b:
                return TradeAction.BUY_A_DOWN_B_UP
        return _cheaper_action(cost_up_down, cost_down_up)

    if eligible_up_down:
        if has_settlements and settlement_a < settlement_b:
            return TradeAction.BUY_A_UP_B_DOWN
        return TradeAction.SKIP

    if eligible_down_up:
        if has_settlements and settlement_a > settlement_b:
            return TradeAction.BUY_A_DOWN_B_UP
        return TradeAction.SKIP

    return TradeAction.SKIP


@dataclass(slots=True)
class OpportunityEvaluator:
    """Stateless evaluator parameterized by the profit threshold."""

    threshold: float = 90.0
    price_change_tolerance: float = 2.0

    def detect(self, market: MatchedMarket) -> Opportunity | None:
        """Return an actionable opportunity for `market`, or None."""

        quote_a = market.venue_a_quote
        quote_b = market.venue_b_quote
        cost_up_down = quote_a.up_price + quote_b.down_price
        cost_down_up = quote_a.down_price + quote_b.up_price

        eligible_up_down = cost_up_down < self.threshold
        eligible_down_up = cost_down_up < self.threshold
        if not eligible_up_down and not eligible_down_up:
            return None

        action = choose_action(
            eligible_up_down,
            eligible_down_up,
            cost_up_down,
            cost_down_up,
            quote_a.settlement_price,
            quote_b.settlement_price,
        )
        if action is TradeAction.SKIP:
            logger.info(
                "opportunity_skipped",
                market=market.market_id,
                cost_up_down=cost_up_down,
                cost_down_up=cost_down_up,
                settlement_a=quote_a.settlement_price,
                settlement_b=quote_b.settlement_price,
            )
            return None

        if eligible_up_down and eligible_down_up:
            kind = OpportunityKind.BOTH
            total_cost = min(cost_up_down, cost_down_up)
        elif eligible_up_down:
            kind = OpportunityKind.A_UP_B_DOWN
            total_cost = cost_up_down
        else:
            kind = OpportunityKind.A_DOWN_B_UP
            total_cost = cost_down_up

        if total_cost <= 0:
            logger.warning("opportunity_zero_cost", market=market.market_id)
            return None

        opportunity = Opportunity(
            market_id=market.market_id,
            venue_b_market_id=market.venue_b_market_id,
            title=market.title,
            kind=kind,
            action=action,
            total_cost=total_cost,
            profit_potential=profit_potential(total_cost),
            leg_prices=LegPrices(
                a_up=quote_a.up_price,
                a_down=quote_a.down_price,
                b_up=quote_b.up_price,
                b_down=quote_b.down_price,
            ),
            settlement_a=quote_a.settlement_price,
            settlement_b=quote_b.settlement_price,
            end_time=market.end_time,
        )
        logger.info(
            "opportunity_detected",
            market=opportunity.market_id,
            kind=kind.value,
            action=action.value,
            total_cost=total_cost,
            profit_potential=round(opportunity.profit_potential, 2),
        )
        return opportunity

    def validate(self, opportunity: Opportunity, venue_a_quote: Quote, venue_b_quote: Quote) -> bool:
        """Return False when any leg price moved by the tolerance or more since detection."""

        prices = opportunity.leg_prices
        moves = (
            abs(venue_a_quote.up_price - prices.a_up),
            abs(venue_a_quote.down_price - prices.a_down),
            abs(venue_b_quote.up_price - prices.b_up),
            abs(venue_b_quote.down_price - prices.b_down),
        )
        valid = all(move < self.price_change_tolerance for move in moves)
        if not valid:
            logger.info(
                "opportunity_stale",
                market=opportunity.market_id,
                max_move=max(moves),
            )
        return valid


__all__ = ["OpportunityEvaluator", "PAR_VALUE", "choose_action", "profit_potential"]
