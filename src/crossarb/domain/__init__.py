"""Domain models shared across the bot."""

from .markets import MarketDescriptor, MatchedMarket, Outcome, Quote, Venue
from .opportunities import LegPrices, Opportunity, OpportunityKind, TradeAction
from .orders import OrderResult, OrderStatus
from .positions import OPEN_STATUSES, LegAmounts, Position, PositionStatus

__all__ = [
    "LegAmounts",
    "LegPrices",
    "MarketDescriptor",
    "MatchedMarket",
    "OPEN_STATUSES",
    "Opportunity",
    "OpportunityKind",
    "OrderResult",
    "OrderStatus",
    "Outcome",
    "Position",
    "PositionStatus",
    "Quote",
    "TradeAction",
    "Venue",
]
