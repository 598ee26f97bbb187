"""Bot orchestration and scheduling."""

from crossarb.bot.orchestrator import ArbitrageBot
from crossarb.bot.scheduling import SingleFlightTicker

__all__ = ["ArbitrageBot", "SingleFlightTicker"]
