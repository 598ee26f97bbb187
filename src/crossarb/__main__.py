"""Entry point: wire adapters and components from settings and run the bot."""

from __future__ import annotations

import asyncio
import signal

import structlog
import uvicorn

from crossarb.bot.orchestrator import ArbitrageBot
from crossarb.config import Settings, get_settings
from crossarb.execution.executor import HedgeExecutor
from crossarb.ledger.positions import PositionLedger
from crossarb.logging import configure_logging
from crossarb.matching.resolver import MarketPairResolver
from crossarb.resolution.monitor import ResolutionMonitor
from crossarb.services.api import create_app
from crossarb.signals.evaluator import OpportunityEvaluator
from crossarb.venues.base import VenueAdapter
from crossarb.venues.kalshi import KalshiAdapter
from crossarb.venues.polymarket import PolymarketAdapter

logger = structlog.get_logger(__name__)


def build_bot(
    settings: Settings,
    venue_a: VenueAdapter,
    venue_b: VenueAdapter,
    ledger: PositionLedger | None = None,
) -> ArbitrageBot:
    """Construct the bot and its components from settings and adapters."""

    trading = settings.trading
    return ArbitrageBot(
        resolver=MarketPairResolver(
            venue_a=venue_a,
            venue_b=venue_b,
            series_tag=trading.series_tag,
            tolerance_seconds=trading.match_tolerance_seconds,
        ),
        evaluator=OpportunityEvaluator(
            threshold=trading.take_profit,
            price_change_tolerance=trading.price_change_tolerance,
        ),
        executor=HedgeExecutor(
            venue_a=venue_a,
            venue_b=venue_b,
            min_trade_amount=trading.min_trade_amount,
            max_trade_amount=trading.max_trade_amount,
            trade_percentage=trading.trade_percentage,
            order_timeout_seconds=trading.order_timeout_seconds,
            unwind_partial_fills=trading.unwind_partial_fills,
            dry_run=trading.dry_run,
        ),
        monitor=ResolutionMonitor(
            venue_a=venue_a,
            venue_b=venue_b,
            expire_after_seconds=trading.expire_after_seconds,
        ),
        ledger=ledger if ledger is not None else PositionLedger(),
        available_balance=trading.available_balance,
        scan_interval_seconds=trading.scan_interval / 1000,
        redeem_interval_seconds=trading.redeem_check_interval / 1000,
        summary_interval_seconds=trading.summary_interval / 1000,
    )


async def run(settings: Settings) -> None:
    venue_a = PolymarketAdapter(settings.polymarket)
    venue_b = KalshiAdapter(
        base_url=settings.kalshi.active_base_url,
        series_ticker=settings.kalshi.series_ticker,
        api_key=settings.kalshi.api_key,
        time_in_force=settings.kalshi.time_in_force,
        request_timeout=settings.kalshi.request_timeout,
    )
    bot = build_bot(settings, venue_a, venue_b)

    server: uvicorn.Server | None = None
    if settings.status_api.enabled:
        server = uvicorn.Server(
            uvicorn.Config(
                create_app(bot.ledger, bot),
                host=settings.status_api.host,
                port=settings.status_api.port,
                log_level=settings.log_level.lower(),
            )
        )

    def _shutdown() -> None:
        bot.stop()
        if server is not None:
            server.should_exit = True

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _shutdown)

    async def _serve(status_server: uvicorn.Server) -> None:
        await status_server.serve()
        bot.stop()

    logger.info(
        "crossarb_starting",
        dry_run=settings.trading.dry_run,
        take_profit=settings.trading.take_profit,
        status_api=settings.status_api.enabled,
    )
    try:
        tasks = [bot.run()]
        if server is not None:
            tasks.append(_serve(server))
        await asyncio.gather(*tasks)
    finally:
        bot.log_summary()
        await asyncio.gather(venue_a.close(), venue_b.close())


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
