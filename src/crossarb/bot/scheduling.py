"""Single-flight interval scheduling for bot ticks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class SingleFlightTicker:
    """Runs a tick coroutine on an interval without ever overlapping itself.

    The next tick is scheduled only after the previous one, including all of
    its awaited work, has completed. A tick that overruns its interval is
    followed immediately by the next one. Unexpected exceptions end the tick,
    not the loop.
    """

    name: str
    interval_seconds: float
    tick: Callable[[], Awaitable[Any]]
    busy: bool = False
    ticks: int = 0
    failures: int = 0

    async def run_once(self) -> None:
        if self.busy:
            logger.warning("tick_overlap_refused", ticker=self.name)
            return
        self.busy = True
        self.ticks += 1
        try:
            with structlog.contextvars.bound_contextvars(ticker=self.name, tick=self.ticks):
                await self.tick()
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failures += 1
            logger.exception("tick_failed", ticker=self.name, tick=self.ticks)
        finally:
            self.busy = False

    async def run(self, stop: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        logger.info("ticker_started", ticker=self.name, interval_seconds=self.interval_seconds)
        while not stop.is_set():
            started = loop.time()
            await self.run_once()
            delay = max(0.0, self.interval_seconds - (loop.time() - started))
            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
            except TimeoutError:
                pass
        logger.info("ticker_stopped", ticker=self.name, ticks=self.ticks)


__all__ = ["SingleFlightTicker"]
