"""Kalshi venue adapter over the trade API v2."""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any, Mapping
from uuid import uuid4

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from crossarb.domain.markets import MarketDescriptor, Outcome, Quote, Venue
from crossarb.domain.orders import OrderResult, OrderStatus
from crossarb.venues.base import (
    ListingUnavailableError,
    OrderRejectedError,
    QuoteUnavailableError,
    VenueAdapter,
    VenueError,
    clamp_price,
)

logger = structlog.get_logger(__name__)

RESOLVED_STATUSES = frozenset({"settled", "finalized", "determined", "resolved"})
FILLED_STATUSES = frozenset({"executed", "filled"})
REJECTED_STATUSES = frozenset({"canceled", "cancelled", "rejected"})


def _side_to_kalshi(side: Outcome) -> str:
    return "yes" if side is Outcome.UP else "no"


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=UTC)
    if not isinstance(value, str) or not value:
        raise ValueError(f"unsupported timestamp {value!r}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    # Offset-less timestamps are UTC.
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


class KalshiAdapter(VenueAdapter):
    """Kalshi REST adapter normalizing markets, quotes and orders."""

    PAGE_SIZE = 200
    MAX_MARKETS = 1000

    def __init__(
        self,
        *,
        base_url: str,
        series_ticker: str = "KXBTC15M",
        api_key: str | None = None,
        time_in_force: str = "good_till_canceled",
        client: httpx.AsyncClient | None = None,
        request_timeout: float = 10.0,
    ) -> None:
        super().__init__(venue=Venue.KALSHI)
        self.series_ticker = series_ticker
        self._time_in_force = time_in_force

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client_provided = client is not None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=request_timeout,
        )

    async def close(self) -> None:
        """Dispose the HTTP client if owned by the adapter."""

        if not self._client_provided:
            await self._client.aclose()
        logger.info("kalshi_adapter_closed")

    async def list_open_markets(self, series_filter: str) -> list[MarketDescriptor]:
        """Fetch open markets for the configured series, following cursors."""

        raw_markets: list[dict[str, Any]] = []
        cursor: str | None = None
        try:
            while True:
                params: dict[str, Any] = {
                    "series_ticker": self.series_ticker,
                    "status": "open",
                    "limit": self.PAGE_SIZE,
                }
                if cursor:
                    params["cursor"] = cursor
                data = await self._get_json("/markets", params=params)
                page = data.get("markets") or []
                raw_markets.extend(page)
                cursor = data.get("cursor") or None
                if not cursor or len(page) < self.PAGE_SIZE or len(raw_markets) >= self.MAX_MARKETS:
                    break
        except (httpx.HTTPError, VenueError) as exc:
            raise ListingUnavailableError(self.venue, f"market listing failed: {exc}") from exc

        descriptors = []
        for market in raw_markets:
            if not isinstance(market, Mapping):
                continue
            descriptor = self._parse_market(market, series_filter)
            if descriptor is not None:
                descriptors.append(descriptor)

        logger.info("fetched_kalshi_markets", total=len(raw_markets), usable=len(descriptors))
        return descriptors

    async def get_quote(self, market_id: str) -> Quote:
        market = await self._fetch_market(market_id)
        return self._parse_quote(market_id, market)

    async def place_order(
        self,
        market_id: str,
        side: Outcome,
        amount: float,
        limit_price: float,
    ) -> OrderResult:
        """Place a limit buy for `side`; the price is clamped to 1-99 cents."""

        return await self._submit_order(
            market_id,
            side,
            amount,
            clamp_price(limit_price),
            action="buy",
            time_in_force=self._time_in_force,
        )

    async def close_leg(self, market_id: str, side: Outcome, amount: float) -> OrderResult:
        """Sell the leg back into the book at any price."""

        return await self._submit_order(
            market_id,
            side,
            amount,
            clamp_price(0),
            action="sell",
            time_in_force="immediate_or_cancel",
        )

    async def is_resolved(self, market_id: str) -> bool:
        market = await self._fetch_market(market_id)
        return str(market.get("status", "")).lower() in RESOLVED_STATUSES

    async def redeem(self, market_id: str, side: Outcome) -> bool:
        """Kalshi settles positions automatically once the market resolves."""

        resolved = await self.is_resolved(market_id)
        if not resolved:
            logger.warning("kalshi_redeem_unresolved", market=market_id, side=side.value)
            return False
        logger.info("kalshi_auto_settled", market=market_id, side=side.value)
        return True

    async def _fetch_market(self, market_id: str) -> Mapping[str, Any]:
        try:
            data = await self._get_json(f"/markets/{market_id}")
        except httpx.HTTPError as exc:
            raise VenueError(self.venue, f"market {market_id} fetch failed: {exc}") from exc
        market = data.get("market")
        if not market or not isinstance(market, Mapping):
            raise VenueError(self.venue, f"market {market_id} not found")
        return market

    def _parse_market(
        self, market: Mapping[str, Any], series_filter: str
    ) -> MarketDescriptor | None:
        ticker = market.get("ticker")
        if not ticker:
            return None
        try:
            close_time = _parse_timestamp(market.get("close_time") or market.get("expiration_time"))
        except ValueError:
            logger.warning("kalshi_market_bad_close_time", ticker=ticker)
            return None

        raw_series = str(market.get("series_ticker") or market.get("event_ticker") or ticker)
        in_series = self.series_ticker.upper() in raw_series.upper() or series_filter in raw_series
        return MarketDescriptor(
            id=ticker,
            title=market.get("title") or ticker,
            close_time=close_time,
            series_tag=series_filter if in_series else raw_series,
            resolved=str(market.get("status", "")).lower() in RESOLVED_STATUSES,
        )

    def _parse_quote(self, market_id: str, market: Mapping[str, Any]) -> Quote:
        # Prices are already in cents; prefer the ask and fall back to the bid.
        up_price = market.get("yes_ask") or market.get("yes_bid")
        down_price = market.get("no_ask") or market.get("no_bid")
        if not up_price or not down_price:
            raise QuoteUnavailableError(self.venue, f"market {market_id} has a one-sided book")

        settlement = market.get("betted_price")
        if settlement is None:
            settlement = market.get("settlement_value")
        return Quote(
            up_price=float(up_price),
            down_price=float(down_price),
            settlement_price=float(settlement) if settlement is not None else None,
        )

    async def _submit_order(
        self,
        market_id: str,
        side: Outcome,
        amount: float,
        price: float,
        *,
        action: str,
        time_in_force: str,
    ) -> OrderResult:
        kalshi_side = _side_to_kalshi(side)
        price_cents = int(round(price))
        payload: dict[str, Any] = {
            "ticker": market_id,
            "side": kalshi_side,
            "action": action,
            "count": max(int(math.floor(amount)), 1),
            "type": "limit",
            "time_in_force": time_in_force,
            "client_order_id": uuid4().hex,
            f"{kalshi_side}_price": price_cents,
        }
        logger.info(
            "kalshi_submitting_order",
            market=market_id,
            side=kalshi_side,
            action=action,
            count=payload["count"],
            price=price_cents,
        )

        try:
            # client_order_id makes a retried submission idempotent at the venue.
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(3),
                wait=wait_exponential(multiplier=0.5, max=2.0),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.post("/portfolio/orders", json=payload)
        except httpx.HTTPError as exc:
            raise VenueError(self.venue, f"order submission failed: {exc}") from exc

        if response.status_code not in (200, 201, 202):
            logger.warning(
                "kalshi_order_rejected",
                market=market_id,
                status=response.status_code,
                body=response.text,
            )
            raise OrderRejectedError(self.venue, f"order rejected with {response.status_code}")

        try:
            order = response.json().get("order") or {}
        except (ValueError, AttributeError) as exc:
            raise VenueError(self.venue, "order response was not a JSON object") from exc
        if not isinstance(order, Mapping):
            raise VenueError(self.venue, "order response has no order object")
        order_id = str(order.get("order_id") or order.get("id") or "")
        if not order_id:
            raise OrderRejectedError(self.venue, "order response missing order_id")

        raw_status = str(order.get("status", "")).lower()
        if raw_status in FILLED_STATUSES:
            status = OrderStatus.FILLED
        elif raw_status in REJECTED_STATUSES:
            status = OrderStatus.REJECTED
        else:
            status = OrderStatus.PENDING

        logger.info("kalshi_order_placed", order_id=order_id, market=market_id, status=raw_status)
        return OrderResult(
            order_id=order_id,
            venue=self.venue,
            market_id=market_id,
            side=side,
            amount=amount,
            limit_price=price,
            status=status,
            tx_ref=order_id,
        )

    async def _get_json(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=0.5, max=2.0),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                response = await self._client.get(path, params=params)
                response.raise_for_status()
                try:
                    data = response.json()
                except ValueError as exc:
                    raise VenueError(self.venue, f"GET {path} returned a non-JSON body") from exc
                if not isinstance(data, dict):
                    raise VenueError(self.venue, f"GET {path} returned {type(data).__name__}, expected object")
                return data
        raise VenueError(self.venue, f"GET {path} exhausted retries")  # pragma: no cover


__all__ = ["KalshiAdapter"]
