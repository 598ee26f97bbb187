"""Polymarket venue adapter over the Gamma API and the CLOB."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from typing import Any, Mapping

import httpx
import structlog
from py_clob_client.client import ClobClient
from py_clob_client.clob_types import ApiCreds, OrderArgs, OrderType, PartialCreateOrderOptions
from py_clob_client.exceptions import PolyApiException
from py_clob_client.order_builder.constants import BUY, SELL
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from crossarb.config.settings import PolymarketSettings
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

MATCHED_STATUSES = frozenset({"matched", "filled"})
UNMATCHED_STATUSES = frozenset({"unmatched", "cancelled", "canceled"})


def is_btc_15m(market: Mapping[str, Any]) -> bool:
    """Return True when a Gamma market looks like a 15-minute BTC up/down market."""

    text = " ".join(
        str(market.get(key) or "") for key in ("question", "title", "slug")
    ).lower()
    return ("btc" in text or "bitcoin" in text) and "15m" in text


def _json_list(value: Any) -> list[Any]:
    # Gamma encodes several list fields as JSON strings.
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return []
    return list(value) if isinstance(value, (list, tuple)) else []


class PolymarketAdapter(VenueAdapter):
    """Polymarket adapter: Gamma for metadata, CLOB books for quotes, py-clob-client for orders."""

    def __init__(
        self,
        settings: PolymarketSettings,
        *,
        client: httpx.AsyncClient | None = None,
        clob_client: ClobClient | None = None,
    ) -> None:
        super().__init__(venue=Venue.POLYMARKET)
        self._settings = settings
        self._client_provided = client is not None
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)
        self._clob_client = clob_client
        self._clob_lock = asyncio.Lock()
        self._tokens: dict[str, tuple[str, str]] = {}

    async def close(self) -> None:
        """Dispose the HTTP client if owned by the adapter."""

        if not self._client_provided:
            await self._client.aclose()
        logger.info("polymarket_adapter_closed")

    async def list_open_markets(self, series_filter: str) -> list[MarketDescriptor]:
        """Fetch active Gamma markets and keep the 15-minute BTC ones."""

        try:
            markets = await self._get_json(
                f"{self._settings.gamma_url}/markets",
                params={"active": "true", "closed": "false", "limit": 500},
            )
        except (httpx.HTTPError, VenueError) as exc:
            raise ListingUnavailableError(self.venue, f"market listing failed: {exc}") from exc
        if not isinstance(markets, list):
            raise ListingUnavailableError(self.venue, "market listing was not a list")

        descriptors = []
        for market in markets:
            if not isinstance(market, Mapping) or not is_btc_15m(market):
                continue
            descriptor = self._parse_market(market, series_filter)
            if descriptor is not None:
                descriptors.append(descriptor)

        logger.info(
            "fetched_polymarket_markets",
            total=len(markets),
            usable=len(descriptors),
        )
        return descriptors

    async def get_quote(self, market_id: str) -> Quote:
        """Best asks for both outcome tokens plus the settlement value once closed."""

        market = await self._fetch_market(market_id)
        up_token, down_token = self._tokens_for(market_id, market)
        up_book, down_book = await asyncio.gather(
            self._fetch_book(up_token),
            self._fetch_book(down_token),
        )
        up_ask = self._best_ask(up_book)
        down_ask = self._best_ask(down_book)
        if up_ask is None or down_ask is None:
            raise QuoteUnavailableError(self.venue, f"market {market_id} has a one-sided book")

        return Quote(
            up_price=up_ask * 100,
            down_price=down_ask * 100,
            settlement_price=self._settlement_price(market),
        )

    async def place_order(
        self,
        market_id: str,
        side: Outcome,
        amount: float,
        limit_price: float,
    ) -> OrderResult:
        price = clamp_price(limit_price)
        return await self._submit_order(market_id, side, amount, price, BUY, OrderType.GTC)

    async def close_leg(self, market_id: str, side: Outcome, amount: float) -> OrderResult:
        return await self._submit_order(
            market_id, side, amount, clamp_price(0), SELL, OrderType.FOK
        )

    async def is_resolved(self, market_id: str) -> bool:
        market = await self._fetch_market(market_id)
        return self._market_resolved(market)

    async def redeem(self, market_id: str, side: Outcome) -> bool:
        """Confirm the market is resolved; on-chain redemption is handled by the wallet."""

        if not await self.is_resolved(market_id):
            logger.warning("polymarket_redeem_unresolved", market=market_id, side=side.value)
            return False
        logger.info("polymarket_redeem_confirmed", market=market_id, side=side.value)
        return True

    def _parse_market(
        self, market: Mapping[str, Any], series_filter: str
    ) -> MarketDescriptor | None:
        condition_id = market.get("conditionId") or market.get("condition_id") or market.get("id")
        end_date = market.get("endDate") or market.get("end_date_iso")
        if not condition_id or not end_date:
            return None
        try:
            close_time = datetime.fromisoformat(str(end_date).replace("Z", "+00:00"))
        except ValueError:
            logger.warning("polymarket_market_bad_end_date", market=condition_id, end_date=end_date)
            return None
        if close_time.tzinfo is None:
            close_time = close_time.replace(tzinfo=UTC)

        tokens = self._extract_tokens(market)
        if tokens is not None:
            self._tokens[str(condition_id)] = tokens
        return MarketDescriptor(
            id=str(condition_id),
            title=market.get("question") or market.get("title") or str(condition_id),
            close_time=close_time,
            series_tag=series_filter,
            resolved=self._market_resolved(market),
            outcome_tokens=tokens,
        )

    @staticmethod
    def _extract_tokens(market: Mapping[str, Any]) -> tuple[str, str] | None:
        token_ids = [str(token) for token in _json_list(market.get("clobTokenIds"))]
        if len(token_ids) != 2:
            return None
        outcomes = [str(outcome).lower() for outcome in _json_list(market.get("outcomes"))]
        if outcomes in (["down", "up"], ["no", "yes"]):
            return token_ids[1], token_ids[0]
        return token_ids[0], token_ids[1]

    def _tokens_for(self, market_id: str, market: Mapping[str, Any]) -> tuple[str, str]:
        tokens = self._tokens.get(market_id) or self._extract_tokens(market)
        if tokens is None:
            raise VenueError(self.venue, f"market {market_id} has no outcome tokens")
        self._tokens[market_id] = tokens
        return tokens

    @staticmethod
    def _market_resolved(market: Mapping[str, Any]) -> bool:
        if not market.get("closed"):
            return False
        status = market.get("umaResolutionStatus")
        return status is None or str(status).lower() == "resolved"

    @staticmethod
    def _settlement_price(market: Mapping[str, Any]) -> float | None:
        if not market.get("closed"):
            return None
        prices = _json_list(market.get("outcomePrices"))
        if not prices:
            return None
        try:
            return float(prices[0]) * 100
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _best_ask(book: Mapping[str, Any]) -> float | None:
        prices = []
        for level in book.get("asks") or []:
            try:
                price = float(level.get("price", 0))
                size = float(level.get("size", 0))
            except (TypeError, ValueError):
                continue
            if 0 < price < 1 and size > 0:
                prices.append(price)
        return min(prices) if prices else None

    async def _fetch_market(self, market_id: str) -> Mapping[str, Any]:
        try:
            markets = await self._get_json(
                f"{self._settings.gamma_url}/markets",
                params={"condition_ids": market_id},
            )
        except httpx.HTTPError as exc:
            raise VenueError(self.venue, f"market {market_id} fetch failed: {exc}") from exc
        if not isinstance(markets, list) or not markets or not isinstance(markets[0], Mapping):
            raise VenueError(self.venue, f"market {market_id} not found")
        return markets[0]

    async def _fetch_book(self, token_id: str) -> Mapping[str, Any]:
        try:
            book = await self._get_json(
                f"{self._settings.clob_url}/book",
                params={"token_id": token_id},
            )
        except httpx.HTTPError as exc:
            raise QuoteUnavailableError(self.venue, f"book for {token_id} failed: {exc}") from exc
        if not isinstance(book, Mapping):
            raise QuoteUnavailableError(self.venue, f"book for {token_id} was not an object")
        return book

    async def _ensure_clob_client(self) -> ClobClient:
        async with self._clob_lock:
            if self._clob_client is not None:
                return self._clob_client
            settings = self._settings
            if not settings.private_key:
                raise VenueError(
                    self.venue,
                    "Polymarket private key missing; configure POLYMARKET_PRIVATE_KEY.",
                )
            client = ClobClient(
                settings.clob_url,
                key=settings.private_key,
                chain_id=settings.chain_id,
                signature_type=settings.resolved_signature_type,
                funder=settings.proxy_address,
            )
            if settings.api_key and settings.api_secret and settings.api_passphrase:
                creds = ApiCreds(
                    api_key=settings.api_key,
                    api_secret=settings.api_secret,
                    api_passphrase=settings.api_passphrase,
                )
            else:
                creds = await asyncio.to_thread(client.create_or_derive_api_creds)
            client.set_api_creds(creds)
            self._clob_client = client
            logger.info("polymarket_clob_client_initialized")
            return client

    async def _submit_order(
        self,
        market_id: str,
        side: Outcome,
        amount: float,
        price: float,
        clob_side: str,
        order_type: str,
    ) -> OrderResult:
        client = await self._ensure_clob_client()
        up_token, down_token = self._tokens_for(market_id, await self._fetch_market(market_id))
        token_id = up_token if side is Outcome.UP else down_token
        order_args = OrderArgs(token_id=token_id, price=price / 100, size=amount, side=clob_side)
        options = PartialCreateOrderOptions(tick_size=self._settings.tick_size)

        logger.info(
            "polymarket_submitting_order",
            market=market_id,
            side=side.value,
            clob_side=clob_side,
            size=amount,
            price=price,
        )

        def _post() -> dict[str, Any]:
            signed = client.create_order(order_args, options)
            return client.post_order(signed, order_type)

        try:
            response = await asyncio.to_thread(_post)
        except PolyApiException as exc:
            logger.warning("polymarket_order_rejected", market=market_id, error=str(exc))
            raise OrderRejectedError(self.venue, f"order rejected: {exc}") from exc

        if not response or not response.get("success", True) or not response.get("orderID"):
            detail = (response or {}).get("errorMsg") or "missing orderID"
            raise OrderRejectedError(self.venue, f"order rejected: {detail}")

        raw_status = str(response.get("status", "")).lower()
        if raw_status in MATCHED_STATUSES:
            status = OrderStatus.FILLED
        elif raw_status in UNMATCHED_STATUSES:
            status = OrderStatus.REJECTED
        else:
            status = OrderStatus.PENDING
        tx_hashes = response.get("transactionsHashes") or []

        logger.info(
            "polymarket_order_placed",
            order_id=response["orderID"],
            market=market_id,
            status=raw_status,
        )
        return OrderResult(
            order_id=str(response["orderID"]),
            venue=self.venue,
            market_id=market_id,
            side=side,
            amount=amount,
            limit_price=price,
            status=status,
            tx_ref=tx_hashes[0] if tx_hashes else None,
        )

    async def _get_json(self, url: str, params: Mapping[str, Any] | None = None) -> Any:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=0.5, max=2.0),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                response = await self._client.get(url, params=params)
                response.raise_for_status()
                try:
                    return response.json()
                except ValueError as exc:
                    raise VenueError(self.venue, f"GET {url} returned a non-JSON body") from exc
        raise VenueError(self.venue, f"GET {url} exhausted retries")  # pragma: no cover


__all__ = ["PolymarketAdapter", "is_btc_15m"]
