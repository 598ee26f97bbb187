"""Tests for the Polymarket venue adapter."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import httpx
import pytest
from py_clob_client.exceptions import PolyApiException

from crossarb.config.settings import PolymarketSettings
from crossarb.domain.markets import Outcome
from crossarb.domain.orders import OrderStatus
from crossarb.venues.base import ListingUnavailableError, OrderRejectedError, QuoteUnavailableError, VenueError
from crossarb.venues.polymarket import PolymarketAdapter, is_btc_15m

CONDITION_ID = "0xabc"


@pytest.fixture
def gamma_market():
    """Sample Gamma market with JSON-encoded list fields."""
    return {
        "conditionId": CONDITION_ID,
        "question": "Bitcoin Up or Down - January 5, 12:00PM-12:15PM ET",
        "slug": "btc-updown-15m-1767614400",
        "endDate": "2026-01-05T17:15:00Z",
        "closed": False,
        "outcomes": json.dumps(["Up", "Down"]),
        "clobTokenIds": json.dumps(["111", "222"]),
        "outcomePrices": json.dumps(["0.41", "0.59"]),
    }


@pytest.fixture
def books():
    return {
        "111": {"asks": [{"price": "0.42", "size": "50"}, {"price": "0.40", "size": "10"}]},
        "222": {"asks": [{"price": "0.61", "size": "30"}, {"price": "0.60", "size": "0"}]},
    }


@pytest.fixture
def settings():
    return PolymarketSettings(
        clob_url="https://clob.test",
        gamma_url="https://gamma.test",
        private_key="0x" + "1" * 64,
    )


def make_adapter(settings, gamma_payload, books, clob_client=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "gamma.test":
            return httpx.Response(200, json=gamma_payload)
        token = request.url.params["token_id"]
        return httpx.Response(200, json=books.get(token, {"asks": []}))

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    adapter = PolymarketAdapter(settings, client=client, clob_client=clob_client)
    return adapter, client


@pytest.mark.parametrize(
    "market,expected",
    [
        ({"question": "Bitcoin Up or Down", "slug": "btc-updown-15m-1"}, True),
        ({"question": "BTC above 100k?", "slug": "btc-100k"}, False),
        ({"question": "Ethereum Up or Down", "slug": "eth-updown-15m-1"}, False),
    ],
)
def test_is_btc_15m(market, expected):
    assert is_btc_15m(market) is expected


class TestListing:
    @pytest.mark.asyncio
    async def test_lists_btc_markets(self, settings, gamma_market, books):
        other = {**gamma_market, "conditionId": "0xeth", "question": "ETH up?", "slug": "eth-updown-15m"}
        adapter, client = make_adapter(settings, [gamma_market, other], books)

        markets = await adapter.list_open_markets("BTC-15M")

        assert [m.id for m in markets] == [CONDITION_ID]
        market = markets[0]
        assert market.series_tag == "BTC-15M"
        assert market.outcome_tokens == ("111", "222")
        assert market.close_time.isoformat() == "2026-01-05T17:15:00+00:00"
        assert not market.resolved
        await client.aclose()

    @pytest.mark.asyncio
    async def test_reversed_outcomes_map_tokens(self, settings, gamma_market, books):
        gamma_market["outcomes"] = json.dumps(["Down", "Up"])
        adapter, client = make_adapter(settings, [gamma_market], books)

        markets = await adapter.list_open_markets("BTC-15M")

        assert markets[0].outcome_tokens == ("222", "111")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_listing_failure(self, settings):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        adapter = PolymarketAdapter(settings, client=client)

        with pytest.raises(ListingUnavailableError):
            await adapter.list_open_markets("BTC-15M")
        await client.aclose()


class TestQuotes:
    @pytest.mark.asyncio
    async def test_quote_uses_best_asks(self, settings, gamma_market, books):
        adapter, client = make_adapter(settings, [gamma_market], books)

        quote = await adapter.get_quote(CONDITION_ID)

        assert quote.up_price == pytest.approx(40)
        assert quote.down_price == pytest.approx(61)
        assert quote.settlement_price is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_closed_market_reports_settlement(self, settings, gamma_market, books):
        gamma_market["closed"] = True
        adapter, client = make_adapter(settings, [gamma_market], books)

        quote = await adapter.get_quote(CONDITION_ID)

        assert quote.settlement_price == pytest.approx(41)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_empty_book_is_unavailable(self, settings, gamma_market, books):
        books["222"] = {"asks": []}
        adapter, client = make_adapter(settings, [gamma_market], books)

        with pytest.raises(QuoteUnavailableError):
            await adapter.get_quote(CONDITION_ID)
        await client.aclose()


class TestOrders:
    @pytest.mark.asyncio
    async def test_buy_signs_and_posts(self, settings, gamma_market, books):
        clob = MagicMock()
        clob.create_order.return_value = "signed-order"
        clob.post_order.return_value = {
            "success": True,
            "orderID": "0xorder",
            "status": "matched",
            "transactionsHashes": ["0xtx"],
        }
        adapter, client = make_adapter(settings, [gamma_market], books, clob_client=clob)

        result = await adapter.place_order(CONDITION_ID, Outcome.DOWN, 25, 60)

        order_args = clob.create_order.call_args.args[0]
        assert order_args.token_id == "222"
        assert order_args.price == pytest.approx(0.60)
        assert order_args.size == 25
        assert order_args.side == "BUY"
        assert clob.post_order.call_args.args[0] == "signed-order"
        assert result.status is OrderStatus.FILLED
        assert result.tx_ref == "0xtx"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_live_order_is_pending(self, settings, gamma_market, books):
        clob = MagicMock()
        clob.post_order.return_value = {"success": True, "orderID": "0xorder", "status": "live"}
        adapter, client = make_adapter(settings, [gamma_market], books, clob_client=clob)

        result = await adapter.place_order(CONDITION_ID, Outcome.UP, 10, 40)

        assert result.status is OrderStatus.PENDING
        await client.aclose()

    @pytest.mark.asyncio
    async def test_api_exception_is_rejection(self, settings, gamma_market, books):
        clob = MagicMock()
        clob.post_order.side_effect = PolyApiException(error_msg="not enough balance")
        adapter, client = make_adapter(settings, [gamma_market], books, clob_client=clob)

        with pytest.raises(OrderRejectedError):
            await adapter.place_order(CONDITION_ID, Outcome.UP, 10, 40)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unsuccessful_response_is_rejection(self, settings, gamma_market, books):
        clob = MagicMock()
        clob.post_order.return_value = {"success": False, "errorMsg": "invalid tick size"}
        adapter, client = make_adapter(settings, [gamma_market], books, clob_client=clob)

        with pytest.raises(OrderRejectedError, match="invalid tick size"):
            await adapter.place_order(CONDITION_ID, Outcome.UP, 10, 40)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_close_leg_sells(self, settings, gamma_market, books):
        clob = MagicMock()
        clob.post_order.return_value = {"success": True, "orderID": "0xclose", "status": "matched"}
        adapter, client = make_adapter(settings, [gamma_market], books, clob_client=clob)

        await adapter.close_leg(CONDITION_ID, Outcome.UP, 10)

        order_args = clob.create_order.call_args.args[0]
        assert order_args.side == "SELL"
        assert order_args.price == pytest.approx(0.01)
        assert clob.post_order.call_args.args[1] == "FOK"
        await client.aclose()


class TestResolution:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "closed,uma_status,expected",
        [(False, None, False), (True, None, True), (True, "resolved", True), (True, "proposed", False)],
    )
    async def test_is_resolved(self, settings, gamma_market, books, closed, uma_status, expected):
        gamma_market["closed"] = closed
        if uma_status is not None:
            gamma_market["umaResolutionStatus"] = uma_status
        adapter, client = make_adapter(settings, [gamma_market], books)

        assert await adapter.is_resolved(CONDITION_ID) is expected
        assert await adapter.redeem(CONDITION_ID, Outcome.UP) is expected
        await client.aclose()


class TestMalformedResponses:
    @pytest.mark.asyncio
    async def test_non_json_listing_is_unavailable(self, settings):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>cloudflare</html>"))
        )
        adapter = PolymarketAdapter(settings, client=client)

        with pytest.raises(ListingUnavailableError):
            await adapter.list_open_markets("BTC-15M")
        with pytest.raises(VenueError):
            await adapter.get_quote(CONDITION_ID)
        with pytest.raises(VenueError):
            await adapter.is_resolved(CONDITION_ID)
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{"error": "rate limited"}, "markets", 42])
    async def test_non_list_gamma_payload(self, settings, books, payload):
        adapter, client = make_adapter(settings, payload, books)

        with pytest.raises(ListingUnavailableError):
            await adapter.list_open_markets("BTC-15M")
        with pytest.raises(VenueError):
            await adapter.get_quote(CONDITION_ID)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_object_book_is_unavailable(self, settings, gamma_market, books):
        books["111"] = ["not", "a", "book"]
        adapter, client = make_adapter(settings, [gamma_market], books)

        with pytest.raises(QuoteUnavailableError):
            await adapter.get_quote(CONDITION_ID)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_date_only_end_date_is_utc(self, settings, gamma_market, books):
        del gamma_market["endDate"]
        gamma_market["end_date_iso"] = "2026-01-05"
        adapter, client = make_adapter(settings, [gamma_market], books)

        markets = await adapter.list_open_markets("BTC-15M")

        assert markets[0].close_time.isoformat() == "2026-01-05T00:00:00+00:00"
        await client.aclose()


@pytest.mark.asyncio
async def test_orders_use_configured_tick_size(gamma_market, books):
    settings = PolymarketSettings(
        clob_url="https://clob.test",
        gamma_url="https://gamma.test",
        tick_size="0.001",
    )
    clob = MagicMock()
    clob.post_order.return_value = {"success": True, "orderID": "0xorder", "status": "matched"}
    adapter, client = make_adapter(settings, [gamma_market], books, clob_client=clob)

    await adapter.place_order(CONDITION_ID, Outcome.UP, 10, 40)

    options = clob.create_order.call_args.args[1]
    assert options.tick_size == "0.001"
    await client.aclose()
