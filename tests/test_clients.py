"""Tests for the CoinGecko and Fear & Greed HTTP clients."""

import httpx
import pytest

from ticker.clients import (
    CoinGeckoClient,
    FearGreedClient,
    FeedUnavailableError,
    RateLimiter,
    parse_market_item,
)


MARKET_ITEM = {
    "id": "bitcoin",
    "symbol": "btc",
    "current_price": 64250.5,
    "total_volume": 31000000000,
    "price_change_percentage_24h": -1.25,
    "last_updated": "2024-04-01T12:00:00.000Z",
    "sparkline_in_7d": {"price": [63000.0, None, 63500.0, 64000.0]},
}


def coingecko(handler) -> CoinGeckoClient:
    return CoinGeckoClient(calls_per_minute=0, transport=httpx.MockTransport(handler))


class TestParseMarketItem:
    """Tests for /coins/markets item parsing."""

    def test_parse(self):
        snapshot = parse_market_item("BTC", MARKET_ITEM)

        assert snapshot.asset == "BTC"
        assert snapshot.price == 64250.5
        assert snapshot.prices == [63000.0, 63500.0, 64000.0]
        assert snapshot.volume == 31000000000
        assert snapshot.change_24h == -1.25
        assert snapshot.as_of.year == 2024
        assert snapshot.as_of.tzinfo is not None

    def test_missing_sparkline_uses_current_price(self):
        item = {"current_price": 0.52}

        snapshot = parse_market_item("XRP", item)

        assert snapshot.prices == [0.52]
        assert snapshot.volume == 0.0
        assert snapshot.as_of.tzinfo is not None

    def test_missing_price_raises(self):
        with pytest.raises(FeedUnavailableError) as exc_info:
            parse_market_item("ADA", {"current_price": None})

        assert exc_info.value.source == "coingecko"

    @pytest.mark.parametrize(
        "sparkline",
        [
            ["oops"],
            "oops",
            {"price": 42.0},
            {"price": {"a": 1}},
            {"prices": [1.0, 2.0]},
        ],
    )
    def test_malformed_sparkline_uses_current_price(self, sparkline):
        snapshot = parse_market_item(
            "BTC", {"current_price": 1.0, "sparkline_in_7d": sparkline}
        )

        assert snapshot.prices == [1.0]

    def test_non_numeric_sparkline_points_dropped(self):
        item = {"current_price": 3.0, "sparkline_in_7d": {"price": [1.0, "x", {}, 2.0]}}

        snapshot = parse_market_item("ETH", item)

        assert snapshot.prices == [1.0, 2.0]


class TestCoinGeckoClient:
    """Tests for CoinGeckoClient against a mocked transport."""

    @pytest.mark.asyncio
    async def test_get_snapshot(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[MARKET_ITEM])

        client = coingecko(handler)
        try:
            snapshot = await client.get_snapshot("bitcoin", "BTC")
        finally:
            await client.close()

        assert snapshot.asset == "BTC"
        assert snapshot.price == 64250.5
        assert seen["path"] == "/api/v3/coins/markets"
        assert seen["params"]["ids"] == "bitcoin"
        assert seen["params"]["vs_currency"] == "usd"
        assert seen["params"]["sparkline"] == "true"

    @pytest.mark.asyncio
    async def test_api_key_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["key"] = request.headers.get("x-cg-demo-api-key")
            return httpx.Response(200, json=[MARKET_ITEM])

        client = CoinGeckoClient(
            api_key="demo-key", calls_per_minute=0, transport=httpx.MockTransport(handler)
        )
        try:
            await client.get_snapshot("bitcoin", "BTC")
        finally:
            await client.close()

        assert seen["key"] == "demo-key"

    @pytest.mark.asyncio
    async def test_http_error(self):
        client = coingecko(lambda request: httpx.Response(500, text="oops"))
        try:
            with pytest.raises(FeedUnavailableError):
                await client.get_snapshot("bitcoin", "BTC")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_rate_limited_response(self):
        client = coingecko(lambda request: httpx.Response(429, json={"status": "limit"}))
        try:
            with pytest.raises(FeedUnavailableError):
                await client.get_snapshot("bitcoin", "BTC")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = coingecko(handler)
        try:
            with pytest.raises(FeedUnavailableError):
                await client.get_snapshot("bitcoin", "BTC")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = coingecko(lambda request: httpx.Response(200, text="<html>"))
        try:
            with pytest.raises(FeedUnavailableError):
                await client.get_snapshot("bitcoin", "BTC")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_malformed_sparkline_response(self):
        item = dict(MARKET_ITEM, sparkline_in_7d=["oops"])
        client = coingecko(lambda request: httpx.Response(200, json=[item]))
        try:
            snapshot = await client.get_snapshot("bitcoin", "BTC")
        finally:
            await client.close()

        assert snapshot.prices == [64250.5]

    @pytest.mark.asyncio
    async def test_unknown_coin(self):
        client = coingecko(lambda request: httpx.Response(200, json=[]))
        try:
            with pytest.raises(FeedUnavailableError):
                await client.get_snapshot("not-a-coin", "NOPE")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_get_global(self):
        payload = {
            "data": {
                "market_cap_percentage": {"btc": 52.4, "eth": 17.1},
                "total_market_cap": {"usd": 2.4e12},
            }
        }
        client = coingecko(lambda request: httpx.Response(200, json=payload))
        try:
            dominance, total_cap = await client.get_global()
        finally:
            await client.close()

        assert dominance == 52.4
        assert total_cap == 2.4e12

    @pytest.mark.asyncio
    async def test_get_global_malformed(self):
        client = coingecko(lambda request: httpx.Response(200, json={"status": "ok"}))
        try:
            with pytest.raises(FeedUnavailableError):
                await client.get_global()
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        client = coingecko(lambda request: httpx.Response(200, json=[MARKET_ITEM]))
        await client.get_snapshot("bitcoin", "BTC")

        await client.close()
        await client.close()


class TestFearGreedClient:
    """Tests for FearGreedClient."""

    @pytest.mark.asyncio
    async def test_get_index(self):
        payload = {"name": "Fear and Greed Index", "data": [{"value": "23"}]}
        client = FearGreedClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        )
        try:
            assert await client.get_index() == 23
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_malformed(self):
        client = FearGreedClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"data": []}))
        )
        try:
            with pytest.raises(FeedUnavailableError) as exc_info:
                await client.get_index()
        finally:
            await client.close()

        assert exc_info.value.source == "fear_greed"

    @pytest.mark.asyncio
    async def test_http_error(self):
        client = FearGreedClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )
        try:
            with pytest.raises(FeedUnavailableError):
                await client.get_index()
        finally:
            await client.close()


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_interval(self):
        assert RateLimiter(30).interval == 2.0
        assert RateLimiter(0).interval == 0.0

    @pytest.mark.asyncio
    async def test_unlimited_does_not_wait(self):
        limiter = RateLimiter(0)
        for _ in range(5):
            await limiter.acquire()
