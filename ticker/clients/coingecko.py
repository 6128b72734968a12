"""CoinGecko REST API client for market snapshots."""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from signal_core.models import MarketSnapshot
from ticker.clients.errors import FeedUnavailableError
from ticker.clients.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

# Sparkline points are hourly over the last 7 days
SPARKLINE_SAMPLE_HOURS = 1


def _parse_timestamp(value: Any) -> datetime:
    """Parse CoinGecko's ISO timestamps ("...Z"), falling back to now."""
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Unparseable timestamp {value!r}, using now")
    return datetime.now(timezone.utc)


def _as_float(value: Any, default: float | None = None) -> float | None:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_market_item(symbol: str, item: dict[str, Any]) -> MarketSnapshot:
    """
    Convert one /coins/markets item into a MarketSnapshot.

    Raises:
        FeedUnavailableError: if the item has no usable current price
    """
    price = _as_float(item.get("current_price"))
    if price is None:
        raise FeedUnavailableError("coingecko", f"no current_price for {symbol}")

    # A sparkline that is not {"price": [...]} is treated as missing
    sparkline = item.get("sparkline_in_7d")
    raw_prices = sparkline.get("price") if isinstance(sparkline, dict) else None
    if not isinstance(raw_prices, list):
        if sparkline is not None:
            logger.debug(f"Malformed sparkline for {symbol}, using current price")
        raw_prices = []
    prices = [p for p in (_as_float(v) for v in raw_prices) if p is not None]

    return MarketSnapshot(
        asset=symbol,
        price=price,
        prices=prices or [price],
        volume=max(0.0, _as_float(item.get("total_volume"), 0.0)),
        change_24h=_as_float(item.get("price_change_percentage_24h"), 0.0),
        as_of=_parse_timestamp(item.get("last_updated")),
        sample_hours=SPARKLINE_SAMPLE_HOURS,
    )


class CoinGeckoClient:
    """CoinGecko public API client."""

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        base_url: str = BASE_URL,
        api_key: str = "",
        timeout: float = 15.0,
        calls_per_minute: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.rate_limiter = RateLimiter(calls_per_minute)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self.api_key:
                headers["x-cg-demo-api-key"] = self.api_key
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting.

        Transport failures, HTTP errors and undecodable bodies are all
        reported as FeedUnavailableError.
        """
        await self.rate_limiter.acquire()
        client = await self._get_client()
        try:
            response = await client.request(method, endpoint, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise FeedUnavailableError("coingecko", f"{endpoint} failed: {e}") from e
        except ValueError as e:
            raise FeedUnavailableError("coingecko", f"{endpoint} returned invalid JSON") from e

    async def get_snapshot(self, coin_id: str, symbol: str) -> MarketSnapshot:
        """
        Fetch price, volume and 7-day hourly sparkline for one coin.

        Args:
            coin_id: CoinGecko id (e.g., "bitcoin")
            symbol: Display symbol stored on the snapshot (e.g., "BTC")

        Returns:
            MarketSnapshot with the sparkline as price history
        """
        params = {
            "vs_currency": "usd",
            "ids": coin_id,
            "sparkline": "true",
            "price_change_percentage": "24h",
        }
        data = await self._request("GET", "/coins/markets", params)

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            raise FeedUnavailableError("coingecko", f"no market data for {coin_id}")

        return parse_market_item(symbol, data[0])

    async def get_global(self) -> tuple[float | None, float | None]:
        """Get (BTC dominance %, total market cap USD)."""
        data = await self._request("GET", "/global")
        try:
            payload = data["data"]
            dominance = _as_float(payload["market_cap_percentage"].get("btc"))
            total_cap = _as_float(payload["total_market_cap"].get("usd"))
        except (KeyError, TypeError, AttributeError) as e:
            raise FeedUnavailableError("coingecko", "malformed /global response") from e
        return dominance, total_cap
