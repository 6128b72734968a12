"""API clients."""

from ticker.clients.coingecko import CoinGeckoClient, parse_market_item
from ticker.clients.errors import FeedUnavailableError
from ticker.clients.fear_greed import FearGreedClient
from ticker.clients.rate_limit import RateLimiter

__all__ = [
    "CoinGeckoClient",
    "parse_market_item",
    "FeedUnavailableError",
    "FearGreedClient",
    "RateLimiter",
]
