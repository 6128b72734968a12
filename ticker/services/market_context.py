"""Market context service: Fear & Greed index plus CoinGecko global stats."""

import asyncio
import logging

from signal_core.market_context import build_market_context
from signal_core.models import MarketContext
from ticker.clients import CoinGeckoClient, FearGreedClient, FeedUnavailableError

logger = logging.getLogger(__name__)


class MarketContextService:
    """Loads and classifies market-wide readings.

    Either source may fail on its own; its readings are then left empty.
    Only when both fail is the load reported as FeedUnavailableError.
    """

    def __init__(self, coingecko: CoinGeckoClient, fear_greed: FearGreedClient):
        self.coingecko = coingecko
        self.fear_greed = fear_greed

    async def load(self) -> MarketContext:
        fng_result, global_result = await asyncio.gather(
            self.fear_greed.get_index(),
            self.coingecko.get_global(),
            return_exceptions=True,
        )

        fear_greed = None
        if isinstance(fng_result, FeedUnavailableError):
            logger.warning(f"Fear & Greed unavailable: {fng_result}")
        elif isinstance(fng_result, BaseException):
            raise fng_result
        else:
            fear_greed = fng_result

        dominance = total_cap = None
        if isinstance(global_result, FeedUnavailableError):
            logger.warning(f"Global market data unavailable: {global_result}")
        elif isinstance(global_result, BaseException):
            raise global_result
        else:
            dominance, total_cap = global_result

        if fear_greed is None and dominance is None and total_cap is None:
            raise FeedUnavailableError("market_context", "all sources failed")

        return build_market_context(fear_greed, dominance, total_cap)
