"""Business services."""

from ticker.services.market_context import MarketContextService
from ticker.services.refresh_scheduler import (
    AssetStatus,
    EngineState,
    PriceFeed,
    RefreshScheduler,
)

__all__ = [
    "MarketContextService",
    "AssetStatus",
    "EngineState",
    "PriceFeed",
    "RefreshScheduler",
]
