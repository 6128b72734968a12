"""Market data models supplied by the price feed."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MarketSnapshot(BaseModel):
    """Price history and sidecar fields for one asset at one point in time.

    ``prices`` is ordered oldest first and sampled every ``sample_hours``.
    When the feed has no history it degrades to the single point ``[price]``.
    """

    model_config = ConfigDict(frozen=True)

    asset: str
    price: float
    prices: list[float] = Field(default_factory=list)
    volume: float = Field(default=0.0, ge=0)
    change_24h: float = 0.0
    as_of: datetime
    sample_hours: int = Field(default=1, ge=1)

    @field_validator("prices", mode="before")
    @classmethod
    def _drop_missing(cls, v: Any) -> Any:
        # Sparkline arrays occasionally contain nulls
        if v is None:
            return []
        if not isinstance(v, (list, tuple)):
            raise ValueError(f"prices must be a list, got {type(v).__name__}")
        return [p for p in v if p is not None]

    def series(self) -> list[float]:
        """Get the price series, falling back to the current price."""
        return list(self.prices) if self.prices else [self.price]


class MarketContext(BaseModel):
    """Market-wide macro readings with their classifications."""

    model_config = ConfigDict(frozen=True)

    fear_greed: int | None = None
    btc_dominance: float | None = None
    total_market_cap: float | None = None
    fear_greed_label: str | None = None
    fear_greed_hint: str | None = None
    dominance_label: str | None = None
    macro_signal: str | None = None
    updated_at: datetime | None = None
