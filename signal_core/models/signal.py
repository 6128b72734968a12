"""Indicator, timeframe and signal data models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Trend(str, Enum):
    """Trend of a single timeframe relative to its EMA reference."""

    BULLISH = "Bullish"
    BEARISH = "Bearish"


class SignalLabel(str, Enum):
    """Discrete trading recommendation."""

    STRONG_BUY = "STRONG BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"
    STRONG_SELL = "STRONG SELL"

    @property
    def is_buy(self) -> bool:
        return self in (SignalLabel.STRONG_BUY, SignalLabel.BUY)

    @property
    def is_sell(self) -> bool:
        return self in (SignalLabel.STRONG_SELL, SignalLabel.SELL)


class IndicatorSnapshot(BaseModel):
    """RSI and MACD values computed from one price series."""

    model_config = ConfigDict(frozen=True)

    rsi: float = Field(ge=0, le=100)
    macd: float


class TimeframeAnalysis(BaseModel):
    """Snapshot of one (asset, timeframe) pair at one evaluation tick."""

    model_config = ConfigDict(frozen=True)

    timeframe: str
    indicators: IndicatorSnapshot
    trend: Trend
    confluence: int = Field(ge=1, le=4)
    volatility: int = Field(ge=1, le=5)
    volume: float = Field(default=0.0, ge=0)
    price: float
    ema_reference: float
    momentum: SignalLabel = SignalLabel.HOLD  # RSI/MACD label of this timeframe alone

    @property
    def is_bullish(self) -> bool:
        return self.trend == Trend.BULLISH


class ConfluenceSignal(BaseModel):
    """Overall signal for one asset, aggregated across timeframes."""

    model_config = ConfigDict(frozen=True)

    asset: str
    label: SignalLabel
    bullish_count: int = Field(ge=0)
    bearish_count: int = Field(ge=0)
    avg_confluence: int = Field(ge=1, le=4)
    avg_volatility: float = Field(ge=0)
    risk_reward: float
    timestamp: datetime
    price: float = 0.0
    timeframes: list[TimeframeAnalysis] = Field(default_factory=list)

    @property
    def confidence(self) -> int:
        """Confidence exposed to callers (1-4), not a probability."""
        return self.avg_confluence
