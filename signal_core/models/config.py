"""Strategy configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

# Timeframe to hours mapping
TIMEFRAME_HOURS = {
    "1h": 1,
    "2h": 2,
    "4h": 4,
    "6h": 6,
    "12h": 12,
    "1d": 24,
}


class StrategyConfig(BaseModel):
    """Indicator periods and scoring thresholds."""

    # Indicator periods
    rsi_period: int = Field(default=14, ge=1)
    macd_fast: int = Field(default=12, ge=1)
    macd_slow: int = Field(default=26, ge=1)
    trend_ema_period: int = Field(default=20, ge=1)

    # Volatility bucketing: stdev of returns (%) over the window
    volatility_window: int = Field(default=14, ge=2)
    volatility_thresholds: tuple[float, float, float, float] = (0.5, 1.0, 2.0, 4.0)

    # Minimum rounded confluence for a STRONG label
    strong_confluence: int = Field(default=3, ge=1, le=4)

    timeframes: list[str] = ["1h", "4h", "1d"]

    @field_validator("timeframes")
    @classmethod
    def _known_timeframes(cls, v: list[str]) -> list[str]:
        unknown = [tf for tf in v if tf not in TIMEFRAME_HOURS]
        if unknown:
            raise ValueError(
                f"unknown timeframes {unknown}, expected any of {list(TIMEFRAME_HOURS)}"
            )
        return v
