"""Technical indicators (pure math, no I/O)."""

from signal_core.indicators.indicators import (
    NEUTRAL_RSI,
    compute_rsi,
    compute_macd,
    ema,
    return_volatility,
    classify_momentum,
    IndicatorCalculator,
)

__all__ = [
    "NEUTRAL_RSI",
    "compute_rsi",
    "compute_macd",
    "ema",
    "return_volatility",
    "classify_momentum",
    "IndicatorCalculator",
]
