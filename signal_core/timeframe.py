"""Per-timeframe analysis of a price series.

A base series (e.g. hourly sparkline samples) is resampled into each
configured timeframe by keeping every N-th sample counted back from the
latest one, so every timeframe ends on the most recent price.

For each timeframe the analyzer produces:
- RSI and MACD of the resampled series
- Trend: Bullish iff price > EMA reference (a tie is Bearish)
- Confluence (1-4): 1 + number of signals agreeing with the trend
  (RSI side of 50, MACD sign, direction of the last price change)
- Volatility (1-5): bucket of the stdev of recent returns
"""

import logging
from typing import Sequence

from signal_core.indicators import (
    IndicatorCalculator,
    NEUTRAL_RSI,
    classify_momentum,
    ema,
    return_volatility,
)
from signal_core.models import (
    IndicatorSnapshot,
    MarketSnapshot,
    StrategyConfig,
    TIMEFRAME_HOURS,
    TimeframeAnalysis,
    Trend,
)

logger = logging.getLogger(__name__)

MIN_CONFLUENCE = 1
MAX_CONFLUENCE = 4
MIN_VOLATILITY = 1
MAX_VOLATILITY = 5


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def resample(prices: Sequence[float], step: int) -> list[float]:
    """
    Keep every ``step``-th price counted back from the most recent one.

    Args:
        prices: Base series, oldest first
        step: Timeframe length in base samples (values below 1 act as 1)

    Returns:
        Resampled series, oldest first, always ending on ``prices[-1]``
    """
    step = max(1, step)
    return list(prices)[::-1][::step][::-1]


def timeframe_step(timeframe: str, sample_hours: int = 1) -> int:
    """Get the number of base samples in one bar of ``timeframe``."""
    return max(1, TIMEFRAME_HOURS[timeframe] // max(1, sample_hours))


def classify_trend(price: float, ema_reference: float) -> Trend:
    """Bullish iff price is strictly above the reference."""
    if price > ema_reference:
        return Trend.BULLISH
    return Trend.BEARISH


def score_confluence(
    trend: Trend,
    indicators: IndicatorSnapshot,
    last_change: float,
) -> int:
    """Score how many signals agree with ``trend``, on a 1-4 scale."""
    if trend == Trend.BULLISH:
        agreeing = [
            indicators.rsi > NEUTRAL_RSI,
            indicators.macd > 0,
            last_change > 0,
        ]
    else:
        agreeing = [
            indicators.rsi < NEUTRAL_RSI,
            indicators.macd < 0,
            last_change < 0,
        ]
    return _clamp(MIN_CONFLUENCE + sum(agreeing), MIN_CONFLUENCE, MAX_CONFLUENCE)


def bucket_volatility(
    volatility_pct: float,
    thresholds: Sequence[float] = (0.5, 1.0, 2.0, 4.0),
) -> int:
    """Map a return stdev (%) onto the 1-5 volatility scale."""
    bucket = MIN_VOLATILITY + sum(1 for t in thresholds if volatility_pct > t)
    return _clamp(bucket, MIN_VOLATILITY, MAX_VOLATILITY)


class TimeframeAnalyzer:
    """Builds TimeframeAnalysis snapshots from price series."""

    def __init__(self, config: StrategyConfig | None = None):
        self.config = config or StrategyConfig()
        self.calculator = IndicatorCalculator(
            rsi_period=self.config.rsi_period,
            macd_fast=self.config.macd_fast,
            macd_slow=self.config.macd_slow,
        )

    def analyze(
        self,
        timeframe: str,
        prices: Sequence[float],
        ema_reference: float | None = None,
        volume: float = 0.0,
    ) -> TimeframeAnalysis:
        """
        Analyze one timeframe's price series.

        Args:
            timeframe: Timeframe label (e.g. "4h")
            prices: Series for this timeframe, oldest first
            ema_reference: Trend baseline; defaults to EMA(trend_ema_period)
            volume: Traded volume reported by the feed

        Returns:
            TimeframeAnalysis for the latest sample
        """
        indicators = self.calculator.snapshot(prices)

        price = float(prices[-1]) if len(prices) else 0.0
        if ema_reference is None:
            ema_reference = ema(prices, self.config.trend_ema_period)

        trend = classify_trend(price, ema_reference)
        last_change = float(prices[-1] - prices[-2]) if len(prices) >= 2 else 0.0

        confluence = score_confluence(trend, indicators, last_change)
        volatility = bucket_volatility(
            return_volatility(prices, self.config.volatility_window),
            self.config.volatility_thresholds,
        )

        return TimeframeAnalysis(
            timeframe=timeframe,
            indicators=indicators,
            trend=trend,
            confluence=confluence,
            volatility=volatility,
            volume=max(0.0, volume),
            price=price,
            ema_reference=ema_reference,
            momentum=classify_momentum(indicators.rsi, indicators.macd),
        )

    def analyze_snapshot(self, snapshot: MarketSnapshot) -> list[TimeframeAnalysis]:
        """Analyze every configured timeframe of one market snapshot."""
        base = snapshot.series()
        analyses = []

        for timeframe in self.config.timeframes:
            step = timeframe_step(timeframe, snapshot.sample_hours)
            series = resample(base, step)
            analysis = self.analyze(timeframe, series, volume=snapshot.volume)
            logger.debug(
                f"{snapshot.asset} {timeframe}: {len(series)} samples, "
                f"rsi={analysis.indicators.rsi:.1f} macd={analysis.indicators.macd:.4f} "
                f"trend={analysis.trend.value} confluence={analysis.confluence}"
            )
            analyses.append(analysis)

        return analyses
