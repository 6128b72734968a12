"""Confluence aggregation across timeframes.

Combines the TimeframeAnalysis of every configured timeframe of one asset
into a single ConfluenceSignal. Stateless: recomputed on every tick.
"""

import math
from datetime import datetime, timezone
from typing import Sequence

from signal_core.models import ConfluenceSignal, SignalLabel, TimeframeAnalysis, Trend


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


def select_label(
    bullish_count: int,
    bearish_count: int,
    avg_confluence: int,
    strong_confluence: int = 3,
) -> SignalLabel:
    """
    Pick the signal label. Rules are checked in order, first match wins.

    A direction tie is always HOLD, whatever the confluence.
    """
    if bullish_count > bearish_count and avg_confluence >= strong_confluence:
        return SignalLabel.STRONG_BUY
    if bullish_count > bearish_count:
        return SignalLabel.BUY
    if bearish_count > bullish_count and avg_confluence >= strong_confluence:
        return SignalLabel.STRONG_SELL
    if bearish_count > bullish_count:
        return SignalLabel.SELL
    return SignalLabel.HOLD


class ConfluenceAggregator:
    """Aggregates per-timeframe analyses into one signal."""

    def __init__(self, strong_confluence: int = 3):
        self.strong_confluence = strong_confluence

    def aggregate(
        self,
        asset: str,
        analyses: Sequence[TimeframeAnalysis],
        timestamp: datetime | None = None,
        price: float | None = None,
    ) -> ConfluenceSignal:
        """
        Build the confluence signal for one asset at one tick.

        Args:
            asset: Asset symbol
            analyses: One analysis per configured timeframe
            timestamp: Evaluation time (defaults to now, UTC)
            price: Current price (defaults to the first analysis' price)

        Returns:
            ConfluenceSignal. An empty set of analyses yields HOLD with
            confluence 1 and zero volatility.
        """
        if timestamp is None:
            timestamp = datetime.now(timezone.utc)

        bullish_count = sum(1 for a in analyses if a.trend == Trend.BULLISH)
        bearish_count = sum(1 for a in analyses if a.trend == Trend.BEARISH)

        if analyses:
            mean_confluence = sum(a.confluence for a in analyses) / len(analyses)
            avg_volatility = sum(a.volatility for a in analyses) / len(analyses)
        else:
            mean_confluence = 1.0
            avg_volatility = 0.0

        avg_confluence = max(1, min(4, round_half_up(mean_confluence)))

        # Zero volatility would divide by zero; fall back to the confluence itself
        if avg_volatility == 0:
            risk_reward = float(avg_confluence)
        else:
            risk_reward = avg_confluence / (avg_volatility * 2)

        if price is None:
            price = analyses[0].price if analyses else 0.0

        return ConfluenceSignal(
            asset=asset,
            label=select_label(
                bullish_count, bearish_count, avg_confluence, self.strong_confluence
            ),
            bullish_count=bullish_count,
            bearish_count=bearish_count,
            avg_confluence=avg_confluence,
            avg_volatility=avg_volatility,
            risk_reward=risk_reward,
            timestamp=timestamp,
            price=price,
            timeframes=list(analyses),
        )
