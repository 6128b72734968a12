"""Technical indicators for signal generation.

All functions take a price series ordered oldest first and return the value
for the most recent sample. Short series never raise: each indicator
degrades to a documented neutral value instead.
"""

from typing import Sequence

import numpy as np

from signal_core.models import IndicatorSnapshot, SignalLabel

NEUTRAL_RSI = 50.0


def compute_rsi(prices: Sequence[float], period: int = 14) -> float:
    """
    Calculate the Relative Strength Index over the last ``period`` changes.

    Gains and losses are plain sums of the most recent ``period`` price
    differences (no Wilder smoothing).

    Args:
        prices: Price series, oldest first
        period: Number of price changes to look back

    Returns:
        RSI in [0, 100]. 50 when fewer than ``period + 1`` prices are
        available, 100 when there were no losses in the window.
    """
    if len(prices) < period + 1:
        return NEUTRAL_RSI

    window = np.asarray(prices[-(period + 1):], dtype=np.float64)
    deltas = np.diff(window)

    gains = float(deltas[deltas > 0].sum())
    losses = float(-deltas[deltas < 0].sum())

    if losses == 0:
        return 100.0

    rs = gains / losses
    return 100.0 - 100.0 / (1.0 + rs)


def ema(prices: Sequence[float], period: int) -> float:
    """
    Calculate the latest Exponential Moving Average value.

    Seeded with the simple average of the first ``period`` prices, then
    ``ema = price * k + ema * (1 - k)`` with ``k = 2 / (period + 1)``.

    With fewer than ``period`` prices the seed is the average of what is
    available and no smoothing step runs. An empty series returns 0.
    """
    if len(prices) == 0:
        return 0.0

    arr = np.asarray(prices, dtype=np.float64)
    if len(arr) < period:
        return float(np.mean(arr))

    multiplier = 2.0 / (period + 1)
    result = float(np.mean(arr[:period]))
    for value in arr[period:]:
        result = float(value) * multiplier + result * (1 - multiplier)

    return result


def compute_macd(prices: Sequence[float], fast: int = 12, slow: int = 26) -> float:
    """
    Calculate the MACD line: EMA(fast) - EMA(slow).

    Positive values mean upward momentum. Series shorter than ``slow``
    use the degraded EMA described in :func:`ema`.
    """
    return ema(prices, fast) - ema(prices, slow)


def return_volatility(prices: Sequence[float], window: int = 14) -> float:
    """
    Standard deviation of simple returns over the last ``window`` changes, in percent.

    Returns 0 for fewer than two prices.
    """
    if len(prices) < 2:
        return 0.0

    arr = np.asarray(prices[-(window + 1):], dtype=np.float64)
    previous = arr[:-1]
    # Zero prices would divide by zero; treat those steps as flat
    returns = np.divide(
        np.diff(arr),
        previous,
        out=np.zeros(len(previous), dtype=np.float64),
        where=previous != 0,
    )
    return float(np.std(returns) * 100.0)


def classify_momentum(rsi: float, macd: float) -> SignalLabel:
    """
    Label a single series from its RSI and MACD alone.

    Oversold RSI with positive MACD is a buy, overbought RSI with negative
    MACD is a sell. First match wins.
    """
    if rsi < 30 and macd > 0:
        return SignalLabel.STRONG_BUY
    if rsi < 40 and macd > 0:
        return SignalLabel.BUY
    if rsi > 70 and macd < 0:
        return SignalLabel.STRONG_SELL
    if rsi > 60 and macd < 0:
        return SignalLabel.SELL
    return SignalLabel.HOLD


class IndicatorCalculator:
    """Calculator for the indicators needed by the timeframe analyzer."""

    def __init__(
        self,
        rsi_period: int = 14,
        macd_fast: int = 12,
        macd_slow: int = 26,
    ):
        self.rsi_period = rsi_period
        self.macd_fast = macd_fast
        self.macd_slow = macd_slow

    def snapshot(self, prices: Sequence[float]) -> IndicatorSnapshot:
        """Calculate RSI and MACD for the latest sample."""
        return IndicatorSnapshot(
            rsi=compute_rsi(prices, self.rsi_period),
            macd=compute_macd(prices, self.macd_fast, self.macd_slow),
        )
