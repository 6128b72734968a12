"""Data models."""

from signal_core.models.config import StrategyConfig, TIMEFRAME_HOURS
from signal_core.models.market import MarketContext, MarketSnapshot
from signal_core.models.signal import (
    ConfluenceSignal,
    IndicatorSnapshot,
    SignalLabel,
    TimeframeAnalysis,
    Trend,
)
from signal_core.models.trade import TradeLogEntry, generate_entry_id

__all__ = [
    "StrategyConfig",
    "TIMEFRAME_HOURS",
    "MarketContext",
    "MarketSnapshot",
    "ConfluenceSignal",
    "IndicatorSnapshot",
    "SignalLabel",
    "TimeframeAnalysis",
    "Trend",
    "TradeLogEntry",
    "generate_entry_id",
]
