"""Evaluation pipeline: market snapshot -> timeframe analyses -> signal.

Pure business logic. The live refresh loop calls this once per asset per
tick; the backing analyzer and aggregator hold configuration only.
"""

from signal_core.aggregator import ConfluenceAggregator
from signal_core.models import ConfluenceSignal, MarketSnapshot, StrategyConfig
from signal_core.timeframe import TimeframeAnalyzer


class SignalPipeline:
    """Runs the indicator, timeframe and confluence steps for one asset."""

    def __init__(self, config: StrategyConfig | None = None):
        self.config = config or StrategyConfig()
        self.analyzer = TimeframeAnalyzer(self.config)
        self.aggregator = ConfluenceAggregator(self.config.strong_confluence)

    def evaluate(self, snapshot: MarketSnapshot) -> ConfluenceSignal:
        """Evaluate one asset's snapshot into a confluence signal."""
        analyses = self.analyzer.analyze_snapshot(snapshot)
        return self.aggregator.aggregate(
            asset=snapshot.asset,
            analyses=analyses,
            timestamp=snapshot.as_of,
            price=snapshot.price,
        )


def evaluate_asset(
    snapshot: MarketSnapshot,
    config: StrategyConfig | None = None,
) -> ConfluenceSignal:
    """Evaluate a snapshot with a one-off pipeline."""
    return SignalPipeline(config).evaluate(snapshot)
