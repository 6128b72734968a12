"""Market-wide context classification.

Turns raw macro readings (Fear & Greed index, BTC dominance) into labels.
Thresholds are inclusive upper bounds:

Fear & Greed:  <=25 Extreme Fear, <=45 Fear, <=55 Neutral, <=75 Greed,
               otherwise Extreme Greed
BTC dominance: >60 BTC-Season, <45 Alt-Season, otherwise Mixed
"""

from datetime import datetime, timezone

from signal_core.models import MarketContext


def classify_fear_greed(value: int) -> tuple[str, str]:
    """Get (label, hint) for a Fear & Greed index value."""
    if value <= 25:
        return "Extreme Fear", "Buying opportunity"
    if value <= 45:
        return "Fear", "Cautious"
    if value <= 55:
        return "Neutral", "Wait"
    if value <= 75:
        return "Greed", "Caution"
    return "Extreme Greed", "Warning"


def classify_dominance(value: float) -> str:
    """Get the market season label for a BTC dominance percentage."""
    if value > 60:
        return "BTC-Season"
    if value < 45:
        return "Alt-Season"
    return "Mixed"


def macro_signal(fear_greed: int) -> str:
    """Overall macro hint from the Fear & Greed index."""
    if fear_greed < 30:
        return "BUYING OPPORTUNITY"
    if fear_greed > 75:
        return "CAUTION: overheated"
    return "NEUTRAL: wait for confluence"


def build_market_context(
    fear_greed: int | None,
    btc_dominance: float | None,
    total_market_cap: float | None,
    updated_at: datetime | None = None,
) -> MarketContext:
    """Classify raw readings; missing readings leave their labels empty."""
    fg_label = fg_hint = signal = None
    if fear_greed is not None:
        fg_label, fg_hint = classify_fear_greed(fear_greed)
        signal = macro_signal(fear_greed)

    return MarketContext(
        fear_greed=fear_greed,
        btc_dominance=btc_dominance,
        total_market_cap=total_market_cap,
        fear_greed_label=fg_label,
        fear_greed_hint=fg_hint,
        dominance_label=classify_dominance(btc_dominance) if btc_dominance is not None else None,
        macro_signal=signal,
        updated_at=updated_at or datetime.now(timezone.utc),
    )
