"""Console and JSON rendering of the signal board."""

from __future__ import annotations

from typing import Any

import orjson

from signal_core.models import ConfluenceSignal, MarketContext
from ticker.services import AssetStatus


def signal_to_dict(signal: ConfluenceSignal) -> dict[str, Any]:
    """Flatten a signal for JSON output."""
    return {
        "asset": signal.asset,
        "signal": signal.label.value,
        "confidence": signal.confidence,
        "price": signal.price,
        "bullish": signal.bullish_count,
        "bearish": signal.bearish_count,
        "avg_volatility": round(signal.avg_volatility, 4),
        "risk_reward": round(signal.risk_reward, 4),
        "timestamp": signal.timestamp.isoformat(),
        "timeframes": [
            {
                "timeframe": tf.timeframe,
                "trend": tf.trend.value,
                "rsi": round(tf.indicators.rsi, 2),
                "macd": round(tf.indicators.macd, 6),
                "confluence": tf.confluence,
                "volatility": tf.volatility,
                "momentum": tf.momentum.value,
            }
            for tf in signal.timeframes
        ],
    }


def board_to_json(
    signals: dict[str, ConfluenceSignal],
    statuses: dict[str, AssetStatus],
    context: MarketContext | None = None,
) -> bytes:
    payload = {
        "signals": [signal_to_dict(s) for s in signals.values()],
        "errors": {a: s.error for a, s in statuses.items() if not s.ok},
        "market_context": context.model_dump(mode="json") if context else None,
    }
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2)


def format_board(
    signals: dict[str, ConfluenceSignal],
    statuses: dict[str, AssetStatus],
    context: MarketContext | None = None,
) -> str:
    """Format the latest signals as a console table."""
    lines = ["", "=" * 78]
    lines.append(
        f"  {'Asset':<7} {'Price':>14} {'Signal':<12} {'Conf':>4} "
        f"{'Bull':>4} {'Bear':>4} {'Vol':>5} {'R/R':>6}  Timeframes"
    )
    lines.append("-" * 78)

    for asset, status in statuses.items():
        signal = signals.get(asset)
        if signal is None:
            lines.append(f"  {asset:<7} {'-':>14} {'UNAVAILABLE':<12}  {status.error or ''}")
            continue
        tfs = " ".join(
            f"{tf.timeframe}:{'+' if tf.is_bullish else '-'}{tf.indicators.rsi:.0f}"
            for tf in signal.timeframes
        )
        stale = "" if status.ok else " (stale)"
        lines.append(
            f"  {asset:<7} {signal.price:>14,.4f} {signal.label.value:<12} "
            f"{signal.confidence:>4} {signal.bullish_count:>4} {signal.bearish_count:>4} "
            f"{signal.avg_volatility:>5.2f} {signal.risk_reward:>6.2f}  {tfs}{stale}"
        )

    if context is not None:
        lines.append("-" * 78)
        if context.fear_greed is not None:
            lines.append(
                f"  Fear & Greed: {context.fear_greed} {context.fear_greed_label} "
                f"({context.fear_greed_hint}) | {context.macro_signal}"
            )
        if context.btc_dominance is not None:
            lines.append(
                f"  BTC dominance: {context.btc_dominance:.1f}% {context.dominance_label}"
            )
        if context.total_market_cap is not None:
            lines.append(f"  Total market cap: ${context.total_market_cap / 1e12:.2f}T")

    lines.append("=" * 78)
    return "\n".join(lines)
