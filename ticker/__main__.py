"""CLI entry point for the confluence ticker.

Usage:
    python -m ticker --once
    python -m ticker --assets BTC,ETH --interval 60
    python -m ticker --log-signals --export trading_history.csv
    python -m ticker --once --json
"""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

from signal_core.pipeline import SignalPipeline
from ticker.clients import CoinGeckoClient, FearGreedClient
from ticker.config import get_settings
from ticker.report import board_to_json, format_board
from ticker.services import EngineState, MarketContextService, RefreshScheduler
from ticker.storage import TradeLog
from ticker.watchlist import load_watchlist

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Multi-timeframe RSI/MACD confluence signals for crypto assets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m ticker --once
  python -m ticker --assets BTC,ETH --interval 60
  python -m ticker --log-signals --export trading_history.csv
        """,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single refresh cycle and exit",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Refresh interval in seconds (default: from settings)",
    )
    parser.add_argument(
        "--assets",
        type=str,
        default=None,
        help="Comma-separated symbols to watch (default: whole watchlist)",
    )
    parser.add_argument(
        "--watchlist",
        type=str,
        default=None,
        help="Path to watchlist.yaml",
    )
    parser.add_argument(
        "--log-signals",
        action="store_true",
        help="Record every fresh signal in the trade log",
    )
    parser.add_argument(
        "--export",
        type=str,
        default=None,
        help="Write the trade log as CSV to this path on exit",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the signal board as JSON instead of a table",
    )
    parser.add_argument(
        "--no-context",
        action="store_true",
        help="Skip Fear & Greed / dominance readings",
    )
    return parser.parse_args(argv)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def _print_board(state: EngineState, as_json: bool) -> None:
    if as_json:
        sys.stdout.write(
            board_to_json(state.last_signals, state.statuses, state.market_context).decode()
            + "\n"
        )
    else:
        print(format_board(state.last_signals, state.statuses, state.market_context))


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()

    watchlist = load_watchlist(args.watchlist or settings.watchlist_path)
    if args.assets:
        watchlist = watchlist.select(args.assets.split(","))
    assets = watchlist.enabled_assets()
    if not assets:
        logger.error("No assets to watch")
        return 1

    coingecko = CoinGeckoClient(
        base_url=settings.coingecko_base_url,
        api_key=settings.coingecko_api_key,
        timeout=settings.request_timeout,
        calls_per_minute=settings.calls_per_minute,
    )
    fear_greed = FearGreedClient(url=settings.fear_greed_url, timeout=settings.request_timeout)
    context_service = MarketContextService(coingecko, fear_greed)

    state = EngineState(trade_log=TradeLog(settings.trade_log_capacity))
    scheduler = RefreshScheduler(
        feed=coingecko,
        assets=assets,
        state=state,
        pipeline=SignalPipeline(settings.strategy_config()),
        interval=(
            args.interval if args.interval is not None else settings.refresh_interval_seconds
        ),
        auto_log=args.log_signals or settings.auto_log,
        context_loader=None if args.no_context else context_service.load,
        market_context_every=settings.market_context_every,
    )

    async def on_signal(sig) -> None:
        logger.info(
            f"{sig.asset}: {sig.label.value} confidence={sig.confidence} "
            f"rr={sig.risk_reward:.2f}"
        )

    scheduler.on_signal(on_signal)

    try:
        if args.once:
            await scheduler.refresh_now()
            _print_board(state, args.json)
        else:
            stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                # Not supported on Windows; Ctrl-C still cancels asyncio.run there
                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(sig, stop_event.set)

            await scheduler.start()
            last_printed = 0
            while not stop_event.is_set():
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stop_event.wait(), timeout=1.0)
                if scheduler.cycles != last_printed and not scheduler.is_busy:
                    last_printed = scheduler.cycles
                    _print_board(state, args.json)

            logger.info("Shutting down...")
            await scheduler.stop()
    finally:
        await coingecko.close()
        await fear_greed.close()
        if args.export:
            state.trade_log.write_csv(args.export)

    failed = [a for a, s in state.statuses.items() if not s.ok]
    return 2 if args.once and failed and len(failed) == len(assets) else 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        _configure_logging(get_settings().log_level)
        return asyncio.run(run(args))
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
