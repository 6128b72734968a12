"""Refresh scheduler: periodic re-evaluation of every watched asset.

Each cycle:
1. Fetch a market snapshot for every asset concurrently
2. Run the signal pipeline per asset (indicators -> timeframes -> confluence)
3. Store fresh signals and per-asset statuses in the EngineState
4. Notify registered callbacks (and the trade log when auto_log is on)

Scheduling guarantees:
- At most one cycle is in flight. Ticks run at a fixed rate; ticks missed
  because a cycle overran are skipped with a warning, never queued.
- A feed failure (or any other per-asset error) only affects its own asset
  for the current tick: the previous signal is kept and the status records
  the error.
- stop() cancels the loop and bumps the generation counter; results of a
  cycle that started before stop() are discarded.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol

from signal_core.models import ConfluenceSignal, MarketContext, MarketSnapshot, TradeLogEntry
from signal_core.pipeline import SignalPipeline
from ticker.clients import FeedUnavailableError
from ticker.storage import TradeLog
from ticker.watchlist import AssetEntry

logger = logging.getLogger(__name__)

# Type aliases for callbacks
SignalCallback = Callable[[ConfluenceSignal], Awaitable[None]]
ContextLoader = Callable[[], Awaitable[MarketContext]]


class PriceFeed(Protocol):
    """Source of market snapshots (e.g. CoinGeckoClient)."""

    async def get_snapshot(self, coin_id: str, symbol: str) -> MarketSnapshot:
        ...


@dataclass
class AssetStatus:
    """Outcome of the latest evaluation attempt for one asset."""

    asset: str
    ok: bool
    error: str | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class EngineState:
    """Pipeline state owned by the scheduler."""

    trade_log: TradeLog
    last_signals: dict[str, ConfluenceSignal] = field(default_factory=dict)
    statuses: dict[str, AssetStatus] = field(default_factory=dict)
    market_context: MarketContext | None = None


class RefreshScheduler:
    """Drives the signal pipeline on a fixed interval."""

    def __init__(
        self,
        feed: PriceFeed,
        assets: list[AssetEntry],
        state: EngineState,
        pipeline: SignalPipeline | None = None,
        interval: float = 30.0,
        auto_log: bool = False,
        context_loader: ContextLoader | None = None,
        market_context_every: int = 0,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.feed = feed
        self.assets = list(assets)
        self.state = state
        self.pipeline = pipeline or SignalPipeline()
        self.interval = interval
        self.auto_log = auto_log
        self.context_loader = context_loader
        self.market_context_every = market_context_every

        self._task: asyncio.Task | None = None
        self._cycle_lock = asyncio.Lock()
        self._generation = 0
        self._cycles = 0
        self._skipped_ticks = 0
        self._signal_callbacks: list[SignalCallback] = []

    def on_signal(self, callback: SignalCallback) -> None:
        """Register callback for fresh signals."""
        self._signal_callbacks.append(callback)

    def off_signal(self, callback: SignalCallback) -> None:
        """Unregister a signal callback."""
        if callback in self._signal_callbacks:
            self._signal_callbacks.remove(callback)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_busy(self) -> bool:
        """Check if a cycle is in flight."""
        return self._cycle_lock.locked()

    @property
    def cycles(self) -> int:
        """Number of completed or started cycles."""
        return self._cycles

    @property
    def skipped_ticks(self) -> int:
        return self._skipped_ticks

    async def start(self) -> None:
        """Start the refresh loop. The first cycle runs immediately."""
        if self.is_running:
            logger.warning("Refresh scheduler already running")
            return

        self._generation += 1
        self._task = asyncio.create_task(self._run(self._generation))
        logger.info(
            f"Refresh scheduler started: {len(self.assets)} assets every {self.interval}s"
        )

    async def stop(self) -> None:
        """Stop the loop. No-op when not started."""
        if self._task is None:
            return

        # Any cycle still in flight now belongs to a stale generation
        self._generation += 1
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Refresh scheduler stopped")

    async def refresh_now(self) -> dict[str, AssetStatus] | None:
        """Run one cycle right away.

        Returns:
            Per-asset statuses, or None if a cycle was already in flight
            (the request is skipped) or its results were discarded.
        """
        return await self._cycle(self._generation)

    async def log_signal(self, asset: str) -> TradeLogEntry | None:
        """Record the latest signal of ``asset`` in the trade log.

        Returns:
            The new entry, or None if the asset has no signal yet
        """
        signal = self.state.last_signals.get(asset)
        if signal is None:
            logger.warning(f"No signal to log for {asset}")
            return None
        return await self.state.trade_log.log_signal(signal)

    async def _run(self, generation: int) -> None:
        """Fixed-rate loop; overrun ticks are skipped."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while True:
            try:
                await self._cycle(generation)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Refresh cycle error: {e}")

            next_tick += self.interval
            now = loop.time()
            if now > next_tick:
                missed = int((now - next_tick) // self.interval) + 1
                self._skipped_ticks += missed
                logger.warning(
                    f"Refresh cycle overran the {self.interval}s interval, "
                    f"skipping {missed} tick(s)"
                )
                next_tick += missed * self.interval

            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    async def _cycle(self, generation: int) -> dict[str, AssetStatus] | None:
        """Run one fetch-and-compute cycle unless one is already in flight."""
        if self._cycle_lock.locked():
            self._skipped_ticks += 1
            logger.warning("Refresh cycle still in flight, skipping tick")
            return None

        async with self._cycle_lock:
            self._cycles += 1
            started = datetime.now(timezone.utc)
            logger.info(f"--- Refresh cycle {self._cycles} started ---")

            outcomes = await asyncio.gather(
                *(self._evaluate(asset) for asset in self.assets),
                return_exceptions=True,
            )

            if generation != self._generation:
                logger.info("Scheduler stopped during cycle, discarding results")
                return None

            results = [
                self._isolate(asset, outcome)
                for asset, outcome in zip(self.assets, outcomes)
            ]

            fresh: list[ConfluenceSignal] = []
            for status, signal in results:
                self.state.statuses[status.asset] = status
                if signal is not None:
                    self.state.last_signals[signal.asset] = signal
                    fresh.append(signal)

            for signal in fresh:
                if generation != self._generation:
                    logger.info("Scheduler stopped during cycle, skipping remaining signals")
                    break
                if self.auto_log:
                    await self.state.trade_log.log_signal(signal)
                await self._notify(signal)

            if generation == self._generation and self._should_refresh_context():
                await self._refresh_context(generation)

            elapsed = (datetime.now(timezone.utc) - started).total_seconds()
            failed = sum(1 for status, _ in results if not status.ok)
            logger.info(
                f"--- Refresh cycle {self._cycles} finished in {elapsed:.2f}s: "
                f"{len(fresh)} signals, {failed} failed ---"
            )
            return {status.asset: status for status, _ in results}

    async def _evaluate(self, asset: AssetEntry) -> tuple[AssetStatus, ConfluenceSignal | None]:
        """Fetch and evaluate one asset; feed failures become a status."""
        try:
            snapshot = await self.feed.get_snapshot(asset.id, asset.symbol)
        except FeedUnavailableError as e:
            logger.warning(f"Feed unavailable for {asset.symbol}: {e}")
            return AssetStatus(asset=asset.symbol, ok=False, error=str(e)), None

        signal = self.pipeline.evaluate(snapshot)
        logger.debug(
            f"{asset.symbol}: {signal.label.value} "
            f"(bull={signal.bullish_count} bear={signal.bearish_count} "
            f"confluence={signal.avg_confluence} rr={signal.risk_reward:.2f})"
        )
        return AssetStatus(asset=asset.symbol, ok=True), signal

    @staticmethod
    def _isolate(
        asset: AssetEntry,
        outcome: tuple[AssetStatus, ConfluenceSignal | None] | BaseException,
    ) -> tuple[AssetStatus, ConfluenceSignal | None]:
        """Turn an unexpected per-asset exception into a failed status."""
        if not isinstance(outcome, BaseException):
            return outcome
        if not isinstance(outcome, Exception):
            # CancelledError and friends still propagate
            raise outcome
        logger.error(f"Evaluation failed for {asset.symbol}: {outcome!r}")
        error = f"{type(outcome).__name__}: {outcome}"
        return AssetStatus(asset=asset.symbol, ok=False, error=error), None

    async def _notify(self, signal: ConfluenceSignal) -> None:
        for callback in self._signal_callbacks:
            try:
                await callback(signal)
            except Exception as e:
                logger.error(f"Signal callback error: {e}")

    def _should_refresh_context(self) -> bool:
        if self.context_loader is None or self.market_context_every <= 0:
            return False
        return (self._cycles - 1) % self.market_context_every == 0

    async def _refresh_context(self, generation: int) -> None:
        try:
            context = await self.context_loader()
        except FeedUnavailableError as e:
            logger.warning(f"Market context unavailable: {e}")
            return
        if generation == self._generation:
            self.state.market_context = context
