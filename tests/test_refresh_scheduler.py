"""Tests for the refresh scheduler."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from signal_core.models import MarketContext, MarketSnapshot
from ticker.clients import FeedUnavailableError
from ticker.services import EngineState, RefreshScheduler
from ticker.storage import TradeLog
from ticker.watchlist import AssetEntry


ASSETS = [AssetEntry(id="bitcoin", symbol="BTC"), AssetEntry(id="ethereum", symbol="ETH")]


class FakeFeed:
    """In-memory price feed with switchable failures and blocking."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.failing: set[str] = set()
        self.broken: set[str] = set()
        self.block = False
        self.release = asyncio.Event()
        self.calls = 0

    async def get_snapshot(self, coin_id: str, symbol: str) -> MarketSnapshot:
        self.calls += 1
        if self.block:
            await self.release.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if symbol in self.failing:
            raise FeedUnavailableError("fake", f"{coin_id} down")
        if symbol in self.broken:
            raise AttributeError("'list' object has no attribute 'get'")
        prices = [100.0 + i for i in range(48)]
        return MarketSnapshot(
            asset=symbol,
            price=prices[-1],
            prices=prices,
            as_of=datetime.now(timezone.utc),
        )


async def wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def make_scheduler(feed: FakeFeed, **kwargs) -> RefreshScheduler:
    state = EngineState(trade_log=TradeLog())
    return RefreshScheduler(feed=feed, assets=ASSETS, state=state, **kwargs)


class TestRefreshCycle:
    """Tests for a single refresh cycle."""

    @pytest.mark.asyncio
    async def test_refresh_now_produces_signals(self):
        scheduler = make_scheduler(FakeFeed())

        statuses = await scheduler.refresh_now()

        assert set(statuses) == {"BTC", "ETH"}
        assert all(s.ok for s in statuses.values())
        assert set(scheduler.state.last_signals) == {"BTC", "ETH"}
        assert scheduler.cycles == 1

    @pytest.mark.asyncio
    async def test_feed_failure_is_isolated(self):
        feed = FakeFeed()
        feed.failing.add("ETH")
        scheduler = make_scheduler(feed)

        statuses = await scheduler.refresh_now()

        assert statuses["BTC"].ok
        assert not statuses["ETH"].ok
        assert "ethereum down" in statuses["ETH"].error
        assert "BTC" in scheduler.state.last_signals
        assert "ETH" not in scheduler.state.last_signals

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_signal(self):
        feed = FakeFeed()
        scheduler = make_scheduler(feed)
        await scheduler.refresh_now()
        previous = scheduler.state.last_signals["ETH"]

        feed.failing.add("ETH")
        await scheduler.refresh_now()

        assert scheduler.state.last_signals["ETH"] is previous
        assert not scheduler.state.statuses["ETH"].ok
        assert scheduler.state.last_signals["BTC"] is not None

    @pytest.mark.asyncio
    async def test_unexpected_error_is_isolated(self):
        """A malformed payload for one asset does not cost the others their signal."""
        feed = FakeFeed()
        feed.broken.add("ETH")
        scheduler = make_scheduler(feed)

        statuses = await scheduler.refresh_now()

        assert statuses["BTC"].ok
        assert not statuses["ETH"].ok
        assert "AttributeError" in statuses["ETH"].error
        assert set(scheduler.state.last_signals) == {"BTC"}
        assert set(scheduler.state.statuses) == {"BTC", "ETH"}

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_previous_signal(self):
        feed = FakeFeed()
        scheduler = make_scheduler(feed)
        await scheduler.refresh_now()
        previous = scheduler.state.last_signals["ETH"]

        feed.broken.add("ETH")
        await scheduler.refresh_now()

        assert scheduler.state.last_signals["ETH"] is previous
        assert not scheduler.state.statuses["ETH"].ok

    @pytest.mark.asyncio
    async def test_overlapping_refresh_is_skipped(self):
        feed = FakeFeed()
        feed.block = True
        scheduler = make_scheduler(feed)

        in_flight = asyncio.create_task(scheduler.refresh_now())
        await wait_until(lambda: scheduler.is_busy)

        assert await scheduler.refresh_now() is None
        assert scheduler.skipped_ticks == 1

        feed.release.set()
        assert await in_flight is not None
        assert scheduler.cycles == 1

    @pytest.mark.asyncio
    async def test_signals_are_not_logged_by_default(self):
        scheduler = make_scheduler(FakeFeed())

        await scheduler.refresh_now()

        assert len(scheduler.state.trade_log) == 0

    @pytest.mark.asyncio
    async def test_auto_log(self):
        scheduler = make_scheduler(FakeFeed(), auto_log=True)

        await scheduler.refresh_now()

        assert {e.asset for e in scheduler.state.trade_log.entries} == {"BTC", "ETH"}

    @pytest.mark.asyncio
    async def test_log_signal(self):
        scheduler = make_scheduler(FakeFeed())
        await scheduler.refresh_now()

        entry = await scheduler.log_signal("BTC")

        assert entry is not None
        assert entry.asset == "BTC"
        assert entry.signal == scheduler.state.last_signals["BTC"].label
        assert await scheduler.log_signal("DOGE") is None
        assert len(scheduler.state.trade_log) == 1

    @pytest.mark.asyncio
    async def test_callbacks(self):
        scheduler = make_scheduler(FakeFeed())
        broken = AsyncMock(side_effect=RuntimeError("boom"))
        callback = AsyncMock()
        scheduler.on_signal(broken)
        scheduler.on_signal(callback)

        await scheduler.refresh_now()

        assert callback.await_count == 2
        assert broken.await_count == 2

        scheduler.off_signal(callback)
        await scheduler.refresh_now()
        assert callback.await_count == 2

    @pytest.mark.asyncio
    async def test_market_context_cadence(self):
        context = MarketContext(fear_greed=50)
        loader = AsyncMock(return_value=context)
        scheduler = make_scheduler(FakeFeed(), context_loader=loader, market_context_every=2)

        for _ in range(3):
            await scheduler.refresh_now()

        # Cycles 1 and 3
        assert loader.await_count == 2
        assert scheduler.state.market_context is context

    @pytest.mark.asyncio
    async def test_market_context_failure_is_tolerated(self):
        loader = AsyncMock(side_effect=FeedUnavailableError("market_context", "down"))
        scheduler = make_scheduler(FakeFeed(), context_loader=loader, market_context_every=1)

        statuses = await scheduler.refresh_now()

        assert statuses is not None
        assert scheduler.state.market_context is None


class TestSchedulerLifecycle:
    """Tests for start/stop behavior."""

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            make_scheduler(FakeFeed(), interval=0)

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self):
        scheduler = make_scheduler(FakeFeed())

        await scheduler.stop()
        await scheduler.stop()

        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_start_runs_periodically(self):
        scheduler = make_scheduler(FakeFeed(), interval=0.05)

        await scheduler.start()
        await scheduler.start()  # already running
        await wait_until(lambda: scheduler.cycles >= 2)
        await scheduler.stop()

        assert not scheduler.is_running
        cycles = scheduler.cycles
        await asyncio.sleep(0.15)
        assert scheduler.cycles == cycles

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        scheduler = make_scheduler(FakeFeed(), interval=0.05)
        await scheduler.start()

        await scheduler.stop()
        await scheduler.stop()

        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_results_after_stop_are_discarded(self):
        feed = FakeFeed()
        scheduler = make_scheduler(feed, interval=10.0)
        await scheduler.start()
        await wait_until(lambda: scheduler.cycles == 1 and not scheduler.is_busy)
        before = dict(scheduler.state.last_signals)

        feed.block = True
        manual = asyncio.create_task(scheduler.refresh_now())
        await wait_until(lambda: scheduler.is_busy)
        await scheduler.stop()
        feed.release.set()

        assert await manual is None
        assert scheduler.state.last_signals == before
        assert all(
            scheduler.state.last_signals[a] is before[a] for a in before
        )

    @pytest.mark.asyncio
    async def test_stop_during_notification_halts_side_effects(self):
        """Once stopped, the rest of the cycle neither logs nor notifies."""
        context_loader = AsyncMock(return_value=MarketContext(fear_greed=50))
        scheduler = make_scheduler(
            FakeFeed(),
            interval=10.0,
            auto_log=True,
            context_loader=context_loader,
            market_context_every=1,
        )
        await scheduler.start()
        await wait_until(lambda: scheduler.cycles == 1 and not scheduler.is_busy)
        logged_before = len(scheduler.state.trade_log)
        loads_before = context_loader.await_count

        notified: list[str] = []

        async def stop_on_first(signal) -> None:
            notified.append(signal.asset)
            await scheduler.stop()

        scheduler.on_signal(stop_on_first)
        await scheduler.refresh_now()

        assert notified == ["BTC"]
        assert len(scheduler.state.trade_log) == logged_before + 1
        assert context_loader.await_count == loads_before
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_overrun_ticks_are_skipped(self):
        feed = FakeFeed(delay=0.12)
        scheduler = make_scheduler(feed, interval=0.03)

        await scheduler.start()
        await asyncio.sleep(0.3)
        await scheduler.stop()

        assert scheduler.skipped_ticks > 0
        # Never more than one cycle in flight, so never more cycles than fit
        assert scheduler.cycles <= 3
