"""
Tests for the bot coordinator.
"""

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from strikebot.bot import AnalysisTick, SnapshotRefresh, StrikeBot
from strikebot.clients.clob_client import CLOBClient
from strikebot.clients.gamma_client import GammaClient
from strikebot.config import RiskConfig
from strikebot.models import OutcomeSide, Position, TradeAction, Trend
from strikebot.risk.manager import RiskLimits
from strikebot.signals.price_feed import ReferencePriceTracker

UP_KEY = ("cond-1", "up-token")


@pytest.fixture
def mock_tracker():
    tracker = MagicMock(spec=ReferencePriceTracker)
    tracker.current_price.return_value = 100_150.0
    tracker.trend.return_value = Trend.FLAT
    tracker.price_at.return_value = None
    return tracker


@pytest.fixture
def mock_gamma(snapshot):
    client = AsyncMock(spec=GammaClient)
    client.fetch_current_snapshot.return_value = snapshot
    return client


@pytest.fixture
def mock_clob():
    client = AsyncMock(spec=CLOBClient)
    client.get_midpoint.return_value = None
    return client


@pytest.fixture
def make_bot(config, clock, mock_tracker, mock_gamma, mock_clob):
    def factory(cfg=None):
        return StrikeBot(
            cfg or config,
            clock=clock,
            tracker=mock_tracker,
            gamma_client=mock_gamma,
            clob_client=mock_clob
        )
    return factory


class TestSnapshotRefresh:
    """Tests for market polling."""

    @pytest.mark.asyncio
    async def test_stores_snapshot(self, make_bot, snapshot):
        bot = make_bot()

        await bot.refresh_snapshot()

        assert bot.snapshot == snapshot

    @pytest.mark.asyncio
    async def test_no_market_clears_snapshot(self, make_bot, mock_gamma):
        bot = make_bot()
        await bot.refresh_snapshot()
        mock_gamma.fetch_current_snapshot.return_value = None

        assert await bot.refresh_snapshot() is None
        assert bot.snapshot is None

    @pytest.mark.asyncio
    async def test_fills_missing_strike_from_window_open(
        self, make_bot, mock_gamma, mock_tracker, snapshot_factory
    ):
        unresolved = snapshot_factory(threshold_value=0.0)
        mock_gamma.fetch_current_snapshot.return_value = unresolved
        mock_tracker.price_at.return_value = 99_900.0
        bot = make_bot()

        snapshot = await bot.refresh_snapshot()

        mock_tracker.price_at.assert_called_once_with(unresolved.window_start.timestamp())
        assert snapshot.threshold_value == 99_900.0


class TestAnalyze:
    """Tests for the decision and entry cycle."""

    @pytest.mark.asyncio
    async def test_enters_on_buy_decision(self, make_bot):
        bot = make_bot()
        await bot.refresh_snapshot()

        decision = await bot.analyze()

        assert decision.action == TradeAction.BUY_SIDE_A
        position = bot.ledger.get(UP_KEY)
        assert position.shares == pytest.approx(2.5 / 0.40)
        assert position.avg_entry_price == 0.40
        assert position.side == OutcomeSide.A

    @pytest.mark.asyncio
    async def test_acts_only_when_action_changes(self, make_bot, mock_tracker):
        bot = make_bot()
        await bot.refresh_snapshot()

        await bot.analyze()
        await bot.analyze()
        assert bot.get_stats()["entries"] == 1

        mock_tracker.current_price.return_value = 100_050.0
        skip = await bot.analyze()
        assert skip.action == TradeAction.SKIP

        mock_tracker.current_price.return_value = 100_150.0
        await bot.analyze()
        assert bot.get_stats()["entries"] == 2
        assert bot.ledger.get(UP_KEY).shares == pytest.approx(2 * 2.5 / 0.40)

    @pytest.mark.asyncio
    async def test_skips_without_strike(self, make_bot, mock_gamma, snapshot_factory):
        mock_gamma.fetch_current_snapshot.return_value = snapshot_factory(threshold_value=0.0)
        bot = make_bot()
        await bot.refresh_snapshot()

        assert await bot.analyze() is None
        assert len(bot.ledger) == 0

    @pytest.mark.asyncio
    async def test_skips_without_reference_price(self, make_bot, mock_tracker):
        mock_tracker.current_price.return_value = 0.0
        bot = make_bot()
        await bot.refresh_snapshot()

        assert await bot.analyze() is None

    @pytest.mark.asyncio
    async def test_skips_after_window_end(self, make_bot, clock):
        bot = make_bot()
        await bot.refresh_snapshot()
        clock.advance(15 * 60)

        assert await bot.analyze() is None

    @pytest.mark.asyncio
    async def test_kill_switch_blocks_entry(self, make_bot, config):
        bot = make_bot(replace(config, risk=RiskConfig(kill_switch=True, simulation_mode=True)))
        await bot.refresh_snapshot()

        decision = await bot.analyze()

        assert decision.action == TradeAction.BUY_SIDE_A
        assert len(bot.ledger) == 0

    @pytest.mark.asyncio
    async def test_risk_limit_blocks_entry(self, make_bot, config):
        limits = RiskLimits(max_position_size=1.0)
        bot = make_bot(replace(config, risk=RiskConfig(kill_switch=False, simulation_mode=True, limits=limits)))
        await bot.refresh_snapshot()

        await bot.analyze()

        assert len(bot.ledger) == 0
        assert bot.get_stats()["entries_blocked"] == 1

    @pytest.mark.asyncio
    async def test_runs_exit_cycle(self, make_bot, mock_clob, mock_tracker):
        mock_tracker.current_price.return_value = 0.0
        mock_clob.get_midpoint.return_value = 0.90
        bot = make_bot()
        bot.ledger.record_buy(Position(
            market_id=UP_KEY[0],
            outcome_id=UP_KEY[1],
            side=OutcomeSide.A,
            shares=10.0,
            avg_entry_price=0.40
        ))

        await bot.analyze()

        assert bot.ledger.get(UP_KEY).shares == pytest.approx(6.5)
        assert bot.risk_manager.daily_pnl == pytest.approx(3.5 * 0.50)


class TestEventQueue:
    """Tests for the single-worker event loop."""

    @pytest.mark.asyncio
    async def test_duplicate_pending_events_are_dropped(self, make_bot):
        bot = make_bot()

        await bot.post(AnalysisTick())
        await bot.post(AnalysisTick())
        await bot.post(SnapshotRefresh())

        assert bot._events.qsize() == 2

    @pytest.mark.asyncio
    async def test_run_until_shutdown(self, make_bot, mock_tracker, mock_gamma, mock_clob):
        bot = make_bot()

        task = asyncio.create_task(bot.run())
        for _ in range(50):
            await asyncio.sleep(0)
        bot.request_shutdown()
        await asyncio.wait_for(task, timeout=5)

        assert mock_gamma.fetch_current_snapshot.await_count >= 1
        mock_tracker.stop.assert_awaited_once()
        mock_gamma.close.assert_awaited_once()
        mock_clob.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self, make_bot, mock_tracker):
        bot = make_bot()

        await bot.shutdown()
        await bot.shutdown()

        mock_tracker.stop.assert_awaited_once()


class TestStats:
    """Tests for the statistics report."""

    def test_stats_include_risk_and_feed(self, make_bot, mock_tracker):
        mock_tracker.get_summary.return_value = {"symbol": "BTCUSDT", "current_price": 100_150.0}
        bot = make_bot()
        bot.ledger.record_buy(Position(
            market_id=UP_KEY[0],
            outcome_id=UP_KEY[1],
            side=OutcomeSide.A,
            shares=10.0,
            avg_entry_price=0.40
        ))

        stats = bot.get_stats()

        assert stats["risk"]["open_positions"] == 1
        assert stats["feed"]["current_price"] == 100_150.0
