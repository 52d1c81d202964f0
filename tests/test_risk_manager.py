"""
Tests for pre-trade risk limits.
"""

from datetime import date

import pytest

from strikebot.execution.ledger import LedgerSummary
from strikebot.risk.manager import RiskLimits, RiskManager


def summary(count=0, total_cost=0.0) -> LedgerSummary:
    return LedgerSummary(
        count=count,
        total_unrealized_pnl=0.0,
        total_value=total_cost,
        total_cost=total_cost,
        realized_pnl=0.0
    )


class FakeCalendar:
    def __init__(self):
        self.today = date(2025, 1, 1)

    def __call__(self):
        return self.today


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def manager(calendar):
    return RiskManager(RiskLimits(), today=calendar)


class TestCanTrade:
    """Tests for entry checks."""

    def test_allows_within_limits(self, manager):
        result = manager.can_trade(5.0, summary())

        assert result.allowed

    def test_blocks_oversized_entry(self, manager):
        result = manager.can_trade(10.5, summary())

        assert not result.allowed
        assert "too large" in result.reason

    def test_blocks_when_max_positions_open(self, manager):
        result = manager.can_trade(5.0, summary(count=5, total_cost=20.0))

        assert not result.allowed
        assert "Max open positions" in result.reason

    def test_adding_to_existing_position_ignores_count(self, manager):
        result = manager.can_trade(5.0, summary(count=5, total_cost=20.0), adds_position=False)

        assert result.allowed

    def test_blocks_excess_exposure(self, manager):
        result = manager.can_trade(5.0, summary(count=2, total_cost=46.0))

        assert not result.allowed
        assert "Exposure" in result.reason


class TestDailyLoss:
    """Tests for the daily loss latch."""

    def test_blocks_after_daily_loss(self, manager):
        manager.record_pnl(-12.0)
        manager.record_pnl(-8.0)

        result = manager.can_trade(1.0, summary())

        assert not result.allowed
        assert "Daily loss" in result.reason

    def test_profit_offsets_loss(self, manager):
        manager.record_pnl(-15.0)
        manager.record_pnl(6.0)

        assert manager.can_trade(1.0, summary()).allowed

    def test_resets_on_new_day(self, manager, calendar):
        manager.record_pnl(-25.0)
        assert not manager.can_trade(1.0, summary()).allowed

        calendar.today = date(2025, 1, 2)

        assert manager.daily_pnl == 0.0
        assert manager.can_trade(1.0, summary()).allowed
