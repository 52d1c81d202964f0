"""
Shared fixtures for strikebot tests.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from strikebot.config import (
    Config,
    LogConfig,
    PolymarketConfig,
    ReferenceFeedConfig,
    RiskConfig,
    ScheduleConfig,
    WalletConfig,
)
from strikebot.models import MarketSnapshot
from strikebot.risk.exit_policy import ExitConfig
from strikebot.risk.manager import RiskLimits
from strikebot.strategies.decision import DecisionConfig

WINDOW_START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
WINDOW_END = datetime(2025, 1, 1, 12, 15, tzinfo=timezone.utc)


class FakeClock:
    """Clock whose time only moves when told to (or when something sleeps)."""

    def __init__(self, start: float = WINDOW_START.timestamp()):
        self.current = start
        self.sleeps = []

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += seconds
        await asyncio.sleep(0)


def make_snapshot(**overrides) -> MarketSnapshot:
    fields = dict(
        market_id="cond-1",
        threshold_value=100_000.0,
        outcome_a_id="up-token",
        outcome_b_id="down-token",
        outcome_a_price=0.40,
        outcome_b_price=0.60,
        window_start=WINDOW_START,
        window_end=WINDOW_END,
        title="Bitcoin Up or Down",
        slug="btc-updown-15m-1735732800",
    )
    fields.update(overrides)
    return MarketSnapshot(**fields)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def snapshot():
    return make_snapshot()


@pytest.fixture
def config():
    """Simulation-mode config with no credentials."""
    return Config(
        polymarket=PolymarketConfig(api_key="", api_secret="", api_passphrase=""),
        wallet=WalletConfig(private_key="", funder_address=""),
        feed=ReferenceFeedConfig(),
        decision=DecisionConfig(),
        exits=ExitConfig(),
        risk=RiskConfig(kill_switch=False, simulation_mode=True, limits=RiskLimits()),
        schedule=ScheduleConfig(),
        logging=LogConfig(log_level="DEBUG", json_logging=False),
    )


@pytest.fixture
def snapshot_factory():
    return make_snapshot
