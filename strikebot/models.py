"""
Shared data models for the strike trading bot.
"""
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Trend(Enum):
    """Short-term direction of the reference price."""
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class OutcomeSide(Enum):
    """Outcome side of a binary market. A is the yes-like (Up) side."""
    A = "A"
    B = "B"

    @property
    def favoured_by(self) -> Trend:
        """Trend that moves the reference price towards this side winning."""
        return Trend.UP if self is OutcomeSide.A else Trend.DOWN


class TradeAction(Enum):
    """Action produced by the decision engine."""
    SKIP = "SKIP"
    BUY_SIDE_A = "BUY_SIDE_A"
    BUY_SIDE_B = "BUY_SIDE_B"

    @property
    def side(self) -> Optional[OutcomeSide]:
        if self is TradeAction.BUY_SIDE_A:
            return OutcomeSide.A
        if self is TradeAction.BUY_SIDE_B:
            return OutcomeSide.B
        return None


class OrderSide(Enum):
    """Order side enum."""
    BUY = "BUY"
    SELL = "SELL"


class OrderValidity(Enum):
    """Order validity mode, valued by the CLOB order type it maps to."""
    IMMEDIATE_OR_CANCEL_FULL_FILL = "FOK"
    GOOD_TILL_CANCELLED = "GTC"


@dataclass(frozen=True)
class PricePoint:
    """Single reference price observation."""
    price: float
    observed_at: float


@dataclass(frozen=True)
class MarketSnapshot:
    """Point-in-time view of the active binary market."""
    market_id: str
    threshold_value: float
    outcome_a_id: str
    outcome_b_id: str
    outcome_a_price: float
    outcome_b_price: float
    window_start: datetime
    window_end: datetime
    title: str = ""
    slug: str = ""

    def token_for(self, side: OutcomeSide) -> str:
        return self.outcome_a_id if side is OutcomeSide.A else self.outcome_b_id

    def price_for(self, side: OutcomeSide) -> float:
        return self.outcome_a_price if side is OutcomeSide.A else self.outcome_b_price


@dataclass(frozen=True)
class TradeDecision:
    """Result of a single decision engine evaluation."""
    action: TradeAction
    reason: str
    confidence: int = 0
    suggested_amount: float = 0.0
    risk_reward: float = 0.0

    @property
    def is_trade(self) -> bool:
        return self.action is not TradeAction.SKIP


@dataclass(frozen=True)
class Position:
    """Open position in a single outcome token."""
    market_id: str
    outcome_id: str
    side: OutcomeSide
    shares: float
    avg_entry_price: float
    current_price: float = 0.0
    unrealized_pnl: float = 0.0
    unrealized_pnl_percent: float = 0.0
    opened_at: float = field(default_factory=time.time)

    @property
    def key(self) -> tuple[str, str]:
        return (self.market_id, self.outcome_id)

    @property
    def market_value(self) -> float:
        return self.shares * self.current_price

    @property
    def cost_basis(self) -> float:
        return self.shares * self.avg_entry_price


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one call into the execution gateway."""
    success: bool
    order_id: Optional[str] = None
    actual_price: Optional[float] = None
    actual_amount: Optional[float] = None
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def failure(cls, error: str) -> "ExecutionResult":
        return cls(success=False, error=error)
