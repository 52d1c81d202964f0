"""
Pre-trade Risk Management

Gates new entries only; exits always go through.
- Maximum size per entry
- Maximum number of open positions
- Maximum total exposure at cost
- Daily realised loss limit (UTC day), latching until rollover
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from ..execution.ledger import LedgerSummary
from ..utils.logger import get_logger

logger = get_logger("risk")


@dataclass
class RiskLimits:
    """Risk limit configuration."""
    max_position_size: float = 10.0
    max_open_positions: int = 5
    max_total_exposure: float = 50.0
    max_daily_loss: float = 20.0


@dataclass
class RiskCheckResult:
    """Result of risk check."""
    allowed: bool
    reason: str


def _utc_today() -> Any:
    return datetime.now(timezone.utc).date()


class RiskManager:
    """Entry gate backed by simple hard limits."""

    def __init__(
        self,
        limits: Optional[RiskLimits] = None,
        today: Callable[[], Any] = _utc_today
    ):
        self.limits = limits or RiskLimits()
        self._today = today

        self._daily_pnl: float = 0.0
        self._daily_pnl_date = None
        self._trades_today = 0

    @property
    def daily_pnl(self) -> float:
        self._check_daily_reset()
        return self._daily_pnl

    @property
    def daily_limit_hit(self) -> bool:
        return self.daily_pnl <= -self.limits.max_daily_loss

    def _check_daily_reset(self):
        """Reset daily P&L at UTC midnight."""
        today = self._today()
        if self._daily_pnl_date != today:
            self._daily_pnl = 0.0
            self._trades_today = 0
            self._daily_pnl_date = today

    def record_pnl(self, pnl: float) -> None:
        """Record realised P&L from a sell."""
        self._check_daily_reset()
        self._daily_pnl += pnl
        self._trades_today += 1

        if self._daily_pnl <= -self.limits.max_daily_loss:
            logger.warning(
                "Daily loss limit reached, new entries blocked",
                extra={"daily_pnl": self._daily_pnl, "limit": self.limits.max_daily_loss}
            )

    def can_trade(self, amount: float, summary: LedgerSummary, adds_position: bool = True) -> RiskCheckResult:
        """
        Check whether a new entry of `amount` USDC is allowed.

        Args:
            amount: Proposed USDC notional
            summary: Current ledger summary
            adds_position: False when the entry merges into an existing position
        """
        if self.daily_limit_hit:
            return RiskCheckResult(
                allowed=False,
                reason=f"Daily loss limit reached (${self._daily_pnl:.2f})"
            )

        if amount > self.limits.max_position_size:
            return RiskCheckResult(
                allowed=False,
                reason=f"Position too large (${amount:.2f} > ${self.limits.max_position_size:.2f} max)"
            )

        if adds_position and summary.count >= self.limits.max_open_positions:
            return RiskCheckResult(
                allowed=False,
                reason=f"Max open positions ({self.limits.max_open_positions})"
            )

        if summary.total_cost + amount > self.limits.max_total_exposure:
            return RiskCheckResult(
                allowed=False,
                reason=(
                    f"Exposure too high (${summary.total_cost + amount:.2f} > "
                    f"${self.limits.max_total_exposure:.2f})"
                )
            )

        return RiskCheckResult(allowed=True, reason="All checks passed")

    def get_risk_summary(self, summary: LedgerSummary) -> Dict[str, Any]:
        """Get summary of current risk state."""
        return {
            "daily_pnl": f"${self.daily_pnl:+.2f}",
            "daily_limit_used": f"{max(0.0, -self._daily_pnl) / self.limits.max_daily_loss * 100:.0f}%",
            "sells_today": self._trades_today,
            "open_positions": summary.count,
            "max_positions": self.limits.max_open_positions,
            "total_exposure": f"${summary.total_cost:.2f}",
            "max_exposure": f"${self.limits.max_total_exposure:.2f}",
        }
