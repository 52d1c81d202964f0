"""
Staged exit management for open positions.

Every monitoring cycle each position is priced, marked to market and run
through the exit rules:
- Profit tiers (first match wins): +200% sells 40%, +100% sells 35%, +50% sells 25%
- Stop loss: -20% or worse sells everything
- Near certainty: side A at >= 0.95 or side B at <= 0.05 sells everything

The near-certainty rule is checked independently of the tiers, so both can
fire in one cycle. Each sale is sized against the shares held at the moment
it runs, which means the second one never oversells.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from ..execution.gateway import ExecutionGateway
from ..execution.ledger import LedgerError, PositionKey, PositionLedger, SellReceipt, pnl_fields
from ..models import OrderSide, OutcomeSide, Position
from ..utils.logger import get_logger, TradeLogger

logger = get_logger("exits")
trade_logger = TradeLogger()

STOP_LOSS_REASON = "stop loss"
NEAR_CERTAINTY_REASON = "near certainty"


class PriceSource(Protocol):
    async def get_midpoint(self, token_id: str) -> Optional[float]:
        ...


@dataclass(frozen=True)
class ExitConfig:
    """Exit thresholds. Tiers are (min_pnl_percent, sell_percent), highest first."""
    profit_tiers: tuple[tuple[float, float], ...] = ((200.0, 40.0), (100.0, 35.0), (50.0, 25.0))
    stop_loss_percent: float = -20.0
    near_certainty_high: float = 0.95
    near_certainty_low: float = 0.05


@dataclass(frozen=True)
class ExitInstruction:
    sell_percent: float
    reason: str


class ExitPolicy:
    """
    Applies exit rules to every position in the ledger.

    Not safe to run concurrently with other ledger writers; the bot calls
    run_cycle from its single worker.
    """

    def __init__(
        self,
        ledger: PositionLedger,
        gateway: ExecutionGateway,
        price_source: PriceSource,
        config: Optional[ExitConfig] = None,
        on_realized: Optional[Callable[[float], None]] = None
    ):
        self.ledger = ledger
        self.gateway = gateway
        self.price_source = price_source
        self.config = config or ExitConfig()
        self.on_realized = on_realized

        self._cycles = 0
        self._sells = 0

    def evaluate(self, position: Position, current_price: float) -> list[ExitInstruction]:
        """Exit instructions for a position at a price. Pure."""
        instructions = []
        _, pnl_percent = pnl_fields(position.avg_entry_price, position.shares, current_price)

        for threshold, sell_percent in self.config.profit_tiers:
            if pnl_percent >= threshold:
                instructions.append(ExitInstruction(sell_percent, f"{threshold:.0f}% profit target"))
                break
        else:
            if pnl_percent <= self.config.stop_loss_percent:
                instructions.append(ExitInstruction(100.0, STOP_LOSS_REASON))

        if position.side is OutcomeSide.A and current_price >= self.config.near_certainty_high:
            instructions.append(ExitInstruction(100.0, NEAR_CERTAINTY_REASON))
        elif position.side is OutcomeSide.B and current_price <= self.config.near_certainty_low:
            instructions.append(ExitInstruction(100.0, NEAR_CERTAINTY_REASON))

        return instructions

    async def run_cycle(self) -> int:
        """
        Evaluate every open position once.

        Returns:
            Number of successful sells
        """
        self._cycles += 1
        sold = 0

        for position in self.ledger.open_positions():
            try:
                price = await self.price_source.get_midpoint(position.outcome_id)
            except Exception as e:
                logger.warning(f"Price fetch failed for {position.outcome_id}: {e}")
                continue

            if not price or price <= 0:
                logger.debug(f"No price for {position.outcome_id}, skipping this cycle")
                continue

            if position.key not in self.ledger:
                continue

            marked = self.ledger.mark_to_market(position.key, price)

            for instruction in self.evaluate(marked, price):
                if position.key not in self.ledger:
                    logger.debug(f"{instruction.reason} skipped, position already closed")
                    break
                receipt = await self.scale_out(position.key, instruction.sell_percent, price, instruction.reason)
                if receipt is not None:
                    sold += 1

        return sold

    async def scale_out(
        self,
        key: PositionKey,
        sell_percent: float,
        price: float,
        reason: str
    ) -> Optional[SellReceipt]:
        """
        Sell a percentage of the shares currently held.

        Returns:
            SellReceipt on success, None if the order failed
        """
        position = self.ledger.get(key)
        if position is None:
            return None

        if sell_percent >= 100:
            shares_to_sell = position.shares
        else:
            shares_to_sell = min(position.shares, position.shares * sell_percent / 100)
        proceeds = shares_to_sell * price

        result = await self.gateway.submit(
            position.outcome_id,
            OrderSide.SELL,
            shares_to_sell,
            price=price
        )
        if not result.success:
            logger.warning(
                f"Scale out failed for {key[0]}/{key[1]}: {result.error}",
                extra={"reason": reason, "sell_percent": sell_percent}
            )
            return None

        try:
            receipt = self.ledger.record_sell(key, shares_to_sell, price)
        except LedgerError as e:
            # Position changed while the order was in flight
            logger.error(f"Sell filled but ledger rejected it: {e}")
            return None

        self._sells += 1
        trade_logger.scale_out(key[0], key[1], sell_percent, shares_to_sell, proceeds, reason)

        if self.on_realized is not None:
            self.on_realized(receipt.realized_pnl)
        if receipt.closed:
            trade_logger.position_closed(key[0], key[1], receipt.realized_pnl)

        return receipt

    def get_stats(self) -> dict:
        return {
            "cycles": self._cycles,
            "sells": self._sells,
            "open_positions": len(self.ledger),
        }
