"""
Paired trade execution: a primary order followed by a dependent hedge.

The hedge only goes out if the primary succeeds. The two legs fail
independently, so a successful primary says nothing about the hedge.
"""
from dataclasses import dataclass
from typing import Optional

from ..models import ExecutionResult, OrderSide, OrderValidity, OutcomeSide, Position
from ..utils.logger import get_logger, TradeLogger
from .gateway import ExecutionGateway, shares_for_notional
from .ledger import PositionLedger

logger = get_logger("hedge")
trade_logger = TradeLogger()

HEDGE_CANCELLED = "primary failed, hedge cancelled"


@dataclass(frozen=True)
class OrderRequest:
    """One leg of a paired trade."""
    market_id: str
    token_id: str
    side: OutcomeSide
    order_side: OrderSide
    amount: float           # USDC for BUY, shares for SELL
    price: float            # Quote the leg was sized at
    reason: str = ""
    validity: OrderValidity = OrderValidity.IMMEDIATE_OR_CANCEL_FULL_FILL


@dataclass(frozen=True)
class PairedResult:
    """Results of both legs."""
    primary: ExecutionResult
    hedge: ExecutionResult

    @property
    def fully_executed(self) -> bool:
        return self.primary.success and self.hedge.success


class PairedTradeCoordinator:
    """Sequences a primary order and its hedge through the gateway."""

    def __init__(self, gateway: ExecutionGateway, ledger: Optional[PositionLedger] = None):
        self.gateway = gateway
        self.ledger = ledger

    async def execute(self, primary: OrderRequest, hedge: OrderRequest) -> PairedResult:
        logger.info(
            "Paired trade",
            extra={
                "primary_token": primary.token_id,
                "primary_side": primary.order_side.value,
                "hedge_token": hedge.token_id,
                "hedge_side": hedge.order_side.value
            }
        )

        primary_result = await self._execute_leg(primary)

        if not primary_result.success:
            logger.warning(f"Primary leg failed ({primary_result.error}), hedge cancelled")
            return PairedResult(
                primary=primary_result,
                hedge=ExecutionResult.failure(HEDGE_CANCELLED)
            )

        hedge_result = await self._execute_leg(hedge)
        if not hedge_result.success:
            logger.warning(f"Hedge leg failed after primary filled: {hedge_result.error}")

        return PairedResult(primary=primary_result, hedge=hedge_result)

    async def _execute_leg(self, request: OrderRequest) -> ExecutionResult:
        key = (request.market_id, request.token_id)
        tracks_sell = self.ledger is not None and request.order_side is OrderSide.SELL and key in self.ledger

        if tracks_sell:
            held = self.ledger.get(key).shares
            if request.amount > held:
                return ExecutionResult.failure(
                    f"Sell of {request.amount:.4f} shares exceeds {held:.4f} held"
                )

        result = await self.gateway.submit(
            request.token_id,
            request.order_side,
            request.amount,
            request.validity,
            price=request.price
        )

        if result.success and tracks_sell:
            self.ledger.record_sell(key, request.amount, request.price)

        if result.success and self.ledger is not None and request.order_side is OrderSide.BUY:
            position = self.ledger.record_buy(Position(
                market_id=request.market_id,
                outcome_id=request.token_id,
                side=request.side,
                shares=shares_for_notional(request.amount, request.price),
                avg_entry_price=request.price,
                current_price=request.price
            ))
            trade_logger.position_opened(
                position.market_id,
                position.outcome_id,
                position.shares,
                position.avg_entry_price
            )

        return result
