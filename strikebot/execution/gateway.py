"""
Execution gateway.

Single entry point for every order. In simulation mode no exchange call
is made and a successful result is fabricated, so downstream accounting
runs exactly as it would live. Orders are never retried here.
"""
import uuid
from typing import Optional

from ..clients.clob_client import CLOBClient
from ..models import ExecutionResult, OrderSide, OrderValidity
from ..utils.logger import TradeLogger

trade_logger = TradeLogger()


def shares_for_notional(amount: float, price: float) -> float:
    """Share count bought or sold for `amount` USDC at `price`."""
    if price <= 0:
        raise ValueError(f"Price must be positive, got {price}")
    return amount / price


class ExecutionGateway:
    """
    Submits orders to the CLOB or simulates them.

    Amount semantics follow the exchange: BUY amounts are USDC notional,
    SELL amounts are share counts.
    """

    def __init__(
        self,
        clob_client: Optional[CLOBClient] = None,
        simulation_mode: bool = True
    ):
        if not simulation_mode and clob_client is None:
            raise ValueError("Live mode requires a CLOB client")
        self.clob_client = clob_client
        self.simulation_mode = simulation_mode

        self._submitted = 0
        self._failed = 0

    async def submit(
        self,
        token_id: str,
        side: OrderSide,
        amount: float,
        validity: OrderValidity = OrderValidity.IMMEDIATE_OR_CANCEL_FULL_FILL,
        price: Optional[float] = None
    ) -> ExecutionResult:
        """
        Submit one order.

        Args:
            token_id: Outcome token to trade
            side: BUY or SELL
            amount: USDC notional (BUY) or share count (SELL)
            validity: Order validity mode
            price: Reference price the caller sized the order at

        Returns:
            ExecutionResult (failures are returned, not raised)
        """
        if amount <= 0:
            self._failed += 1
            error = f"Order amount must be positive, got {amount}"
            trade_logger.order_failed(token_id, side.value, amount, error)
            return ExecutionResult.failure(error)

        if self.simulation_mode:
            result = ExecutionResult(
                success=True,
                order_id=f"SIM-{uuid.uuid4().hex[:12]}",
                actual_price=price,
                actual_amount=amount
            )
            self._submitted += 1
            trade_logger.order_submitted(result.order_id, token_id, side.value, amount, simulated=True)
            return result

        try:
            order = await self.clob_client.place_market_order(token_id, side, amount, validity)
        except Exception as e:
            self._failed += 1
            trade_logger.order_failed(token_id, side.value, amount, str(e))
            return ExecutionResult.failure(str(e))

        if not order.success:
            self._failed += 1
            trade_logger.order_failed(token_id, side.value, amount, order.error)
            return ExecutionResult(success=False, error=order.error or order.status)

        self._submitted += 1
        trade_logger.order_submitted(order.order_id, token_id, side.value, amount, simulated=False)
        return ExecutionResult(
            success=True,
            order_id=order.order_id,
            actual_price=price,
            actual_amount=amount
        )

    def get_stats(self) -> dict:
        return {
            "submitted": self._submitted,
            "failed": self._failed,
            "simulation_mode": self.simulation_mode,
        }
