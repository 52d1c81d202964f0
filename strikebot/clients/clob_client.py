"""
CLOB client wrapper for Polymarket order operations.
Wraps py-clob-client with async support and error handling.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional
import time

import aiohttp
from py_clob_client.client import ClobClient
from py_clob_client.clob_types import ApiCreds, MarketOrderArgs, OrderType
from py_clob_client.order_builder.constants import BUY, SELL

from ..models import OrderSide, OrderValidity
from ..utils.logger import get_logger

logger = get_logger("clob")

ORDER_TYPES = {
    OrderValidity.IMMEDIATE_OR_CANCEL_FULL_FILL: OrderType.FOK,
    OrderValidity.GOOD_TILL_CANCELLED: OrderType.GTC,
}


@dataclass
class OrderResult:
    """Result of an order placement."""
    order_id: str
    success: bool
    status: str
    error: Optional[str] = None
    timestamp: float = 0.0


class CLOBClient:
    """
    Async wrapper for Polymarket CLOB client.

    Handles market order placement and price queries.
    Uses the official py-clob-client under the hood for signing.
    """

    BASE_URL = "https://clob.polymarket.com"

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        api_passphrase: str,
        private_key: str,
        chain_id: int = 137,  # Polygon Mainnet
        funder_address: Optional[str] = None,
        signature_type: int = 1,
        host: str = BASE_URL
    ):
        """
        Initialize CLOB client.

        Args:
            api_key: Polymarket API key
            api_secret: Polymarket API secret
            api_passphrase: Polymarket API passphrase
            private_key: Wallet private key
            chain_id: Blockchain chain ID (137 for Polygon)
            funder_address: Proxy wallet holding the funds, if any
            signature_type: py-clob-client signature type
            host: CLOB REST endpoint
        """
        self.api_key = api_key
        self.api_secret = api_secret
        self.api_passphrase = api_passphrase
        self.private_key = private_key
        self.chain_id = chain_id
        self.funder_address = funder_address
        self.signature_type = signature_type
        self.host = host.rstrip("/")

        self._client: Optional[ClobClient] = None
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def can_trade(self) -> bool:
        return self._client is not None

    async def initialize(self, trading: bool = True) -> None:
        """
        Initialize HTTP session and, when trading, the signing client.

        Args:
            trading: Build the signing client (needs credentials)
        """
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=5))

        if trading and not self._client:
            logger.info("Initializing CLOB client")
            # Client construction may do blocking I/O
            loop = asyncio.get_running_loop()
            self._client = await loop.run_in_executor(None, self._create_client)
            logger.info("CLOB client initialized successfully")

    def _create_client(self) -> ClobClient:
        """Create the underlying py-clob-client instance."""
        return ClobClient(
            host=self.host,
            key=self.private_key,
            chain_id=self.chain_id,
            signature_type=self.signature_type,
            funder=self.funder_address or None,
            creds=ApiCreds(
                api_key=self.api_key,
                api_secret=self.api_secret,
                api_passphrase=self.api_passphrase
            )
        )

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def place_market_order(
        self,
        token_id: str,
        side: OrderSide,
        amount: float,
        validity: OrderValidity = OrderValidity.IMMEDIATE_OR_CANCEL_FULL_FILL
    ) -> OrderResult:
        """
        Place a market order on the CLOB.

        Args:
            token_id: Token ID (asset ID) to trade
            side: BUY or SELL
            amount: USDC notional for BUY, share count for SELL
            validity: Order validity mode

        Returns:
            OrderResult with order ID and status
        """
        if not self._client:
            raise RuntimeError("CLOB client not initialized")

        logger.debug(f"Placing market order: {side.value} {amount} of {token_id}")

        try:
            loop = asyncio.get_running_loop()

            order_args = MarketOrderArgs(
                token_id=token_id,
                amount=amount,
                side=BUY if side == OrderSide.BUY else SELL
            )

            signed_order = await loop.run_in_executor(
                None,
                lambda: self._client.create_market_order(order_args)
            )

            result = await loop.run_in_executor(
                None,
                lambda: self._client.post_order(signed_order, orderType=ORDER_TYPES[validity])
            )

            if not result or not result.get("success", True):
                error = (result or {}).get("errorMsg") or "Order rejected"
                logger.error(f"Order rejected: {error}")
                return OrderResult(
                    order_id="",
                    success=False,
                    status="REJECTED",
                    error=error,
                    timestamp=time.time()
                )

            order_id = result.get("orderID", "")

            logger.info(
                f"Order placed successfully",
                extra={
                    "order_id": order_id,
                    "token_id": token_id,
                    "side": side.value,
                    "amount": amount
                }
            )

            return OrderResult(
                order_id=order_id,
                success=True,
                status=result.get("status", "MATCHED"),
                timestamp=time.time()
            )

        except Exception as e:
            logger.error(f"Failed to place order: {e}")
            return OrderResult(
                order_id="",
                success=False,
                status="FAILED",
                error=str(e),
                timestamp=time.time()
            )

    async def get_midpoint(self, token_id: str) -> Optional[float]:
        """
        Get the current midpoint price for a token.

        Args:
            token_id: Token ID to price

        Returns:
            Price in [0, 1], or None if unavailable
        """
        if not self._session:
            await self.initialize(trading=False)

        url = f"{self.host}/midpoint"
        try:
            async with self._session.get(url, params={"token_id": token_id}) as response:
                if response.status != 200:
                    logger.warning(f"Midpoint request for {token_id} returned {response.status}")
                    return None
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to get midpoint for {token_id}: {e}")
            return None

        try:
            price = float(data.get("mid", 0))
        except (TypeError, ValueError):
            return None
        return price if price > 0 else None
