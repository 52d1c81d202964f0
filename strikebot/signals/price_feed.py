"""
Reference Price Tracker

Follows a Binance trade stream for one symbol and keeps a short ring buffer
of recent prices. The network reader only pushes raw messages onto a queue;
a separate processor task parses them, so a slow consumer never stalls the
socket and decision timing never depends on message arrival.
"""
import asyncio
import json
from collections import deque
from typing import Optional

import aiohttp
import websockets

from ..models import PricePoint, Trend
from ..utils.clock import Clock, SystemClock
from ..utils.logger import get_logger

logger = get_logger("price_feed")

# Absolute move (quote units) over the trend window that counts as a trend
TREND_THRESHOLD = 10.0
DEFAULT_TREND_WINDOW = 30


class ReferencePriceTracker:
    """
    Live reference price with bounded history and trend classification.

    Features:
    - REST seed so a price exists before the first trade arrives
    - Fixed-delay reconnection, forever
    - One socket and one reader at a time
    """

    WS_URL = "wss://stream.binance.com:9443/ws"
    REST_URL = "https://api.binance.com/api/v3/ticker/price"

    def __init__(
        self,
        symbol: str = "btcusdt",
        ws_url: str = WS_URL,
        rest_url: str = REST_URL,
        history_size: int = 100,
        reconnect_delay: float = 1.0,
        clock: Optional[Clock] = None
    ):
        self.symbol = symbol.lower()
        self.ws_url = ws_url.rstrip("/")
        self.rest_url = rest_url
        self.reconnect_delay = reconnect_delay
        self.clock = clock or SystemClock()

        self.history: deque[PricePoint] = deque(maxlen=history_size)
        self._queue: asyncio.Queue[str] = asyncio.Queue()

        self._ws = None
        self._running = False
        self._reader_task: Optional[asyncio.Task] = None
        self._processor_task: Optional[asyncio.Task] = None

        self._messages = 0
        self._reconnects = 0

    @property
    def stream_url(self) -> str:
        return f"{self.ws_url}/{self.symbol}@trade"

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._running

    async def start(self) -> None:
        """Seed the price and start streaming."""
        if self._running:
            return
        self._running = True

        await self.seed()

        self._reader_task = asyncio.create_task(self._reader(), name="price-reader")
        self._processor_task = asyncio.create_task(self._processor(), name="price-processor")
        logger.info(f"Price tracker started for {self.symbol}")

    async def seed(self) -> Optional[float]:
        """One-shot REST query for the current price."""
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=5)) as session:
                async with session.get(self.rest_url, params={"symbol": self.symbol.upper()}) as response:
                    response.raise_for_status()
                    data = await response.json()
            price = float(data["price"])
        except (aiohttp.ClientError, asyncio.TimeoutError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Initial price fetch failed: {e}")
            return None

        self.record_tick(price)
        logger.info(f"Seeded {self.symbol} at {price:,.2f}")
        return price

    async def _reader(self) -> None:
        """Connect, forward raw messages, reconnect after a fixed delay."""
        while self._running:
            try:
                logger.info(f"Connecting to {self.stream_url}")
                async with websockets.connect(self.stream_url) as ws:
                    self._ws = ws
                    logger.info("Reference stream connected")
                    async for message in ws:
                        self._queue.put_nowait(message)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Reference stream error: {e}")
            finally:
                self._ws = None

            if self._running:
                self._reconnects += 1
                logger.info(f"Reconnecting in {self.reconnect_delay}s")
                await self.clock.sleep(self.reconnect_delay)

    async def _processor(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                self.handle_message(message)
            finally:
                self._queue.task_done()

    def handle_message(self, message: str) -> Optional[PricePoint]:
        """Parse a trade message and record its price."""
        try:
            data = json.loads(message)
            price = float(data.get("p", 0))
        except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            logger.debug(f"Error parsing message: {e}")
            return None

        if price <= 0:
            return None

        self._messages += 1
        return self.record_tick(price)

    def record_tick(self, price: float, observed_at: Optional[float] = None) -> PricePoint:
        point = PricePoint(price=price, observed_at=self.clock.now() if observed_at is None else observed_at)
        self.history.append(point)
        return point

    def current_price(self) -> float:
        """Latest price, 0.0 if nothing has been observed."""
        return self.history[-1].price if self.history else 0.0

    def trend(self, window_seconds: float = DEFAULT_TREND_WINDOW) -> Trend:
        """
        Classify the move between the oldest and newest sample in the window.

        Returns:
            UP above +TREND_THRESHOLD, DOWN below -TREND_THRESHOLD, else FLAT
        """
        cutoff = self.clock.now() - window_seconds
        recent = [p for p in self.history if p.observed_at > cutoff]
        if len(recent) < 2:
            return Trend.FLAT

        change = recent[-1].price - recent[0].price
        if change > TREND_THRESHOLD:
            return Trend.UP
        if change < -TREND_THRESHOLD:
            return Trend.DOWN
        return Trend.FLAT

    def price_at(self, timestamp: float, max_gap_seconds: float = 5.0) -> Optional[float]:
        """Price of the sample closest to `timestamp`, if one is within `max_gap_seconds`."""
        if not self.history:
            return None
        closest = min(self.history, key=lambda p: abs(p.observed_at - timestamp))
        if abs(closest.observed_at - timestamp) > max_gap_seconds:
            return None
        return closest.price

    async def stop(self) -> None:
        """Stop both tasks and close the socket."""
        self._running = False

        for task in (self._reader_task, self._processor_task):
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._reader_task = None
        self._processor_task = None

        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        logger.info("Price tracker stopped")

    def get_summary(self) -> dict:
        return {
            "symbol": self.symbol,
            "connected": self.is_connected,
            "price": self.current_price(),
            "trend": self.trend().value,
            "history_points": len(self.history),
            "messages": self._messages,
            "reconnects": self._reconnects,
        }
