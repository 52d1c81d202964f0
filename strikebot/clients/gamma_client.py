"""
Gamma API client for Polymarket market metadata.
Resolves the active 15-minute Up/Down market into a MarketSnapshot.
"""

import asyncio
import json
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import aiohttp

from ..models import MarketSnapshot
from ..utils.logger import get_logger

logger = get_logger("gamma")

WINDOW_SECONDS = 900

# "... above $100,000 at 1:15AM ET?"
STRIKE_PATTERN = re.compile(r"\$\s?([\d,]+(?:\.\d+)?)")


def parse_json_list(raw: Any) -> list[str]:
    """Parse a Gamma list field given as a list, JSON string or comma string."""
    if isinstance(raw, list):
        return [str(item).strip() for item in raw]
    if not raw:
        return []
    raw = str(raw)
    if raw.startswith("["):
        try:
            return [str(item).strip() for item in json.loads(raw)]
        except json.JSONDecodeError:
            pass
    return [item.strip() for item in raw.strip("[]").split(",") if item.strip()]


def parse_strike(*texts: Optional[str]) -> float:
    """First dollar amount found in the given texts, 0.0 if none."""
    for text in texts:
        if not text:
            continue
        match = STRIKE_PATTERN.search(text)
        if match:
            try:
                return float(match.group(1).replace(",", ""))
            except ValueError:
                continue
    return 0.0


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None


def window_start_timestamp(now: float, window_seconds: int = WINDOW_SECONDS) -> int:
    """Start of the window containing `now`."""
    now = int(now)
    return now - (now % window_seconds)


class GammaClient:
    """
    Client for Polymarket Gamma API.

    The Gamma API provides event and market metadata without
    requiring authentication.
    """

    BASE_URL = "https://gamma-api.polymarket.com"

    def __init__(
        self,
        slug_prefix: str = "btc-updown-15m",
        base_url: str = BASE_URL,
        window_seconds: int = WINDOW_SECONDS
    ):
        """
        Initialize Gamma client.

        Args:
            slug_prefix: Event slug prefix, suffixed with the window start timestamp
            base_url: Gamma API endpoint
            window_seconds: Market window length
        """
        self.slug_prefix = slug_prefix
        self.base_url = base_url.rstrip("/")
        self.window_seconds = window_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        """Initialize HTTP session."""
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10))
        logger.info("Gamma client initialized")

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _request(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """Make HTTP request to Gamma API."""
        if not self._session:
            await self.initialize()

        url = f"{self.base_url}{endpoint}"

        try:
            async with self._session.get(url, params=params) as response:
                response.raise_for_status()
                return await response.json()
        except aiohttp.ClientError as e:
            logger.error(f"Gamma API request failed: {e}")
            raise

    def slug_for(self, window_start: int) -> str:
        return f"{self.slug_prefix}-{window_start}"

    async def fetch_current_snapshot(self, now: Optional[float] = None) -> Optional[MarketSnapshot]:
        """
        Fetch the market for the window containing `now`.

        Returns:
            MarketSnapshot, or None when no open market exists for the window
        """
        start = window_start_timestamp(time.time() if now is None else now, self.window_seconds)
        return await self.fetch_snapshot_by_slug(self.slug_for(start))

    async def fetch_snapshot_by_slug(self, slug: str) -> Optional[MarketSnapshot]:
        """
        Fetch an event by slug and parse its first market.

        Returns:
            MarketSnapshot, or None if not found or already closed
        """
        try:
            data = await self._request("/events", params={"slug": slug})
        except (aiohttp.ClientError, asyncio.TimeoutError):
            return None

        if not data:
            logger.debug(f"No event found for {slug}")
            return None

        event = data[0]
        if event.get("closed"):
            return None

        markets = event.get("markets") or []
        if not markets or markets[0].get("closed"):
            return None

        return self.parse_snapshot(event, markets[0], slug)

    def parse_snapshot(self, event: dict, market: dict, slug: str) -> Optional[MarketSnapshot]:
        """Parse a Gamma event/market pair into a snapshot."""
        outcomes = [o.lower() for o in parse_json_list(market.get("outcomes"))]
        prices = parse_json_list(market.get("outcomePrices"))
        token_ids = parse_json_list(market.get("clobTokenIds"))

        if len(token_ids) < 2:
            logger.warning(f"Market {slug} has {len(token_ids)} tokens, expected 2")
            return None

        up_idx = outcomes.index("up") if "up" in outcomes else 0
        down_idx = outcomes.index("down") if "down" in outcomes else 1

        def price_at(index: int) -> float:
            try:
                return float(prices[index])
            except (IndexError, ValueError):
                return 0.5

        end_time = _parse_datetime(market.get("endDate") or event.get("endDate"))
        if end_time is None:
            start_ts = int(slug.rsplit("-", 1)[-1]) if slug.rsplit("-", 1)[-1].isdigit() else int(time.time())
            end_time = datetime.fromtimestamp(start_ts + self.window_seconds, tz=timezone.utc)
        start_time = end_time - timedelta(seconds=self.window_seconds)

        return MarketSnapshot(
            market_id=market.get("conditionId") or market.get("id", ""),
            threshold_value=parse_strike(market.get("question"), market.get("description")),
            outcome_a_id=token_ids[up_idx],
            outcome_b_id=token_ids[down_idx],
            outcome_a_price=price_at(up_idx),
            outcome_b_price=price_at(down_idx),
            window_start=start_time,
            window_end=end_time,
            title=event.get("title") or market.get("question", ""),
            slug=slug
        )
