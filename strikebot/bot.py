"""
Strike bot coordinator.

Owns the ledger and serialises everything that touches it. The snapshot
poller and the analysis ticker never call into the ledger themselves; they
post events onto one queue that a single worker drains, so each analysis
tick (decision, entry, exit cycle) runs start to finish without another
event interleaving.
"""
import asyncio
from dataclasses import dataclass, replace
from typing import Optional, Union

from .clients.clob_client import CLOBClient
from .clients.gamma_client import GammaClient
from .config import Config
from .execution.gateway import ExecutionGateway, shares_for_notional
from .execution.ledger import PositionLedger
from .models import MarketSnapshot, OrderSide, Position, TradeAction, TradeDecision
from .risk.exit_policy import ExitPolicy
from .risk.manager import RiskManager
from .signals.price_feed import ReferencePriceTracker
from .strategies.decision import make_trade_decision
from .utils.clock import Clock, PeriodicTask, SystemClock
from .utils.logger import get_logger, TradeLogger

logger = get_logger("bot")
trade_logger = TradeLogger()


@dataclass(frozen=True)
class SnapshotRefresh:
    """Re-fetch the active market."""


@dataclass(frozen=True)
class AnalysisTick:
    """Run the decision engine and the exit cycle."""


BotEvent = Union[SnapshotRefresh, AnalysisTick]


class StrikeBot:
    """
    Main bot orchestrator.

    Coordinates:
    - Reference price tracking
    - Market snapshot polling
    - Entry decisions and risk checks
    - Exit management of open positions
    """

    def __init__(
        self,
        config: Config,
        clock: Optional[Clock] = None,
        tracker: Optional[ReferencePriceTracker] = None,
        gamma_client: Optional[GammaClient] = None,
        clob_client: Optional[CLOBClient] = None,
        gateway: Optional[ExecutionGateway] = None
    ):
        self.config = config
        self.clock = clock or SystemClock()
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._shut_down = False

        self.tracker = tracker or ReferencePriceTracker(
            symbol=config.feed.symbol,
            ws_url=config.feed.ws_url,
            rest_url=config.feed.rest_url,
            history_size=config.feed.history_size,
            reconnect_delay=config.feed.reconnect_delay_seconds,
            clock=self.clock
        )

        self.gamma_client = gamma_client or GammaClient(
            slug_prefix=config.polymarket.market_slug_prefix,
            base_url=config.polymarket.gamma_url
        )

        self.clob_client = clob_client or CLOBClient(
            api_key=config.polymarket.api_key,
            api_secret=config.polymarket.api_secret,
            api_passphrase=config.polymarket.api_passphrase,
            private_key=config.wallet.private_key,
            chain_id=config.wallet.chain_id,
            funder_address=config.wallet.funder_address,
            signature_type=config.wallet.signature_type,
            host=config.polymarket.clob_url
        )

        self.gateway = gateway or ExecutionGateway(
            clob_client=self.clob_client,
            simulation_mode=config.risk.simulation_mode
        )

        self.ledger = PositionLedger()
        self.risk_manager = RiskManager(config.risk.limits)
        self.exit_policy = ExitPolicy(
            ledger=self.ledger,
            gateway=self.gateway,
            price_source=self.clob_client,
            config=config.exits,
            on_realized=self.risk_manager.record_pnl
        )

        self.snapshot: Optional[MarketSnapshot] = None
        self._last_action: dict[str, TradeAction] = {}

        self._events: asyncio.Queue[BotEvent] = asyncio.Queue()
        self._pending: set[type] = set()
        self._worker: Optional[asyncio.Task] = None
        self._timers = [
            PeriodicTask(
                "snapshot-refresh",
                config.schedule.snapshot_interval_seconds,
                lambda: self.post(SnapshotRefresh()),
                clock=self.clock,
                run_immediately=True
            ),
            PeriodicTask(
                "analysis",
                config.schedule.analysis_interval_seconds,
                lambda: self.post(AnalysisTick()),
                clock=self.clock
            ),
        ]

        # Stats
        self._decisions = 0
        self._entries = 0
        self._entries_blocked = 0

    async def initialize(self) -> None:
        """Initialize all components."""
        logger.info("Initializing strike bot")

        if self.config.risk.kill_switch:
            logger.warning("Kill switch is enabled - bot will not open positions")

        await self.gamma_client.initialize()
        await self.clob_client.initialize(trading=not self.config.risk.simulation_mode)
        await self.tracker.start()

        logger.info("Bot initialized successfully")

    async def run(self) -> None:
        """Run until shutdown is requested."""
        self._running = True
        logger.info(
            "Starting strike bot",
            extra={"simulation_mode": self.config.risk.simulation_mode}
        )

        try:
            self._worker = asyncio.create_task(self._run_worker(), name="bot-worker")
            for timer in self._timers:
                timer.start()
            await self._shutdown_event.wait()
        finally:
            await self.shutdown()

    async def post(self, event: BotEvent) -> None:
        """Queue an event unless one of the same kind is already waiting."""
        if type(event) in self._pending:
            return
        self._pending.add(type(event))
        await self._events.put(event)

    async def _run_worker(self) -> None:
        while True:
            event = await self._events.get()
            self._pending.discard(type(event))
            try:
                await self.handle_event(event)
            except Exception as e:
                logger.error(f"Error handling {type(event).__name__}: {e}")
            finally:
                self._events.task_done()

    async def handle_event(self, event: BotEvent) -> None:
        if isinstance(event, SnapshotRefresh):
            await self.refresh_snapshot()
        elif isinstance(event, AnalysisTick):
            await self.analyze()

    async def refresh_snapshot(self) -> Optional[MarketSnapshot]:
        """Fetch the market for the current window and resolve its strike."""
        snapshot = await self.gamma_client.fetch_current_snapshot(self.clock.now())

        if snapshot is None:
            if self.snapshot is not None:
                logger.info("No active market for this window")
            self.snapshot = None
            return None

        if snapshot.threshold_value <= 0:
            # Strike not in the market text, use the reference price at window open
            opening = self.tracker.price_at(snapshot.window_start.timestamp())
            if opening is not None:
                snapshot = replace(snapshot, threshold_value=opening)

        if self.snapshot is None or self.snapshot.market_id != snapshot.market_id:
            logger.info(
                f"Tracking market {snapshot.slug or snapshot.market_id}",
                extra={
                    "market_id": snapshot.market_id,
                    "strike": snapshot.threshold_value,
                    "window_end": snapshot.window_end.isoformat()
                }
            )

        self.snapshot = snapshot
        return snapshot

    async def analyze(self) -> Optional[TradeDecision]:
        """One monitoring cycle: decide, maybe enter, then manage exits."""
        decision = None
        try:
            decision = await self._decide_and_enter()
        finally:
            await self.exit_policy.run_cycle()
        return decision

    async def _decide_and_enter(self) -> Optional[TradeDecision]:
        snapshot = self.snapshot
        if snapshot is None:
            logger.debug("No market snapshot, skipping decision")
            return None

        if snapshot.threshold_value <= 0:
            logger.debug(f"No strike known for {snapshot.market_id}, skipping decision")
            return None

        if self.clock.now() >= snapshot.window_end.timestamp():
            logger.debug(f"Market {snapshot.market_id} window has ended")
            return None

        reference = self.tracker.current_price()
        if reference <= 0:
            logger.debug("No reference price yet, skipping decision")
            return None

        trend = self.tracker.trend(self.config.feed.trend_window_seconds)
        decision = make_trade_decision(reference, snapshot, trend, self.config.decision)
        self._decisions += 1

        if self._last_action.get(snapshot.market_id) is decision.action:
            return decision
        self._last_action[snapshot.market_id] = decision.action

        if not decision.is_trade:
            logger.info(f"Skip: {decision.reason}", extra={"market_id": snapshot.market_id})
            return decision

        trade_logger.decision(
            snapshot.market_id,
            decision.action.value,
            decision.reason,
            decision.confidence,
            decision.suggested_amount,
            reference
        )
        await self._enter(snapshot, decision)
        return decision

    async def _enter(self, snapshot: MarketSnapshot, decision: TradeDecision) -> bool:
        """Buy the decided side if risk allows."""
        if self.config.risk.kill_switch:
            logger.info("Kill switch enabled - not entering")
            return False

        side = decision.action.side
        token_id = snapshot.token_for(side)
        price = snapshot.price_for(side)
        amount = decision.suggested_amount

        check = self.risk_manager.can_trade(
            amount,
            self.ledger.summary(),
            adds_position=(snapshot.market_id, token_id) not in self.ledger
        )
        if not check.allowed:
            self._entries_blocked += 1
            logger.warning(f"Entry blocked: {check.reason}", extra={"market_id": snapshot.market_id})
            return False

        result = await self.gateway.submit(token_id, OrderSide.BUY, amount, price=price)
        if not result.success:
            return False

        position = self.ledger.record_buy(Position(
            market_id=snapshot.market_id,
            outcome_id=token_id,
            side=side,
            shares=shares_for_notional(amount, price),
            avg_entry_price=price,
            current_price=price,
            opened_at=self.clock.now()
        ))
        self._entries += 1
        trade_logger.position_opened(
            position.market_id,
            position.outcome_id,
            position.shares,
            position.avg_entry_price
        )
        return True

    def get_stats(self) -> dict:
        summary = self.ledger.summary()
        return {
            "decisions": self._decisions,
            "entries": self._entries,
            "entries_blocked": self._entries_blocked,
            "open_positions": summary.count,
            "unrealized_pnl": summary.total_unrealized_pnl,
            "realized_pnl": summary.realized_pnl,
            "gateway": self.gateway.get_stats(),
            "exits": self.exit_policy.get_stats(),
            "risk": self.risk_manager.get_risk_summary(summary),
            "feed": self.tracker.get_summary(),
        }

    def _log_stats(self) -> None:
        logger.info("Bot statistics", extra=self.get_stats())

    async def shutdown(self, drain_timeout: float = 10.0) -> None:
        """Gracefully shutdown the bot."""
        if self._shut_down:
            return
        self._shut_down = True
        logger.info("Shutting down bot")
        self._running = False

        for timer in self._timers:
            await timer.stop()

        if self._worker is not None:
            # Let queued work (and any in-flight order) finish
            try:
                await asyncio.wait_for(self._events.join(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                logger.warning("Timed out draining bot events")
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

        await self.tracker.stop()
        await self.gamma_client.close()
        await self.clob_client.close()

        self._log_stats()
        logger.info("Bot shutdown complete")

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()
