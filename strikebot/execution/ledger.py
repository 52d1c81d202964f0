"""
In-memory position ledger.

Positions are keyed by (market_id, outcome_id). Buys merge into the
existing entry at the share-weighted average price; sells reduce shares and
never touch the average. An entry is removed once fewer than CLOSE_EPSILON
shares remain.

Stored Position objects are immutable; every mutation validates first and
then swaps in a fresh object, so a failed call leaves the ledger unchanged.
"""
from dataclasses import dataclass, field, replace
from typing import Iterator, Optional

from ..models import Position
from ..utils.logger import get_logger

logger = get_logger("ledger")

CLOSE_EPSILON = 0.01

PositionKey = tuple[str, str]


class LedgerError(ValueError):
    """Base class for rejected ledger mutations."""


class PositionNotFoundError(LedgerError):
    """Raised when a mutation targets a key with no open position."""

    def __init__(self, key: PositionKey):
        super().__init__(f"No open position for {key[0]}/{key[1]}")
        self.key = key


class InsufficientSharesError(LedgerError):
    """Raised when a sell asks for more shares than are held."""

    def __init__(self, key: PositionKey, requested: float, held: float):
        super().__init__(
            f"Cannot sell {requested:.4f} shares of {key[0]}/{key[1]}, only {held:.4f} held"
        )
        self.key = key
        self.requested = requested
        self.held = held


@dataclass(frozen=True)
class SellReceipt:
    """What a successful record_sell did."""
    shares_sold: float
    remaining_shares: float
    realized_pnl: float
    closed: bool


@dataclass
class LedgerSummary:
    """Aggregate view across all open positions."""
    count: int
    total_unrealized_pnl: float
    total_value: float
    total_cost: float
    realized_pnl: float
    positions: list[Position] = field(default_factory=list)


def pnl_fields(avg_entry_price: float, shares: float, current_price: float) -> tuple[float, float]:
    """Return (unrealized_pnl, unrealized_pnl_percent)."""
    diff = current_price - avg_entry_price
    percent = (diff / avg_entry_price) * 100 if avg_entry_price > 0 else 0.0
    return diff * shares, percent


class PositionLedger:
    """Single-owner store of open positions."""

    def __init__(self):
        self._positions: dict[PositionKey, Position] = {}
        self._realized_pnl = 0.0

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, key: PositionKey) -> bool:
        return key in self._positions

    def __iter__(self) -> Iterator[Position]:
        return iter(list(self._positions.values()))

    @property
    def realized_pnl(self) -> float:
        return self._realized_pnl

    def get(self, key: PositionKey) -> Optional[Position]:
        return self._positions.get(key)

    def open_positions(self) -> list[Position]:
        return list(self._positions.values())

    def record_buy(self, position: Position) -> Position:
        """
        Insert a new position or merge a fill into an existing one.

        Args:
            position: Fill expressed as a position (shares at avg_entry_price)

        Returns:
            The stored position after the merge
        """
        if position.shares <= 0:
            raise ValueError(f"Buy must add shares, got {position.shares}")
        if not 0 < position.avg_entry_price <= 1:
            raise ValueError(f"Entry price must be in (0, 1], got {position.avg_entry_price}")

        key = position.key
        existing = self._positions.get(key)

        if existing is None:
            current = position.current_price or position.avg_entry_price
            pnl, pnl_percent = pnl_fields(position.avg_entry_price, position.shares, current)
            stored = replace(
                position,
                current_price=current,
                unrealized_pnl=pnl,
                unrealized_pnl_percent=pnl_percent
            )
        else:
            total_shares = existing.shares + position.shares
            total_cost = existing.cost_basis + position.cost_basis
            avg = total_cost / total_shares
            current = position.current_price or existing.current_price
            pnl, pnl_percent = pnl_fields(avg, total_shares, current)
            stored = replace(
                existing,
                shares=total_shares,
                avg_entry_price=avg,
                current_price=current,
                unrealized_pnl=pnl,
                unrealized_pnl_percent=pnl_percent
            )

        self._positions[key] = stored
        logger.debug(
            f"Recorded buy",
            extra={
                "market_id": key[0],
                "outcome_id": key[1],
                "shares": stored.shares,
                "avg_entry_price": stored.avg_entry_price
            }
        )
        return stored

    def record_sell(self, key: PositionKey, shares_sold: float, price: Optional[float] = None) -> SellReceipt:
        """
        Reduce a position after a sell fill.

        Args:
            key: (market_id, outcome_id)
            shares_sold: Share count sold
            price: Fill price, used for realised PnL (defaults to last mark)

        Raises:
            PositionNotFoundError: no position for key
            InsufficientSharesError: more shares requested than held
        """
        if shares_sold <= 0:
            raise ValueError(f"Sell must remove shares, got {shares_sold}")

        existing = self._positions.get(key)
        if existing is None:
            raise PositionNotFoundError(key)
        if shares_sold > existing.shares:
            raise InsufficientSharesError(key, shares_sold, existing.shares)

        fill_price = existing.current_price if price is None else price
        realized = (fill_price - existing.avg_entry_price) * shares_sold
        remaining = existing.shares - shares_sold
        closed = remaining < CLOSE_EPSILON

        if closed:
            del self._positions[key]
        else:
            pnl, pnl_percent = pnl_fields(existing.avg_entry_price, remaining, existing.current_price)
            self._positions[key] = replace(
                existing,
                shares=remaining,
                unrealized_pnl=pnl,
                unrealized_pnl_percent=pnl_percent
            )

        self._realized_pnl += realized
        return SellReceipt(
            shares_sold=shares_sold,
            remaining_shares=0.0 if closed else remaining,
            realized_pnl=realized,
            closed=closed
        )

    def mark_to_market(self, key: PositionKey, current_price: float) -> Position:
        """Recompute unrealised PnL fields at a new price."""
        existing = self._positions.get(key)
        if existing is None:
            raise PositionNotFoundError(key)

        pnl, pnl_percent = pnl_fields(existing.avg_entry_price, existing.shares, current_price)
        updated = replace(
            existing,
            current_price=current_price,
            unrealized_pnl=pnl,
            unrealized_pnl_percent=pnl_percent
        )
        self._positions[key] = updated
        return updated

    def summary(self) -> LedgerSummary:
        positions = self.open_positions()
        return LedgerSummary(
            count=len(positions),
            total_unrealized_pnl=sum(p.unrealized_pnl for p in positions),
            total_value=sum(p.market_value for p in positions),
            total_cost=sum(p.cost_basis for p in positions),
            realized_pnl=self._realized_pnl,
            positions=positions
        )
