# Order execution and position accounting
from .gateway import ExecutionGateway, shares_for_notional
from .ledger import (
    CLOSE_EPSILON,
    InsufficientSharesError,
    LedgerError,
    LedgerSummary,
    PositionLedger,
    PositionNotFoundError,
    SellReceipt,
)
from .hedge import HEDGE_CANCELLED, OrderRequest, PairedResult, PairedTradeCoordinator

__all__ = [
    "ExecutionGateway",
    "shares_for_notional",
    "CLOSE_EPSILON",
    "InsufficientSharesError",
    "LedgerError",
    "LedgerSummary",
    "PositionLedger",
    "PositionNotFoundError",
    "SellReceipt",
    "HEDGE_CANCELLED",
    "OrderRequest",
    "PairedResult",
    "PairedTradeCoordinator",
]
