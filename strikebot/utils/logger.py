"""
Structured logging for the strike trading bot.
Supports JSON logging for log aggregation pipelines.
"""

import logging
import sys
from typing import Optional
from pythonjsonlogger import jsonlogger

ROOT_LOGGER = "strikebot"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['timestamp'] = self.formatTime(record, self.datefmt)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    logger_name: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Whether to emit one JSON object per line
        logger_name: Optional specific logger name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name or ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        formatter = CustomJsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger with the given name."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class TradeLogger:
    """Specialized logger for trade-related events."""

    def __init__(self):
        self.logger = get_logger("trades")

    def decision(
        self,
        market_id: str,
        action: str,
        reason: str,
        confidence: int,
        suggested_amount: float,
        reference_price: float
    ):
        """Log a non-skip decision from the decision engine."""
        self.logger.info(
            "Trade decision",
            extra={
                "event": "decision",
                "market_id": market_id,
                "action": action,
                "reason": reason,
                "confidence": confidence,
                "suggested_amount": suggested_amount,
                "reference_price": reference_price
            }
        )

    def order_submitted(
        self,
        order_id: str,
        token_id: str,
        side: str,
        amount: float,
        simulated: bool
    ):
        """Log when an order is accepted by the gateway."""
        self.logger.info(
            "Order submitted",
            extra={
                "event": "order_submitted",
                "order_id": order_id,
                "token_id": token_id,
                "side": side,
                "amount": amount,
                "simulated": simulated
            }
        )

    def order_failed(
        self,
        token_id: str,
        side: str,
        amount: float,
        error: Optional[str] = None
    ):
        """Log when an order is rejected or errors out."""
        self.logger.error(
            "Order failed",
            extra={
                "event": "order_failed",
                "token_id": token_id,
                "side": side,
                "amount": amount,
                "error": error
            }
        )

    def position_opened(
        self,
        market_id: str,
        outcome_id: str,
        shares: float,
        avg_entry_price: float
    ):
        """Log when a buy lands in the ledger."""
        self.logger.info(
            "Position opened",
            extra={
                "event": "position_opened",
                "market_id": market_id,
                "outcome_id": outcome_id,
                "shares": shares,
                "avg_entry_price": avg_entry_price
            }
        )

    def scale_out(
        self,
        market_id: str,
        outcome_id: str,
        sell_percent: float,
        shares_sold: float,
        proceeds: float,
        reason: str
    ):
        """Log a partial or full liquidation."""
        self.logger.info(
            "Scale out",
            extra={
                "event": "scale_out",
                "market_id": market_id,
                "outcome_id": outcome_id,
                "sell_percent": sell_percent,
                "shares_sold": shares_sold,
                "proceeds_usd": proceeds,
                "reason": reason
            }
        )

    def position_closed(
        self,
        market_id: str,
        outcome_id: str,
        realized_pnl: float
    ):
        """Log when a position drops out of the ledger."""
        self.logger.info(
            "Position closed",
            extra={
                "event": "position_closed",
                "market_id": market_id,
                "outcome_id": outcome_id,
                "realized_pnl_usd": realized_pnl
            }
        )
