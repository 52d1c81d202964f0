# Utilities
from .logger import setup_logging, get_logger, TradeLogger
from .clock import Clock, SystemClock, PeriodicTask

__all__ = [
    "setup_logging",
    "get_logger",
    "TradeLogger",
    "Clock",
    "SystemClock",
    "PeriodicTask",
]
