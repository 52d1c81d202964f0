# Reference price signals
from .price_feed import ReferencePriceTracker, TREND_THRESHOLD

__all__ = ["ReferencePriceTracker", "TREND_THRESHOLD"]
