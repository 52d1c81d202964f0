# Polymarket clients
from .clob_client import CLOBClient, OrderResult
from .gamma_client import GammaClient

__all__ = ["CLOBClient", "OrderResult", "GammaClient"]
