"""API route handlers."""
from . import analytics, assets, defi, market, strategies

__all__ = ["analytics", "assets", "defi", "market", "strategies"]
