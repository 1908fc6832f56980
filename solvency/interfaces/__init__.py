"""Collaborator interfaces the engine consumes data through."""
from .balances import BalanceSource
from .market_data import MarketDataSource

__all__ = ["BalanceSource", "MarketDataSource"]
