"""Market data source protocol: pool state and prices per market."""
from typing import Protocol

from ..models import MarketState


class MarketDataSource(Protocol):
    """Abstract interface for fetching market state of a network."""

    async def fetch_markets(self, network_id: str) -> dict[str, MarketState]: ...
