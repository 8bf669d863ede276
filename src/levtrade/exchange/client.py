"""Abstract market data client interface.

Defines the read-only contract for upstream market data. The signal core
never performs network I/O itself; the feed, the scheduled job and the
orchestrator talk to the exchange only through this interface, keeping
Hyperliquid-specific details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from levtrade.market.models import Candle, FundingSnapshot, OISnapshot


class MarketDataClient(ABC):
    """Abstract base class for public market data clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_mid_prices(self, coins: list[str]) -> dict[str, Decimal]:
        """Return the current mid price per coin; coins without a price are omitted."""
        ...

    @abstractmethod
    async def fetch_candles(self, coin: str, since_ms: int, until_ms: int) -> list[Candle]:
        """Fetch hourly candles with open time in [since_ms, until_ms], ascending."""
        ...

    @abstractmethod
    async def fetch_funding_history(self, coin: str, since_ms: int) -> list[FundingSnapshot]:
        """Fetch funding rate snapshots since ``since_ms``, ascending."""
        ...

    @abstractmethod
    async def fetch_open_interest(self, coin: str) -> OISnapshot | None:
        """Fetch the current open interest, or None when unavailable."""
        ...
