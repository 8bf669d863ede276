"""Exchange client layer -- Hyperliquid public market data via ccxt."""

from levtrade.exchange.client import MarketDataClient
from levtrade.exchange.hyperliquid_client import HyperliquidClient

__all__ = ["HyperliquidClient", "MarketDataClient"]
