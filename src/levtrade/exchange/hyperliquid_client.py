"""Hyperliquid market data client implementation via ccxt async.

Wraps ccxt.async_support.hyperliquid (public endpoints only) with market
loading, Decimal conversion of every numeric field, and async cleanup.
Any ccxt failure is re-raised as UpstreamDataError so callers can degrade
a single coin and retry on the next tick.
"""

from decimal import Decimal

import ccxt.async_support as ccxt_async

from levtrade.config import ExchangeSettings
from levtrade.exceptions import UpstreamDataError
from levtrade.exchange.client import MarketDataClient
from levtrade.logging import get_logger
from levtrade.market.models import Candle, FundingSnapshot, OISnapshot
from levtrade.models import to_decimal

logger = get_logger(__name__)

_OHLCV_PAGE_LIMIT = 500


class HyperliquidClient(MarketDataClient):
    """Concrete Hyperliquid market data client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings
        self._exchange = ccxt_async.hyperliquid({"enableRateLimit": True})
        self._markets: dict = {}

    @property
    def exchange(self) -> ccxt_async.hyperliquid:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    def symbol_for(self, coin: str) -> str:
        """Map a coin ticker (e.g. "BTC") to the ccxt perpetual symbol."""
        quote = self._settings.quote
        return f"{coin}/{quote}:{quote}"

    async def connect(self) -> None:
        """Initialize connection by loading markets."""
        logger.info("connecting_to_hyperliquid")
        try:
            self._markets = await self._exchange.load_markets()
        except ccxt_async.BaseError as e:
            raise UpstreamDataError(f"Failed to load Hyperliquid markets: {e}") from e
        logger.info("hyperliquid_connected", market_count=len(self._markets))

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        await self._exchange.close()
        logger.info("hyperliquid_connection_closed")

    async def fetch_mid_prices(self, coins: list[str]) -> dict[str, Decimal]:
        """Fetch mid prices for ``coins`` in a single tickers request."""
        symbols = [self.symbol_for(coin) for coin in coins]
        try:
            tickers = await self._exchange.fetch_tickers(symbols)
        except ccxt_async.BaseError as e:
            raise UpstreamDataError(f"Failed to fetch mid prices: {e}") from e

        prices: dict[str, Decimal] = {}
        for coin, symbol in zip(coins, symbols):
            ticker = tickers.get(symbol)
            if not ticker:
                continue
            raw = ticker.get("close") or ticker.get("last") or ticker.get("info", {}).get("midPx")
            if raw is None:
                continue
            price = to_decimal(raw)
            if price.is_finite() and price > 0:
                prices[coin] = price
        return prices

    async def fetch_candles(self, coin: str, since_ms: int, until_ms: int) -> list[Candle]:
        """Fetch hourly candles in [since_ms, until_ms], paginating forward."""
        symbol = self.symbol_for(coin)
        interval = self._settings.candle_interval
        candles: list[Candle] = []
        cursor = since_ms

        while cursor <= until_ms:
            try:
                page = await self._exchange.fetch_ohlcv(
                    symbol,
                    interval,
                    since=cursor,
                    limit=_OHLCV_PAGE_LIMIT,
                    params={"until": until_ms},
                )
            except ccxt_async.BaseError as e:
                raise UpstreamDataError(f"Failed to fetch candles for {coin}: {e}") from e

            if not page:
                break

            for row in page:
                timestamp = int(row[0])
                if timestamp < since_ms or timestamp > until_ms:
                    continue
                candles.append(
                    Candle(
                        time=timestamp,
                        open=to_decimal(row[1]),
                        high=to_decimal(row[2]),
                        low=to_decimal(row[3]),
                        close=to_decimal(row[4]),
                        volume=to_decimal(row[5] if row[5] is not None else 0),
                    )
                )

            last_timestamp = int(page[-1][0])
            if len(page) < _OHLCV_PAGE_LIMIT or last_timestamp <= cursor:
                break
            cursor = last_timestamp + 1

        logger.debug("fetched_candles", coin=coin, count=len(candles))
        return candles

    async def fetch_funding_history(self, coin: str, since_ms: int) -> list[FundingSnapshot]:
        """Fetch funding rate history since ``since_ms``."""
        symbol = self.symbol_for(coin)
        try:
            history = await self._exchange.fetch_funding_rate_history(symbol, since=since_ms)
        except ccxt_async.BaseError as e:
            raise UpstreamDataError(f"Failed to fetch funding for {coin}: {e}") from e

        snapshots = []
        for entry in history:
            rate = entry.get("fundingRate")
            timestamp = entry.get("timestamp")
            if rate is None or timestamp is None:
                continue
            value = to_decimal(rate)
            if value.is_finite():
                snapshots.append(FundingSnapshot(time=int(timestamp), rate=value))
        snapshots.sort(key=lambda s: s.time)
        return snapshots

    async def fetch_open_interest(self, coin: str) -> OISnapshot | None:
        """Fetch the current open interest (contracts) for ``coin``."""
        symbol = self.symbol_for(coin)
        try:
            data = await self._exchange.fetch_open_interest(symbol)
        except ccxt_async.BaseError as e:
            raise UpstreamDataError(f"Failed to fetch open interest for {coin}: {e}") from e

        raw = data.get("openInterestAmount")
        if raw is None:
            raw = data.get("info", {}).get("openInterest")
        timestamp = data.get("timestamp") or self._exchange.milliseconds()
        if raw is None:
            return None
        value = to_decimal(raw)
        if not value.is_finite() or value <= 0:
            return None
        return OISnapshot(time=int(timestamp), open_interest=value)
