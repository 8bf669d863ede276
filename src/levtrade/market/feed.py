"""Market feed -- keeps one MarketSnapshot per tracked coin up to date.

Lives outside the pure core: it owns all upstream I/O and hands the core
immutable snapshots. A coin whose refresh fails keeps its previous
snapshot (and therefore eventually goes stale) while other coins continue.
"""

import asyncio
from dataclasses import replace
from decimal import Decimal

from levtrade.config import AppSettings
from levtrade.exceptions import UpstreamDataError
from levtrade.exchange.client import MarketDataClient
from levtrade.logging import get_logger
from levtrade.market.models import MarketSnapshot, OISnapshot
from levtrade.market.series import upsert_candles, upsert_hourly
from levtrade.models import MS_PER_HOUR

logger = get_logger(__name__)


class MarketFeed:
    """Polls the upstream client and maintains per-coin snapshots.

    Args:
        client: Upstream market data client.
        settings: Application settings (coins, exchange windows).
    """

    def __init__(self, client: MarketDataClient, settings: AppSettings) -> None:
        self._client = client
        self._settings = settings
        self._snapshots: dict[str, MarketSnapshot] = {
            coin: MarketSnapshot(coin=coin) for coin in settings.coins
        }

    def snapshots(self) -> dict[str, MarketSnapshot]:
        """Return the current snapshot per coin (a shallow copy)."""
        return dict(self._snapshots)

    def seed_open_interest(self, coin: str, history: list[OISnapshot]) -> None:
        """Preload persisted OI history for ``coin`` (e.g. after a restart)."""
        snapshot = self._snapshots.get(coin)
        if snapshot is None:
            return
        series = snapshot.open_interest
        for item in history:
            series = upsert_hourly(series, item)
        self._snapshots[coin] = replace(snapshot, open_interest=series)

    async def refresh(self, now: int) -> dict[str, str]:
        """Refresh prices, candles, funding and OI for every coin.

        Returns a mapping of coin -> error message for coins that failed.
        """
        errors: dict[str, str] = {}
        coins = list(self._settings.coins)

        try:
            mids = await self._client.fetch_mid_prices(coins)
        except UpstreamDataError as e:
            logger.warning("mid_price_refresh_failed", error=str(e))
            return {coin: str(e) for coin in coins}

        for coin in coins:
            try:
                await self._refresh_coin(coin, mids.get(coin), now)
            except UpstreamDataError as e:
                errors[coin] = str(e)
                logger.warning("coin_refresh_failed", coin=coin, error=str(e))
            await asyncio.sleep(self._settings.exchange.request_delay)

        return errors

    async def _refresh_coin(self, coin: str, price: Decimal | None, now: int) -> None:
        snapshot = self._snapshots[coin]
        exchange = self._settings.exchange

        candles = snapshot.candles
        latest = snapshot.latest_candle
        # Refetch only when the newest bar is more than an hour old.
        if latest is None or now - latest.time > MS_PER_HOUR:
            since = now - exchange.candle_count * MS_PER_HOUR
            fetched = await self._client.fetch_candles(coin, since, now)
            candles = tuple(c for c in upsert_candles(candles, fetched) if c.time >= since)

        funding = snapshot.funding
        since_funding = now - exchange.funding_lookback_hours * MS_PER_HOUR
        for item in await self._client.fetch_funding_history(coin, since_funding):
            funding = upsert_hourly(funding, item)

        open_interest = snapshot.open_interest
        oi = await self._client.fetch_open_interest(coin)
        if oi is not None:
            open_interest = upsert_hourly(open_interest, oi)

        self._snapshots[coin] = replace(
            snapshot,
            candles=candles,
            funding=funding,
            open_interest=open_interest,
            price=price if price is not None else snapshot.price,
            last_update=now if price is not None else snapshot.last_update,
        )

    async def extend_history(self, oldest_needed: dict[str, int]) -> None:
        """Fetch older candles so setups generated before the window can resolve.

        ``oldest_needed`` maps coin -> oldest pending setup ``generated_at``.
        Failures are logged and retried on a later tick.
        """
        for coin, oldest in oldest_needed.items():
            snapshot = self._snapshots.get(coin)
            if snapshot is None:
                continue
            known = [c.time for c in (*snapshot.extended_candles, *snapshot.candles)]
            oldest_known = min(known) if known else None
            if oldest_known is not None and oldest >= oldest_known:
                continue
            until = oldest_known if oldest_known is not None else oldest + MS_PER_HOUR
            try:
                fetched = await self._client.fetch_candles(coin, oldest - MS_PER_HOUR, until)
            except UpstreamDataError as e:
                logger.warning("extended_candle_fetch_failed", coin=coin, error=str(e))
                continue
            if fetched:
                self._snapshots[coin] = replace(
                    snapshot,
                    extended_candles=upsert_candles(snapshot.extended_candles, fetched),
                )
                logger.info("extended_candles_loaded", coin=coin, count=len(fetched))
            await asyncio.sleep(self._settings.exchange.request_delay)
