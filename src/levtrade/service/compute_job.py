"""Scheduled server-side signal job.

One run, per coin in sequence: record the current open interest, fetch
candles and funding, compute the signal set, persist a ``server`` setup
unless it duplicates a recent one, and resolve the pending outcomes of
this coin's recent server setups with the candles already in hand.

A coin that fails is reported in the results and does not stop the run.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from levtrade.config import AppSettings
from levtrade.data.store import LevtradeStore
from levtrade.exceptions import UpstreamDataError
from levtrade.exchange.client import MarketDataClient
from levtrade.logging import get_logger
from levtrade.market.models import Candle
from levtrade.models import MS_PER_HOUR
from levtrade.setups.generator import compute_suggested_setup
from levtrade.setups.ledger import is_duplicate_setup, pending_outcomes, setup_id
from levtrade.setups.models import SetupSource, TrackedSetup
from levtrade.setups.resolution import resolve_setup_window, summarize_coverage
from levtrade.signals.engine import compute_signals

logger = get_logger(__name__)

_MS_PER_DAY = 24 * MS_PER_HOUR


@dataclass(frozen=True)
class CoinResult:
    coin: str
    ok: bool
    error: str | None = None
    setup_generated: bool = False
    setup_id: str | None = None
    outcomes_resolved: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "coin": self.coin,
            "ok": self.ok,
            "setupGenerated": self.setup_generated,
            "outcomesResolved": self.outcomes_resolved,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.setup_id is not None:
            data["setupId"] = self.setup_id
        return data


class ComputeSignalsJob:
    """Runs the server-side signal computation for every configured coin.

    Args:
        client: Upstream market data client (already connected).
        store: Persistence for server setups and OI history.
        settings: Application settings.
    """

    def __init__(
        self,
        client: MarketDataClient,
        store: LevtradeStore,
        settings: AppSettings,
    ) -> None:
        self._client = client
        self._store = store
        self._settings = settings

    async def run(self, now: int) -> list[CoinResult]:
        """Process every coin.

        Raises:
            UpstreamDataError: The shared mid-price fetch failed.
        """
        coins = list(self._settings.coins)
        mids = await self._client.fetch_mid_prices(coins)
        results: list[CoinResult] = []
        for coin in coins:
            try:
                result = await self._process_coin(coin, mids.get(coin), now)
            except (UpstreamDataError, ArithmeticError, ValueError) as e:
                logger.warning("coin_processing_failed", coin=coin, error=str(e))
                result = CoinResult(coin=coin, ok=False, error=str(e) or f"Failed to process {coin}")
            results.append(result)
            await asyncio.sleep(self._settings.exchange.request_delay)

        logger.info(
            "compute_job_completed",
            coins=len(results),
            failed=sum(1 for r in results if not r.ok),
            setups=sum(1 for r in results if r.setup_generated),
        )
        return results

    async def _record_open_interest(self, coin: str) -> None:
        try:
            snapshot = await self._client.fetch_open_interest(coin)
        except UpstreamDataError as e:
            logger.warning("oi_snapshot_failed", coin=coin, error=str(e))
            return
        if snapshot is not None and snapshot.open_interest > 0:
            await self._store.upsert_oi_snapshot(coin, snapshot)

    async def _process_coin(self, coin: str, price: Decimal | None, now: int) -> CoinResult:
        settings = self._settings
        if price is None or not price.is_finite() or price <= 0:
            return CoinResult(coin=coin, ok=False, error="No mid price")

        await self._record_open_interest(coin)

        since = now - settings.exchange.candle_count * MS_PER_HOUR
        candles = await self._client.fetch_candles(coin, since, now)
        if len(candles) < settings.signal.zscore_period:
            return CoinResult(coin=coin, ok=False, error=f"Only {len(candles)} candles")

        funding_since = now - settings.exchange.funding_lookback_hours * MS_PER_HOUR
        funding = await self._client.fetch_funding_history(coin, funding_since)
        oi_history = await self._store.get_oi_history(coin, settings.exchange.oi_history_limit)

        candle_age = now - candles[-1].time
        signals = compute_signals(
            coin,
            candles,
            funding,
            oi_history,
            updated_at=now,
            settings=settings.signal,
            is_stale=candle_age > settings.signal.candle_stale_after_ms,
        )
        if signals is None:
            return CoinResult(coin=coin, ok=False, error=f"Only {len(candles)} candles")

        new_id: str | None = None
        setup = compute_suggested_setup(coin, signals, price, now, SetupSource.SERVER, settings.risk)
        if setup is not None:
            recent = await self._store.get_server_setups(
                now - settings.tracker.dedupe_window_ms,
                settings.service.server_setup_limit,
                coin=coin,
            )
            if is_duplicate_setup(setup, (t.setup for t in recent), settings.tracker):
                logger.debug("server_setup_deduplicated", coin=coin, direction=setup.direction.value)
            else:
                tracked = TrackedSetup(id=setup_id(setup), setup=setup, outcomes=pending_outcomes())
                if await self._store.insert_server_setup(tracked):
                    new_id = tracked.id
                    logger.info("server_setup_generated", coin=coin, id=new_id)

        resolved = await self._resolve_outcomes(coin, candles, now)
        return CoinResult(
            coin=coin,
            ok=True,
            setup_generated=new_id is not None,
            setup_id=new_id,
            outcomes_resolved=resolved,
        )

    async def _resolve_outcomes(self, coin: str, candles: list[Candle], now: int) -> int:
        """Resolve pending windows of this coin's recent server setups.

        Returns the number of setups whose outcomes changed.
        """
        service = self._settings.service
        recent = await self._store.get_server_setups(
            now - service.resolve_lookback_days * _MS_PER_DAY,
            service.resolve_batch_limit,
            coin=coin,
        )
        changed_setups = 0
        for tracked in recent:
            outcomes = dict(tracked.outcomes)
            changed = False
            for window in tracked.pending_windows:
                resolved = resolve_setup_window(
                    tracked.setup,
                    window,
                    candles,
                    now,
                    self._settings.resolution,
                    regular_candles=candles,
                )
                if resolved is not None:
                    outcomes[window] = resolved
                    changed = True
            if changed:
                await self._store.update_setup_outcomes(tracked.id, outcomes)
                changed_setups += 1
                logger.info(
                    "server_outcomes_resolved",
                    id=tracked.id,
                    coverage=summarize_coverage(outcomes).value,
                )
        return changed_setups
