"""Main orchestrator -- drives the deterministic core on a fixed tick.

Each tick, under a lock so only one is ever in flight:
  1. REFRESH: Pull fresh market data for every coin (failures degrade
     only the affected coin).
  2. PERSIST OI: Store the latest open interest per coin in its hour bucket.
  3. EXTEND: Fetch older candles for coins whose pending setups predate
     the regular window.
  4. ADVANCE: ``advance(state, markets, now)``.
  5. ASSESS: Recompute the decision for the configured risk position.
  6. SAVE: Persist the state when it changed.

The orchestrator is the single writer of the local state row.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping

from levtrade.config import AppSettings
from levtrade.data.store import LOCAL_SCOPE, LevtradeStore
from levtrade.engine import advance
from levtrade.logging import bind_tick_context, get_logger
from levtrade.market.feed import MarketFeed
from levtrade.market.models import MarketSnapshot
from levtrade.risk.calculator import compute_risk, risk_status_for
from levtrade.setups.ledger import oldest_pending_by_coin
from levtrade.signals.decision import compute_decision
from levtrade.signals.engine import compute_asset_signals
from levtrade.signals.models import DecisionResult
from levtrade.state import AppState

logger = get_logger(__name__)


class Orchestrator:
    """Periodic single-writer tick driver.

    Args:
        settings: Application-wide settings.
        feed: Market feed owning all upstream I/O.
        store: Persistence for the local state row and OI history.
    """

    def __init__(
        self,
        settings: AppSettings,
        feed: MarketFeed,
        store: LevtradeStore,
    ) -> None:
        self._settings = settings
        self._feed = feed
        self._store = store
        self._state = AppState()
        self._running = False
        self._tick_lock = asyncio.Lock()
        self._last_tick_at: int | None = None
        self._last_errors: dict[str, str] = {}

    @property
    def state(self) -> AppState:
        return self._state

    async def load(self) -> None:
        """Restore the persisted local state and seed OI history into the feed."""
        stored = await self._store.load_state(LOCAL_SCOPE)
        if stored is not None:
            self._state = stored.state
        for coin in self._settings.coins:
            history = await self._store.get_oi_history(coin, self._settings.exchange.oi_history_limit)
            self._feed.seed_open_interest(coin, history)
        logger.info(
            "orchestrator_state_loaded",
            setups=len(self._state.tracked_setups),
            signals=len(self._state.tracked_signals),
            last_signal_computed_at=self._state.last_signal_computed_at,
        )

    async def start(self) -> None:
        """Load state, then run ticks every ``tick_interval`` seconds until stopped."""
        logger.info("orchestrator_starting", coins=list(self._settings.coins))
        await self.load()
        self._running = True
        try:
            await self._run_loop()
        finally:
            logger.info("orchestrator_stopped")

    async def stop(self) -> None:
        """Signal the loop to stop after the current tick."""
        logger.info("orchestrator_stopping_gracefully")
        self._running = False

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.tick()
                await asyncio.sleep(self._settings.tick_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("orchestrator_tick_error", error=str(e), exc_info=True)
                await asyncio.sleep(10)

    async def tick(self, now: int | None = None) -> AppState:
        """Run one tick. Concurrent callers wait for the tick in flight."""
        async with self._tick_lock:
            now = now if now is not None else int(time.time() * 1000)
            bind_tick_context(tick=now)

            self._last_errors = await self._feed.refresh(now)
            markets = self._feed.snapshots()
            await self._persist_open_interest(markets)

            pending = oldest_pending_by_coin(self._state.tracked_setups)
            if pending:
                await self._feed.extend_history(pending)
                markets = self._feed.snapshots()

            previous = self._state
            self._state = advance(previous, markets, now, self._settings)
            self._assess_risk_position(markets, now)

            if self._state != previous:
                await self._store.save_state(LOCAL_SCOPE, self._state, now)
            self._last_tick_at = now
            logger.info(
                "tick_completed",
                setups=len(self._state.tracked_setups),
                signals=len(self._state.tracked_signals),
                failed_coins=sorted(self._last_errors),
            )
            return self._state

    async def _persist_open_interest(self, markets: Mapping[str, MarketSnapshot]) -> None:
        for coin, snapshot in markets.items():
            if snapshot.open_interest:
                await self._store.upsert_oi_snapshot(coin, snapshot.open_interest[-1])

    def _assess_risk_position(
        self,
        markets: Mapping[str, MarketSnapshot],
        now: int,
    ) -> DecisionResult | None:
        """Decision for the configured risk position's coin, with its risk verdict."""
        inputs = self._state.risk_inputs
        snapshot = markets.get(inputs.coin)
        if snapshot is None:
            return None
        signals = compute_asset_signals(inputs.coin, snapshot, now, self._settings.signal)
        if signals is None:
            return None

        outputs = (
            compute_risk(inputs, signals.volatility.atr, self._settings.risk)
            if inputs.entry_price > 0
            else None
        )
        risk_status = risk_status_for(outputs)
        decision = compute_decision(
            signals.composite,
            signals.entry_geometry,
            signals.regime,
            is_stale=signals.is_stale,
            is_warming_up=signals.is_warming_up,
            risk_status=risk_status,
            veto_threshold=self._settings.signal.regime_veto_threshold,
        )
        logger.info(
            "decision_updated",
            coin=inputs.coin,
            action=decision.action.value,
            label=decision.label,
            risk_status=risk_status.value,
        )
        return decision

    def get_status(self) -> dict:
        """Snapshot of the loop for logs and health checks."""
        return {
            "running": self._running,
            "last_tick_at": self._last_tick_at,
            "failed_coins": dict(self._last_errors),
            "tracked_setups": len(self._state.tracked_setups),
            "tracked_signals": len(self._state.tracked_signals),
            "updated_at": self._state.updated_at,
        }
