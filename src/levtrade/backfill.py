"""Historical replay of missed hours.

When the process was down for a while, the hours it missed are replayed at
each hour boundary: signals are recomputed from the data that was available
at that instant, and the resulting signal records and setups are tracked
with ``source=backfill`` as if they had been produced live.
"""

from collections.abc import Mapping, Sequence
from dataclasses import replace
from decimal import Decimal

from levtrade.config import AppSettings, SignalSettings
from levtrade.logging import get_logger
from levtrade.market.models import Candle, MarketSnapshot
from levtrade.market.series import resolution_candles
from levtrade.models import MS_PER_HOUR
from levtrade.setups.generator import compute_suggested_setup
from levtrade.setups.ledger import track_setup
from levtrade.setups.models import SetupSource
from levtrade.signals.engine import compute_signals
from levtrade.signals.models import AssetSignals
from levtrade.state import AppState
from levtrade.tracker.ledger import track_signals

logger = get_logger(__name__)

#: Source tag stamped on replayed signal records.
BACKFILL_SOURCE = SetupSource.BACKFILL.value


def generate_backfill_timestamps(last_computed_at: int, now: int) -> list[int]:
    """Hour boundaries strictly after ``last_computed_at`` and before ``now``."""
    first = (last_computed_at // MS_PER_HOUR + 1) * MS_PER_HOUR
    return list(range(first, now, MS_PER_HOUR))


def compute_signals_at_time(
    coin: str,
    snapshot: MarketSnapshot,
    target_time: int,
    settings: SignalSettings,
) -> AssetSignals | None:
    """Recompute signals from the data known at ``target_time``.

    Every series is cut to ``time <= target_time``. Thin funding / OI
    history is replaced by neutral "Unavailable" readings instead of noise.

    Returns:
        AssetSignals stamped ``updated_at=target_time`` (never stale or
        warming up), or None when fewer than the warm-up count of candles
        existed at that time.
    """
    candles = [c for c in resolution_candles(snapshot) if c.time <= target_time]
    if len(candles) < settings.warmup_candles:
        return None
    return compute_signals(
        coin,
        candles,
        [f for f in snapshot.funding if f.time <= target_time],
        [o for o in snapshot.open_interest if o.time <= target_time],
        updated_at=target_time,
        settings=settings,
        is_stale=False,
        neutral_fallbacks=True,
    )


def price_at(candles: Sequence[Candle], target_time: int) -> Decimal | None:
    """Close of the latest candle at or before ``target_time``."""
    eligible = [c for c in candles if c.time <= target_time]
    return eligible[-1].close if eligible else None


def needs_backfill(state: AppState, now: int, settings: AppSettings) -> bool:
    last = state.last_signal_computed_at
    return last is not None and now - last >= settings.tracker.backfill_min_gap_ms


def backfill_state(
    state: AppState,
    markets: Mapping[str, MarketSnapshot],
    now: int,
    settings: AppSettings,
) -> AppState:
    """Replay every missed hour for every coin in ``markets``.

    Does nothing unless the last live computation is known and at least
    ``backfill_min_gap_ms`` old; shorter gaps are covered by live ticks.
    """
    last = state.last_signal_computed_at
    if last is None or not needs_backfill(state, now, settings):
        return state
    timestamps = generate_backfill_timestamps(last, now)

    setups = state.tracked_setups
    records = state.tracked_signals
    outcomes = state.tracked_outcomes
    replayed = 0
    for coin in sorted(markets):
        snapshot = markets[coin]
        candles = resolution_candles(snapshot)
        for t in timestamps:
            signals = compute_signals_at_time(coin, snapshot, t, settings.signal)
            price = price_at(candles, t)
            if signals is None or price is None:
                continue
            replayed += 1
            records, outcomes = track_signals(
                records, outcomes, coin, signals, price, settings.tracker, BACKFILL_SOURCE
            )
            setup = compute_suggested_setup(
                coin, signals, price, t, SetupSource.BACKFILL, settings.risk
            )
            if setup is not None:
                setups = track_setup(setups, setup, settings.tracker)

    logger.info(
        "backfill_completed",
        hours=len(timestamps),
        replayed=replayed,
        setups_added=len(setups) - len(state.tracked_setups),
        records_added=len(records) - len(state.tracked_signals),
    )
    return replace(
        state,
        tracked_setups=setups,
        tracked_signals=records,
        tracked_outcomes=outcomes,
    )
