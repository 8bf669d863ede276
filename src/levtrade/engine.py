"""One deterministic step of the application: ``advance(state, markets, now)``.

Order within a step:

1. Backfill the missed hours when the last live computation is old enough.
2. Per coin (sorted): live signals, raw-signal tracking, setup generation.
3. Resolve pending setup windows and pending signal outcomes.
4. Prune both ledgers to the retention window.

The same inputs always produce the same output, and calling ``advance``
again with the same arguments changes nothing beyond the bookkeeping
timestamps it already set.
"""

from collections.abc import Mapping
from dataclasses import replace

from levtrade.backfill import backfill_state
from levtrade.config import AppSettings
from levtrade.logging import get_logger
from levtrade.market.models import MarketSnapshot
from levtrade.setups.generator import compute_suggested_setup
from levtrade.setups.ledger import prune_setups, resolve_setup_outcomes, track_setup
from levtrade.setups.models import SetupSource
from levtrade.signals.engine import compute_asset_signals, reference_price
from levtrade.state import AppState
from levtrade.tracker.ledger import prune_tracker, resolve_tracked_outcomes, track_signals

logger = get_logger(__name__)


def advance(
    state: AppState,
    markets: Mapping[str, MarketSnapshot],
    now: int,
    settings: AppSettings,
) -> AppState:
    """Compute the next state from the current one and fresh market snapshots.

    Args:
        state: Current application state.
        markets: Latest snapshot per coin.
        now: Tick timestamp (ms); used for every "now" in this step.
        settings: Application settings.

    Returns:
        The next AppState. ``updated_at`` only moves when ledger content
        changed; ``last_signal_computed_at`` and ``tracker_last_run_at``
        always move to ``now``.
    """
    current = backfill_state(state, markets, now, settings)
    setups = current.tracked_setups
    records = current.tracked_signals
    outcomes = current.tracked_outcomes

    for coin in sorted(markets):
        snapshot = markets[coin]
        signals = compute_asset_signals(coin, snapshot, now, settings.signal)
        if signals is None:
            logger.debug("signals_unavailable", coin=coin, candles=len(snapshot.candles))
            continue
        price = reference_price(snapshot)
        records, outcomes = track_signals(records, outcomes, coin, signals, price, settings.tracker)
        setup = compute_suggested_setup(coin, signals, price, now, SetupSource.LIVE, settings.risk)
        if setup is not None:
            setups = track_setup(setups, setup, settings.tracker)

    setups = resolve_setup_outcomes(setups, markets, now, settings.resolution)
    outcomes = resolve_tracked_outcomes(records, outcomes, markets, now, settings.resolution)
    setups = prune_setups(setups, now, settings.tracker)
    records, outcomes = prune_tracker(records, outcomes, now, settings.tracker)

    advanced = replace(
        current,
        tracked_setups=setups,
        tracked_signals=records,
        tracked_outcomes=outcomes,
        last_signal_computed_at=now,
        tracker_last_run_at=now,
    )
    changed = not advanced.same_content(state)
    return replace(advanced, updated_at=now if changed else state.updated_at)
