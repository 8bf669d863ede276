"""Signal engine: runs every primitive for one coin and assembles AssetSignals.

Pure: the caller supplies the series and the clock. Live ticks use
``compute_asset_signals``; historical replay and the scheduled job call
``compute_signals`` directly with their own staleness flag.
"""

from collections.abc import Sequence
from decimal import Decimal

from levtrade.config import SignalSettings
from levtrade.market.models import Candle, FundingSnapshot, MarketSnapshot, OISnapshot
from levtrade.models import ONE, SignalColor, ZERO
from levtrade.signals.composite import compute_composite
from levtrade.signals.decision import compute_decision
from levtrade.signals.entry_geometry import compute_entry_geometry
from levtrade.signals.funding import compute_funding_zscore
from levtrade.signals.models import AssetSignals, FundingResult, OIDeltaResult
from levtrade.signals.oi_delta import compute_oi_delta
from levtrade.signals.regime import compute_regime
from levtrade.signals.volatility import compute_volatility
from levtrade.signals.zscore import compute_zscore

#: Substituted during replay when historical funding is too thin to score.
NEUTRAL_FUNDING = FundingResult(
    current_rate=ZERO,
    z_score=ZERO,
    normalized_signal=ZERO,
    label="Unavailable",
    color=SignalColor.YELLOW,
    explanation="Funding data unavailable for backfill period",
)

#: Substituted during replay when historical OI is too thin to score.
NEUTRAL_OI = OIDeltaResult(
    oi_change_pct=ZERO,
    price_change_pct=ZERO,
    confirmation=False,
    normalized_signal=ZERO,
    label="Unavailable",
    color=SignalColor.YELLOW,
    explanation="OI data unavailable for backfill period",
)


def is_feed_stale(last_update: int | None, now: int, stale_after_ms: int) -> bool:
    """A feed is stale when it never updated or has not updated recently."""
    return last_update is None or now - last_update > stale_after_ms


def compute_signals(
    coin: str,
    candles: Sequence[Candle],
    funding: Sequence[FundingSnapshot],
    open_interest: Sequence[OISnapshot],
    updated_at: int,
    settings: SignalSettings,
    is_stale: bool = False,
    neutral_fallbacks: bool = False,
) -> AssetSignals | None:
    """Compute the full signal set from explicit series.

    Args:
        coin: Asset symbol.
        candles: Hourly candles ordered oldest-first.
        funding: Funding snapshots ordered oldest-first.
        open_interest: Hourly OI snapshots ordered oldest-first.
        updated_at: Timestamp stamped on the result.
        settings: Signal parameters.
        is_stale: Whether the upstream feed is considered stale.
        neutral_fallbacks: Replace thin funding / OI readings with neutral
            "Unavailable" results (historical replay).

    Returns:
        AssetSignals, or None when fewer than ``settings.min_candles``
        candles are available.
    """
    if len(candles) < settings.min_candles:
        return None

    closes = [c.close for c in candles]
    regime = compute_regime(closes, settings.regime_period)
    zscore = compute_zscore(closes, settings.zscore_period)

    if neutral_fallbacks and len(funding) < settings.funding_min_entries:
        funding_result = NEUTRAL_FUNDING
    else:
        funding_result = compute_funding_zscore(
            funding, settings.funding_window, settings.funding_min_entries
        )

    if neutral_fallbacks and len(open_interest) < settings.oi_min_entries:
        oi_result = NEUTRAL_OI
    else:
        oi_result = compute_oi_delta(
            open_interest,
            closes,
            settings.oi_window,
            settings.oi_change_threshold,
            settings.oi_price_threshold,
        )

    volatility = compute_volatility(
        candles, settings.volatility_period, settings.atr_period, settings.periods_per_year
    )
    entry_geometry = compute_entry_geometry(closes, volatility.atr, settings.zscore_period)
    composite = compute_composite(regime, zscore, funding_result, oi_result)

    is_warming_up = len(candles) < settings.warmup_candles
    decision = compute_decision(
        composite,
        entry_geometry,
        regime,
        is_stale=is_stale,
        is_warming_up=is_warming_up,
        veto_threshold=settings.regime_veto_threshold,
    )

    return AssetSignals(
        coin=coin,
        regime=regime,
        zscore=zscore,
        funding=funding_result,
        oi_delta=oi_result,
        volatility=volatility,
        entry_geometry=entry_geometry,
        composite=composite,
        decision=decision,
        updated_at=updated_at,
        is_stale=is_stale,
        is_warming_up=is_warming_up,
        warmup_progress=min(ONE, Decimal(len(candles)) / Decimal(settings.warmup_candles)),
    )


def compute_asset_signals(
    coin: str,
    snapshot: MarketSnapshot,
    now: int,
    settings: SignalSettings,
) -> AssetSignals | None:
    """Compute live signals for ``coin`` from its current market snapshot.

    Staleness is measured from the snapshot's last live price update.
    """
    stale = is_feed_stale(snapshot.last_update, now, settings.stale_after_ms)
    return compute_signals(
        coin,
        snapshot.candles,
        snapshot.funding,
        snapshot.open_interest,
        updated_at=now,
        settings=settings,
        is_stale=stale,
    )


def reference_price(snapshot: MarketSnapshot) -> Decimal:
    """Live price if known, else the latest close, else 0."""
    if snapshot.price is not None:
        return snapshot.price
    latest = snapshot.latest_candle
    return latest.close if latest is not None else ZERO

