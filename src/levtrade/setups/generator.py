"""Suggested setup generator.

Turns an entry decision into a concrete trade proposal: entry at the
current price, ATR stop and 2:1 target from the risk calculator, sizing for
the default account, and a confidence score built from signal agreement,
composite strength, reversion potential and regime confidence.
"""

from decimal import Decimal

from levtrade.config import RiskSettings
from levtrade.models import ONE, ZERO, TradeDirection, is_valid_price
from levtrade.risk.calculator import compute_risk
from levtrade.risk.models import RiskInputs
from levtrade.setups.models import ConfidenceTier, SetupSource, SetupTimeframe, SuggestedSetup
from levtrade.signals.models import AssetSignals, DecisionAction, EntryQuality, MarketRegime
from levtrade.signals.stats import clamp

_TRADE_DIRECTIONS: dict[DecisionAction, TradeDirection] = {
    DecisionAction.LONG: TradeDirection.LONG,
    DecisionAction.SHORT: TradeDirection.SHORT,
}

_QUALITY_TIMEFRAMES: dict[EntryQuality, SetupTimeframe] = {
    EntryQuality.EXTENDED: SetupTimeframe.SHORT,
    EntryQuality.EARLY: SetupTimeframe.LONG,
    EntryQuality.IDEAL: SetupTimeframe.STANDARD,
    EntryQuality.CHASING: SetupTimeframe.STANDARD,
    EntryQuality.NO_EDGE: SetupTimeframe.STANDARD,
}


def confidence_tier(confidence: Decimal) -> ConfidenceTier:
    if confidence > Decimal("0.6"):
        return ConfidenceTier.HIGH
    if confidence > Decimal("0.3"):
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def _timeframe(quality: EntryQuality, regime: MarketRegime) -> SetupTimeframe:
    if quality is EntryQuality.IDEAL and regime is MarketRegime.MEAN_REVERTING:
        return SetupTimeframe.STANDARD
    return _QUALITY_TIMEFRAMES[quality]


def compute_suggested_setup(
    coin: str,
    signals: AssetSignals,
    price: Decimal,
    generated_at: int,
    source: SetupSource | None,
    settings: RiskSettings,
) -> SuggestedSetup | None:
    """Build a setup when the decision is an entry.

    Args:
        coin: Asset symbol.
        signals: Signal set the decision was computed from.
        price: Entry price (current mid or replayed close).
        generated_at: Timestamp recorded on the setup.
        source: Origin of the setup.
        settings: Risk constants (default account size for sizing).

    Returns:
        SuggestedSetup, or None when the price is unusable, the feed is stale
        or warming up, ATR or the mean target is unusable, or the decision is
        not an entry.
    """
    atr = signals.volatility.atr
    geometry = signals.entry_geometry
    if (
        not is_valid_price(price)
        or signals.is_stale
        or signals.is_warming_up
        or not is_valid_price(atr)
        or not is_valid_price(geometry.mean_price)
    ):
        return None

    direction = _TRADE_DIRECTIONS.get(signals.decision.action)
    if direction is None:
        return None

    risk = compute_risk(
        RiskInputs(
            coin=coin,
            direction=direction,
            entry_price=price,
            account_size=settings.default_account_size,
            position_size=ZERO,
            leverage=ONE,
        ),
        atr,
        settings,
    )

    composite = signals.composite
    regime = signals.regime
    alignment = (
        Decimal(composite.agreement_count) / Decimal(composite.agreement_total)
        if composite.agreement_total > 0
        else ZERO
    )
    confidence = clamp(
        alignment
        * min(ONE, abs(composite.value))
        * geometry.reversion_potential
        * regime.confidence
        * 2,
        ZERO,
        ONE,
    )
    stretch = abs(geometry.stretch_z)
    side = "below" if direction is TradeDirection.LONG else "above"
    summary = (
        f"{coin} is {stretch:.1f}σ {side} its 20-period mean (${geometry.mean_price:.0f}) "
        f"in a {regime.regime.value} market. "
        f"{composite.agreement_count}/{composite.agreement_total} signals agree. "
        f"{direction.value.upper()} entry at ${price:.0f} with stop "
        f"${risk.suggested_stop_price:.0f}, target ${risk.suggested_target_price:.0f} "
        f"({risk.rr_ratio:.1f}:1 R:R)."
    )

    return SuggestedSetup(
        coin=coin,
        direction=direction,
        entry_price=price,
        stop_price=risk.suggested_stop_price,
        target_price=risk.suggested_target_price,
        mean_reversion_target=geometry.mean_price,
        rr_ratio=risk.rr_ratio,
        suggested_position_size=risk.suggested_position_size,
        suggested_leverage=risk.suggested_leverage,
        trade_grade=risk.trade_grade,
        confidence=confidence,
        confidence_tier=confidence_tier(confidence),
        entry_quality=geometry.entry_quality,
        agreement_count=composite.agreement_count,
        agreement_total=composite.agreement_total,
        regime=regime.regime,
        reversion_potential=geometry.reversion_potential,
        stretch_sigma=stretch,
        atr=atr,
        composite_value=composite.value,
        timeframe=_timeframe(geometry.entry_quality, regime.regime),
        summary=summary,
        generated_at=generated_at,
        source=source,
    )
