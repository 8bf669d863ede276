"""Composite signal: regime-weighted average of the directional signals.

The three directional signals (price z-score, funding z-score, OI delta)
are averaged and scaled by a regime multiplier that amplifies in
mean-reverting markets and dampens in trending ones:

    H < 0.45:  1.0 + (0.45 - H) * 3
    H > 0.55:  0.7 - (H - 0.55) * 2
    otherwise: 0.7 + (0.55 - H) * 3

The multiplier is clamped to [0.1, 1.3] and the composite to [-1, 1].

CRITICAL: All computations use Decimal. Never use float for signal scores.
"""

from decimal import Decimal

from levtrade.models import ONE, SignalColor, SignalDirection
from levtrade.signals.models import (
    CompositeSignal,
    CompositeStrength,
    FundingResult,
    MarketRegime,
    OIDeltaResult,
    RegimeResult,
    SignalBreakdown,
    ZScoreResult,
)
from levtrade.signals.stats import clamp, direction_of

_LOW_H = Decimal("0.45")
_HIGH_H = Decimal("0.55")
_MIN_MULTIPLIER = Decimal("0.1")
_MAX_MULTIPLIER = Decimal("1.3")

_STRENGTH_WORDS: dict[CompositeStrength, tuple[str, str]] = {
    # (label word, conviction word)
    CompositeStrength.STRONG: ("STRONG", "high"),
    CompositeStrength.MODERATE: ("MODERATE", "moderate"),
    CompositeStrength.WEAK: ("WEAK", "low"),
}

_REGIME_NOTES: dict[MarketRegime, str] = {
    MarketRegime.MEAN_REVERTING: " Market regime is favorable for this signal.",
    MarketRegime.TRENDING: (
        " However, the market is trending, which makes mean-reversion signals less reliable."
    ),
    MarketRegime.CHOPPY: " Market conditions are unclear, so take this with caution.",
}


def regime_multiplier(hurst: Decimal) -> Decimal:
    """Scale factor applied to the raw composite for a given H value."""
    if hurst < _LOW_H:
        multiplier = ONE + (_LOW_H - hurst) * 3
    elif hurst > _HIGH_H:
        multiplier = Decimal("0.7") - (hurst - _HIGH_H) * 2
    else:
        multiplier = Decimal("0.7") + (_HIGH_H - hurst) * 3
    return clamp(multiplier, _MIN_MULTIPLIER, _MAX_MULTIPLIER)


def classify_strength(value: Decimal) -> CompositeStrength:
    magnitude = abs(value)
    if magnitude > Decimal("0.5"):
        return CompositeStrength.STRONG
    if magnitude > Decimal("0.2"):
        return CompositeStrength.MODERATE
    return CompositeStrength.WEAK


def composite_color(value: Decimal) -> SignalColor:
    magnitude = abs(value)
    if magnitude > Decimal("0.3"):
        return SignalColor.GREEN
    if magnitude > Decimal("0.1"):
        return SignalColor.YELLOW
    return SignalColor.RED


def compute_composite(
    regime: RegimeResult,
    zscore: ZScoreResult,
    funding: FundingResult,
    oi_delta: OIDeltaResult,
) -> CompositeSignal:
    """Combine the directional signals under the regime multiplier.

    Agreement counts the directional signals on the majority side, plus one
    when the regime is mean-reverting. The total is 3, plus one whenever
    the regime is not choppy.

    Args:
        regime: Regime classification (H and regime variant).
        zscore: Price position result.
        funding: Crowd positioning result.
        oi_delta: Money flow result.

    Returns:
        CompositeSignal with value in [-1, 1].
    """
    named = (
        ("Price Position", zscore.normalized_signal),
        ("Crowd Positioning", funding.normalized_signal),
        ("Money Flow", oi_delta.normalized_signal),
    )
    signals = [value for _, value in named]
    raw = sum(signals) / len(signals)
    value = clamp(raw * regime_multiplier(regime.value), -ONE, ONE)
    direction = direction_of(value)

    directions = [direction_of(s) for s in signals]
    positive = directions.count(SignalDirection.LONG)
    negative = directions.count(SignalDirection.SHORT)
    agreement_count = max(positive, negative)
    if regime.regime is MarketRegime.MEAN_REVERTING:
        agreement_count += 1
    agreement_total = len(signals) + (0 if regime.regime is MarketRegime.CHOPPY else 1)

    breakdown = tuple(
        SignalBreakdown(
            name=name,
            direction=signal_direction,
            agrees=direction is not SignalDirection.NEUTRAL and signal_direction is direction,
        )
        for (name, _), signal_direction in zip(named, directions)
    )

    strength = classify_strength(value)
    return CompositeSignal(
        value=value,
        direction=direction,
        strength=strength,
        agreement_count=agreement_count,
        agreement_total=agreement_total,
        color=composite_color(value),
        label=_label(direction, strength),
        explanation=_explain(direction, strength, breakdown, regime.regime),
        breakdown=breakdown,
    )


def _label(direction: SignalDirection, strength: CompositeStrength) -> str:
    if direction is SignalDirection.NEUTRAL:
        return "STAY OUT"
    return f"{_STRENGTH_WORDS[strength][0]} {direction.value.upper()}"


def _explain(
    direction: SignalDirection,
    strength: CompositeStrength,
    breakdown: tuple[SignalBreakdown, ...],
    regime: MarketRegime,
) -> str:
    if direction is SignalDirection.NEUTRAL:
        return (
            "Signals are mixed with no clear direction. The safest move is to wait for "
            "stronger alignment before entering a trade."
        )
    agreeing = [b.name for b in breakdown if b.agrees]
    disagreeing = [b.name for b in breakdown if not b.agrees]
    detail = ""
    if agreeing:
        detail += f"{' and '.join(agreeing)} support this."
    if disagreeing:
        verb = "disagrees" if len(disagreeing) == 1 else "disagree"
        detail += f" {' and '.join(disagreeing)} {verb}."
    conviction = _STRENGTH_WORDS[strength][1]
    return f"{direction.value.upper()} with {conviction} conviction. {detail}{_REGIME_NOTES[regime]}"
