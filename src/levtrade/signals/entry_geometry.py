"""Entry geometry: how far the latest close is stretched from its mean.

Scores the stretch in both standard deviations and ATRs, and grades it as
an entry for a fade back toward the mean.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from levtrade.models import HUNDRED, ONE, ZERO, SignalColor, SignalDirection
from levtrade.signals.models import EntryGeometryResult, EntryQuality
from levtrade.signals.stats import clamp, mean, population_stddev

_HALF = Decimal("0.5")
_BIAS_THRESHOLD = Decimal("0.35")

_QUALITY_COLORS: dict[EntryQuality, SignalColor] = {
    EntryQuality.IDEAL: SignalColor.GREEN,
    EntryQuality.EXTENDED: SignalColor.YELLOW,
    EntryQuality.EARLY: SignalColor.YELLOW,
    EntryQuality.CHASING: SignalColor.RED,
    EntryQuality.NO_EDGE: SignalColor.RED,
}


def classify_entry_quality(abs_z: Decimal, atr_dislocation: Decimal) -> EntryQuality:
    """Grade a stretch given its absolute z and ATR dislocation."""
    if abs_z < Decimal("0.75"):
        return EntryQuality.NO_EDGE
    if abs_z < Decimal("1.25"):
        return EntryQuality.EARLY
    if atr_dislocation < Decimal("0.8") and abs_z < Decimal("2.4"):
        return EntryQuality.EARLY
    if abs_z <= Decimal("2.4") and atr_dislocation <= Decimal("2.4"):
        return EntryQuality.IDEAL
    if abs_z <= Decimal("3.2") and atr_dislocation <= Decimal("3.4"):
        return EntryQuality.EXTENDED
    return EntryQuality.CHASING


def _flat(mean_price: Decimal, chase_risk: Decimal, explanation: str) -> EntryGeometryResult:
    return EntryGeometryResult(
        distance_from_mean_pct=ZERO,
        stretch_z=ZERO,
        atr_dislocation=ZERO,
        band_position=_HALF,
        mean_price=mean_price,
        reversion_potential=ZERO,
        chase_risk=chase_risk,
        entry_quality=EntryQuality.NO_EDGE,
        direction_bias=SignalDirection.NEUTRAL,
        color=SignalColor.YELLOW,
        explanation=explanation,
    )


def compute_entry_geometry(
    closes: Sequence[Decimal],
    atr: Decimal,
    period: int = 20,
) -> EntryGeometryResult:
    """Score the latest close's stretch from the ``period``-close mean.

    Args:
        closes: Close prices ordered oldest-first.
        atr: Current ATR, used to express the stretch in ATRs.
        period: Rolling window length.

    Returns:
        EntryGeometryResult. Direction bias is long below -0.35σ and short
        above +0.35σ (a fade of the stretch).
    """
    if len(closes) < period:
        return _flat(
            ZERO,
            Decimal("0.25"),
            f"Need at least {period} closes to score entry geometry. "
            f"Currently have {len(closes)}.",
        )

    window = list(closes[-period:])
    current = window[-1]
    avg = mean(window)
    stddev = population_stddev(window)
    if stddev == 0 or avg <= 0:
        return _flat(avg, Decimal("0.2"), "Price is too flat to score a meaningful entry edge.")

    z = (current - avg) / stddev
    abs_z = abs(z)
    atr_dislocation = abs(current - avg) / atr if atr > 0 else ZERO
    if z < -_BIAS_THRESHOLD:
        bias = SignalDirection.LONG
    elif z > _BIAS_THRESHOLD:
        bias = SignalDirection.SHORT
    else:
        bias = SignalDirection.NEUTRAL
    quality = classify_entry_quality(abs_z, atr_dislocation)

    return EntryGeometryResult(
        distance_from_mean_pct=(current - avg) / avg * HUNDRED,
        stretch_z=z,
        atr_dislocation=atr_dislocation,
        band_position=clamp((z + Decimal("2.5")) / 5, ZERO, ONE),
        mean_price=avg,
        reversion_potential=clamp((abs_z - Decimal("0.6")) / Decimal("1.8"), ZERO, ONE),
        chase_risk=clamp((Decimal("2.8") - abs_z) / Decimal("2.8"), ZERO, ONE),
        entry_quality=quality,
        direction_bias=bias,
        color=_QUALITY_COLORS[quality],
        explanation=_explain(current, avg, z, atr_dislocation, quality),
    )


def _explain(
    current: Decimal,
    avg: Decimal,
    z: Decimal,
    atr_dislocation: Decimal,
    quality: EntryQuality,
) -> str:
    side = "above" if z > 0 else "below"
    fade = "short" if z > 0 else "long"
    sigma = f"{abs(z):.2f}"
    atrs = f"{atr_dislocation:.2f}"
    explanations = {
        EntryQuality.IDEAL: (
            f"Price is {sigma} standard deviations {side} fair value with {atrs} ATRs of "
            f"stretch. This is the sweet spot for a {fade} fade."
        ),
        EntryQuality.EXTENDED: (
            f"Price is deeply stretched ({sigma}σ, {atrs} ATRs). The setup is still "
            "actionable, but slippage and violent snap-backs are more likely."
        ),
        EntryQuality.EARLY: (
            f"Price is leaning away from fair value but has not stretched enough yet "
            f"({sigma}σ, {atrs} ATRs). Let it travel further before leaning in."
        ),
        EntryQuality.CHASING: (
            f"Price is too far from equilibrium ({sigma}σ). The move is likely already "
            "overextended, so chasing here carries poor geometry."
        ),
        EntryQuality.NO_EDGE: (
            f"Price ({current:.2f}) is still hugging its mean ({avg:.2f}). The rubber band "
            "has not stretched enough to create a clean mean-reversion edge."
        ),
    }
    return explanations[quality]
