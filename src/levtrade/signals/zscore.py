"""Price z-score against a rolling mean (price position).

The normalized signal is contrarian: a price far above its mean leans
short, far below leans long. ``normalized = clamp(-z / 3, -1, 1)``.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from levtrade.models import ONE, ZERO, SignalColor
from levtrade.signals.models import ZScoreResult
from levtrade.signals.stats import clamp, mean, population_stddev

_THREE = Decimal("3")


def classify_zscore(z: Decimal) -> tuple[str, SignalColor]:
    """Return (label, color) for a price z-score.

    Extreme readings are green because they are the opportunity for a
    mean-reversion entry; the normal range is red (no edge).
    """
    magnitude = abs(z)
    if magnitude > Decimal("2.5"):
        return ("Extremely Overbought" if z > 0 else "Extremely Oversold"), SignalColor.GREEN
    if magnitude > 2:
        return ("Strongly Overbought" if z > 0 else "Strongly Oversold"), SignalColor.GREEN
    if magnitude > 1:
        return ("Overbought" if z > 0 else "Oversold"), SignalColor.YELLOW
    return "Normal Range", SignalColor.RED


def compute_zscore(closes: Sequence[Decimal], period: int = 20) -> ZScoreResult:
    """Compute the z-score of the latest close over the last ``period`` closes.

    Args:
        closes: Close prices ordered oldest-first.
        period: Rolling window length.

    Returns:
        ZScoreResult; "Insufficient Data" below ``period`` closes and
        "No Movement" when the window is flat.
    """
    if len(closes) < period:
        return ZScoreResult(
            value=ZERO,
            normalized_signal=ZERO,
            label="Insufficient Data",
            color=SignalColor.YELLOW,
            explanation=(
                f"Need at least {period} candles to calculate price position. "
                f"Currently have {len(closes)}."
            ),
        )

    window = list(closes[-period:])
    current = closes[-1]
    avg = mean(window)
    stddev = population_stddev(window)
    if stddev == 0:
        return ZScoreResult(
            value=ZERO,
            normalized_signal=ZERO,
            label="No Movement",
            color=SignalColor.YELLOW,
            explanation="Price has been flat — no position signal.",
        )

    z = (current - avg) / stddev
    label, color = classify_zscore(z)
    return ZScoreResult(
        value=z,
        normalized_signal=clamp(-z / _THREE, -ONE, ONE),
        label=label,
        color=color,
        explanation=_explain(z, current, avg),
    )


def _explain(z: Decimal, current: Decimal, avg: Decimal) -> str:
    magnitude = abs(z)
    side = "above" if z > 0 else "below"
    price = f"${current:,.2f}"
    average = f"${avg:,.2f}"
    if magnitude > 2:
        cheapness = "expensive" if z > 0 else "cheap"
        reverse = "drop back down" if z > 0 else "bounce back up"
        return (
            f"Price ({price}) is {magnitude:.1f} std devs {side} the 20-period average "
            f"({average}) — unusually {cheapness}, often means it will {reverse}. "
            "Strong contrarian signal."
        )
    if magnitude > 1:
        cheapness = "expensive" if z > 0 else "cheap"
        return (
            f"Price ({price}) is {magnitude:.1f} std devs {side} the average ({average}) "
            f"— starting to look {cheapness}, but not extreme yet."
        )
    return (
        f"Price ({price}) is near its 20-period average ({average}) — nothing unusual. "
        "No signal from price position."
    )
