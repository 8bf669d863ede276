"""Funding-rate z-score (crowd positioning).

Persistently high funding means longs are crowded and paying shorts; the
signal fades the crowd: ``normalized = clamp(-z / 3, -1, 1)``.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from levtrade.market.models import FundingSnapshot
from levtrade.models import HUNDRED, ONE, ZERO, SignalColor
from levtrade.signals.models import FundingResult
from levtrade.signals.stats import clamp, mean, population_stddev

_THREE = Decimal("3")


def classify_funding(z: Decimal) -> tuple[str, SignalColor]:
    """Return (label, color) for a funding z-score."""
    magnitude = abs(z)
    if magnitude > 2:
        return ("Extreme Longs" if z > 0 else "Extreme Shorts"), SignalColor.GREEN
    if magnitude > 1:
        return ("Crowded Long" if z > 0 else "Crowded Short"), SignalColor.YELLOW
    return "Balanced", SignalColor.RED


def compute_funding_zscore(
    history: Sequence[FundingSnapshot],
    window: int = 30,
    min_entries: int = 8,
) -> FundingResult:
    """Z-score the latest funding rate against the trailing ``window`` rates.

    Args:
        history: Funding snapshots ordered oldest-first.
        window: Number of trailing snapshots to compare against.
        min_entries: Minimum history length for a score.

    Returns:
        FundingResult; "Insufficient Data" (current rate = last rate or 0)
        below ``min_entries`` and "Flat Funding" for a constant window.
    """
    if len(history) < min_entries:
        return FundingResult(
            current_rate=history[-1].rate if history else ZERO,
            z_score=ZERO,
            normalized_signal=ZERO,
            label="Insufficient Data",
            color=SignalColor.YELLOW,
            explanation=(
                f"Need at least {min_entries} funding rate snapshots. "
                f"Currently have {len(history)}."
            ),
        )

    rates = [s.rate for s in history[-window:]]
    current = history[-1].rate
    stddev = population_stddev(rates)
    if stddev == 0:
        return FundingResult(
            current_rate=current,
            z_score=ZERO,
            normalized_signal=ZERO,
            label="Flat Funding",
            color=SignalColor.YELLOW,
            explanation=(
                "Funding rates have been steady — no extreme crowd positioning detected."
            ),
        )

    z = (current - mean(rates)) / stddev
    label, color = classify_funding(z)
    return FundingResult(
        current_rate=current,
        z_score=z,
        normalized_signal=clamp(-z / _THREE, -ONE, ONE),
        label=label,
        color=color,
        explanation=_explain(z, current),
    )


def _explain(z: Decimal, rate: Decimal) -> str:
    magnitude = abs(z)
    detail = f"(funding: {rate * HUNDRED:.4f}%, z-score: {z:.2f})"
    if magnitude > 2:
        if z > 0:
            return (
                f"The crowd is extremely long {detail}. When everyone bets the same way, "
                "the market often moves against them. Strong contrarian SHORT signal."
            )
        return (
            f"The crowd is extremely short {detail}. Extreme bearish positioning often "
            "leads to a squeeze upward. Strong contrarian LONG signal."
        )
    if magnitude > 1:
        if z > 0:
            return (
                f"More traders are long than usual {detail}. Mild contrarian signal "
                "— the crowd could be wrong."
            )
        return (
            f"More traders are short than usual {detail}. Mild contrarian signal "
            "— shorts may get squeezed."
        )
    return (
        f"Crowd positioning is balanced {detail}. No strong contrarian signal "
        "— the crowd isn't extreme."
    )
