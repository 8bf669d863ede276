"""Market regime classification from return autocorrelation.

A full rescaled-range Hurst estimate is too noisy on ~100 hourly samples,
so the exponent is approximated from the lag-1 autocorrelation of log
returns: ``H = clamp(0.5 + acf1, 0, 1)``. Positive autocorrelation reads as
trending (H > 0.5), negative as mean-reverting (H < 0.5).

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from levtrade.models import ONE, ZERO, SignalColor
from levtrade.signals.models import MarketRegime, RegimeResult
from levtrade.signals.stats import clamp, log_returns, mean

_HALF = Decimal("0.5")
_TRENDING_ABOVE = Decimal("0.55")
_MEAN_REVERTING_BELOW = Decimal("0.45")
_STRONG_TREND_ABOVE = Decimal("0.65")
_STRONG_REVERSION_BELOW = Decimal("0.40")

_REGIME_COLORS: dict[MarketRegime, SignalColor] = {
    MarketRegime.MEAN_REVERTING: SignalColor.GREEN,
    MarketRegime.TRENDING: SignalColor.YELLOW,
    MarketRegime.CHOPPY: SignalColor.RED,
}

_NO_DATA = RegimeResult(
    value=_HALF,
    regime=MarketRegime.CHOPPY,
    color=SignalColor.YELLOW,
    confidence=ZERO,
    explanation="Not enough data yet to determine market type.",
)


def classify_regime(value: Decimal) -> MarketRegime:
    """Map an H value onto the three regimes (0.45 / 0.55 boundaries)."""
    if value > _TRENDING_ABOVE:
        return MarketRegime.TRENDING
    if value < _MEAN_REVERTING_BELOW:
        return MarketRegime.MEAN_REVERTING
    return MarketRegime.CHOPPY


def compute_regime(closes: Sequence[Decimal], period: int = 100) -> RegimeResult:
    """Classify the market regime from the most recent ``period + 1`` closes.

    Args:
        closes: Close prices ordered oldest-first.
        period: Number of returns that gives full confidence.

    Returns:
        RegimeResult. With fewer than 3 closes (or fewer than 2 usable
        returns) the neutral "not enough data" result is returned with
        confidence 0. A zero-variance window is choppy with the computed
        confidence.
    """
    available = len(closes)
    if available < 3:
        return _NO_DATA
    confidence = min(ONE, Decimal(available) / Decimal(period))

    window = list(closes[-min(available, period + 1):])
    returns = log_returns(window)
    if len(returns) < 2:
        return _NO_DATA

    n = Decimal(len(returns))
    avg = mean(returns)
    variance = sum(((r - avg) ** 2 for r in returns), ZERO) / n
    if variance == 0:
        return RegimeResult(
            value=_HALF,
            regime=MarketRegime.CHOPPY,
            color=SignalColor.YELLOW,
            confidence=confidence,
            explanation="Price has not moved — no trend or mean-reversion detected.",
        )

    autocovariance = sum(
        ((curr - avg) * (prev - avg) for prev, curr in zip(returns, returns[1:])),
        ZERO,
    ) / n
    value = clamp(_HALF + autocovariance / variance, ZERO, ONE)
    regime = classify_regime(value)
    return RegimeResult(
        value=value,
        regime=regime,
        color=_REGIME_COLORS[regime],
        confidence=confidence,
        explanation=_explain(value, regime, confidence),
    )


def _explain(value: Decimal, regime: MarketRegime, confidence: Decimal) -> str:
    if confidence < _HALF:
        return (
            "Still gathering data — market type will become clearer over the next few hours."
        )
    if regime is MarketRegime.TRENDING:
        if value > _STRONG_TREND_ABOVE:
            return (
                "The market is trending strongly in one direction — mean-reversion signals "
                "are unreliable here. Consider sitting this one out or trading with the trend."
            )
        return (
            "The market is showing mild trending behavior — signals may be less "
            "reliable than usual."
        )
    if regime is MarketRegime.MEAN_REVERTING:
        if value < _STRONG_REVERSION_BELOW:
            return (
                "The market is strongly bouncing between levels — this is ideal for our "
                "signals. Prices that stretch far from average tend to snap back."
            )
        return "The market is bouncing between levels — good conditions for our signals."
    return (
        "The market is moving without a clear pattern — neither trending nor bouncing "
        "predictably. Signals are unreliable, consider waiting for clarity."
    )
