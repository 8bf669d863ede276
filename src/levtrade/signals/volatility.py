"""Realized volatility and Average True Range.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from dataclasses import replace
from decimal import Decimal

from levtrade.market.models import Candle
from levtrade.models import HUNDRED, ZERO, SignalColor
from levtrade.signals.models import VolatilityLevel, VolatilityResult
from levtrade.signals.stats import log_returns, mean, population_stddev

_LEVEL_COLORS: dict[VolatilityLevel, SignalColor] = {
    VolatilityLevel.EXTREME: SignalColor.RED,
    VolatilityLevel.HIGH: SignalColor.YELLOW,
    VolatilityLevel.NORMAL: SignalColor.GREEN,
    VolatilityLevel.LOW: SignalColor.GREEN,
}


def compute_atr(candles: Sequence[Candle], period: int = 14) -> Decimal:
    """Average True Range with Wilder smoothing.

    Seeded with the simple average of the first ``period`` true ranges, then
    updated as ``atr = (atr * (period - 1) + tr) / period``. With fewer true
    ranges than ``period`` the simple average of what exists is returned.

    Args:
        candles: Candles ordered oldest-first.
        period: Smoothing period.

    Returns:
        ATR in price units; 0 for fewer than 2 candles.
    """
    if len(candles) < 2:
        return ZERO

    true_ranges = [
        max(curr.high - curr.low, abs(curr.high - prev.close), abs(curr.low - prev.close))
        for prev, curr in zip(candles, candles[1:])
    ]
    if len(true_ranges) < period:
        return mean(true_ranges)

    atr = mean(true_ranges[:period])
    for tr in true_ranges[period:]:
        atr = (atr * (period - 1) + tr) / period
    return atr


def classify_volatility(annualized: Decimal) -> VolatilityLevel:
    if annualized > 100:
        return VolatilityLevel.EXTREME
    if annualized > 60:
        return VolatilityLevel.HIGH
    if annualized > 30:
        return VolatilityLevel.NORMAL
    return VolatilityLevel.LOW


def compute_realized_vol(
    closes: Sequence[Decimal],
    period: int = 20,
    periods_per_year: int = 8760,
) -> VolatilityResult:
    """Annualized realized volatility (percent) of the last ``period`` log returns.

    The returned result carries ``atr = 0``; use ``compute_volatility`` for
    the combined reading.
    """
    if len(closes) < period + 1:
        return VolatilityResult(
            realized_vol=ZERO,
            atr=ZERO,
            level=VolatilityLevel.NORMAL,
            color=SignalColor.YELLOW,
            explanation=(
                f"Need at least {period + 1} candles to measure volatility. "
                f"Currently have {len(closes)}."
            ),
        )

    returns = log_returns(list(closes[-(period + 1):]))
    if len(returns) < 2:
        return VolatilityResult(
            realized_vol=ZERO,
            atr=ZERO,
            level=VolatilityLevel.NORMAL,
            color=SignalColor.YELLOW,
            explanation="Not enough price movement to measure volatility.",
        )

    annualized = population_stddev(returns) * Decimal(periods_per_year).sqrt() * HUNDRED
    level = classify_volatility(annualized)
    return VolatilityResult(
        realized_vol=annualized,
        atr=ZERO,
        level=level,
        color=_LEVEL_COLORS[level],
        explanation=_explain(annualized, level),
    )


def compute_volatility(
    candles: Sequence[Candle],
    period: int = 20,
    atr_period: int = 14,
    periods_per_year: int = 8760,
) -> VolatilityResult:
    """Realized volatility from candle closes, with the ATR filled in."""
    realized = compute_realized_vol([c.close for c in candles], period, periods_per_year)
    return replace(realized, atr=compute_atr(candles, atr_period))


def _explain(annualized: Decimal, level: VolatilityLevel) -> str:
    vol = f"{annualized:.1f}"
    explanations = {
        VolatilityLevel.EXTREME: (
            f"Volatility is EXTREME ({vol}% annualized) - price is swinging wildly. Use "
            "much lower leverage and very wide stops, or sit this out entirely."
        ),
        VolatilityLevel.HIGH: (
            f"Volatility is HIGH ({vol}% annualized) - price is swinging a lot. Use lower "
            "leverage and wider stops than usual."
        ),
        VolatilityLevel.NORMAL: (
            f"Volatility is NORMAL for crypto ({vol}% annualized) - active but not extreme. "
            "Standard position sizing and stops are appropriate."
        ),
        VolatilityLevel.LOW: (
            f"Volatility is LOW ({vol}% annualized) - price is calm and stable. Tighter "
            "stops are safer, and slightly higher leverage is more reasonable."
        ),
    }
    return explanations[level]
