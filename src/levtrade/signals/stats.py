"""Decimal statistics helpers shared by the signal primitives.

Every helper is defined for empty and single-element inputs and never
raises on them. Variances are population variances (divide by n).
"""

from collections.abc import Sequence
from decimal import Decimal

from levtrade.models import ZERO, SignalDirection


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    """Clamp ``value`` into [low, high]."""
    return max(low, min(high, value))


def mean(values: Sequence[Decimal]) -> Decimal:
    """Arithmetic mean; 0 for an empty sequence."""
    if not values:
        return ZERO
    return sum(values, ZERO) / len(values)


def population_variance(values: Sequence[Decimal]) -> Decimal:
    """Population variance; 0 for fewer than two values."""
    if len(values) < 2:
        return ZERO
    avg = mean(values)
    return sum(((v - avg) ** 2 for v in values), ZERO) / len(values)


def population_stddev(values: Sequence[Decimal]) -> Decimal:
    return population_variance(values).sqrt()


def log_returns(values: Sequence[Decimal]) -> list[Decimal]:
    """Natural-log returns between consecutive positive values.

    Pairs where either side is non-positive are skipped.
    """
    returns = []
    for prev, curr in zip(values, values[1:]):
        if prev > 0 and curr > 0:
            returns.append((curr / prev).ln())
    return returns


def direction_of(value: Decimal, threshold: Decimal = Decimal("0.1")) -> SignalDirection:
    """Map a normalized signal to long / short / neutral using a symmetric band."""
    if value > threshold:
        return SignalDirection.LONG
    if value < -threshold:
        return SignalDirection.SHORT
    return SignalDirection.NEUTRAL


