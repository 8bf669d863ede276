"""Shared enums, constants and identity helpers.

CRITICAL: All prices, rates and ratios use Decimal. Never use float.
Timestamps are integer milliseconds since the Unix epoch.
"""

import hashlib
import json
from decimal import Decimal
from enum import Enum
from typing import Any

MS_PER_HOUR = 60 * 60 * 1000

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


class SignalColor(str, Enum):
    """Traffic-light color attached to every signal result."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class TradeDirection(str, Enum):
    """Side of a concrete trade proposal."""

    LONG = "long"
    SHORT = "short"


class SignalDirection(str, Enum):
    """Directional lean of a signal; NEUTRAL signals are never scored."""

    LONG = "long"
    SHORT = "short"
    NEUTRAL = "neutral"


class ResolutionWindow(str, Enum):
    """Fixed grading horizons for setups and tracked signals."""

    H4 = "4h"
    H24 = "24h"
    H72 = "72h"

    @property
    def duration_ms(self) -> int:
        return _WINDOW_HOURS[self] * MS_PER_HOUR


_WINDOW_HOURS: dict[ResolutionWindow, int] = {
    ResolutionWindow.H4: 4,
    ResolutionWindow.H24: 24,
    ResolutionWindow.H72: 72,
}

#: Windows in ascending order of duration.
WINDOWS: tuple[ResolutionWindow, ...] = (
    ResolutionWindow.H4,
    ResolutionWindow.H24,
    ResolutionWindow.H72,
)


class CoverageStatus(str, Enum):
    """Data-completeness classification of a resolved outcome."""

    FULL = "full"
    PARTIAL = "partial"
    INSUFFICIENT = "insufficient"

    @property
    def rank(self) -> int:
        """Higher is more complete."""
        return _COVERAGE_RANK[self]


_COVERAGE_RANK: dict[CoverageStatus, int] = {
    CoverageStatus.FULL: 2,
    CoverageStatus.PARTIAL: 1,
    CoverageStatus.INSUFFICIENT: 0,
}


def hour_floor(timestamp_ms: int) -> int:
    """Start of the hour bucket containing ``timestamp_ms``."""
    return (timestamp_ms // MS_PER_HOUR) * MS_PER_HOUR


def stable_id(*parts: object) -> str:
    """Deterministic short content hash of ``parts``.

    Used instead of random suffixes so that identical inputs always produce
    identical record ids (replay and multi-device merge rely on this).
    """
    payload = "|".join(str(p.value if isinstance(p, Enum) else p) for p in parts)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:10]


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON / ccxt numeric value (int, float, str) to Decimal."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def is_valid_price(value: Decimal) -> bool:
    """True for a finite, strictly positive price (NaN-safe)."""
    return value.is_finite() and value > 0


def to_price(value: Any) -> Decimal:
    """Convert ``value`` like :func:`to_decimal`, rejecting non-finite or non-positive prices.

    Raises:
        ValueError: The value is NaN, infinite, zero or negative.
    """
    price = to_decimal(value)
    if not is_valid_price(price):
        raise ValueError(f"invalid price: {value!r}")
    return price


def optional_decimal(value: Any) -> Decimal | None:
    return None if value is None else to_decimal(value)


def optional_str(value: Decimal | None) -> str | None:
    """Serialize an optional Decimal for JSON (Decimals travel as strings)."""
    return None if value is None else str(value)


def canonical_json(value: Any) -> str:
    """Deterministic JSON text (sorted keys, no whitespace) for comparisons."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
