"""Signal result data models.

Every primitive returns a frozen result carrying a categorical variant (an
enum), a traffic-light color and, where applicable, a directional
``normalized_signal`` in [-1, 1]. Consumers dispatch on the enums through
exhaustive lookup tables, never on free-form strings.

CRITICAL: All values use Decimal. Never use float for signal computations.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from levtrade.models import SignalColor, SignalDirection


class MarketRegime(str, Enum):
    """Market character derived from return autocorrelation."""

    TRENDING = "trending"
    MEAN_REVERTING = "mean-reverting"
    CHOPPY = "choppy"


class VolatilityLevel(str, Enum):
    """Annualized realized volatility bucket."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    EXTREME = "extreme"


class EntryQuality(str, Enum):
    """How well the current stretch from the mean suits a reversion entry."""

    NO_EDGE = "no-edge"
    EARLY = "early"
    IDEAL = "ideal"
    EXTENDED = "extended"
    CHASING = "chasing"


class CompositeStrength(str, Enum):
    """Magnitude bucket of the composite signal."""

    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


class DecisionAction(str, Enum):
    """Categorical output of the decision state machine."""

    LONG = "long"
    SHORT = "short"
    WAIT = "wait"
    AVOID = "avoid"


class RiskStatus(str, Enum):
    """Externally supplied risk verdict fed into the decision."""

    SAFE = "safe"
    BORDERLINE = "borderline"
    DANGER = "danger"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RegimeResult:
    """Hurst-style regime classification."""

    value: Decimal  # H in [0, 1]
    regime: MarketRegime
    color: SignalColor
    confidence: Decimal  # [0, 1], samples relative to the full period
    explanation: str


@dataclass(frozen=True)
class ZScoreResult:
    """Price position relative to its rolling mean."""

    value: Decimal  # raw z-score
    normalized_signal: Decimal  # [-1, 1], contrarian
    label: str
    color: SignalColor
    explanation: str


@dataclass(frozen=True)
class FundingResult:
    """Crowd positioning from the funding-rate z-score."""

    current_rate: Decimal
    z_score: Decimal
    normalized_signal: Decimal  # [-1, 1], contrarian
    label: str
    color: SignalColor
    explanation: str


@dataclass(frozen=True)
class OIDeltaResult:
    """Open interest vs price divergence (money flow)."""

    oi_change_pct: Decimal  # fraction, 0.01 = 1%
    price_change_pct: Decimal  # fraction
    confirmation: bool
    normalized_signal: Decimal  # [-1, 1]
    label: str
    color: SignalColor
    explanation: str


@dataclass(frozen=True)
class VolatilityResult:
    """Realized volatility (annualized %) and ATR."""

    realized_vol: Decimal
    atr: Decimal
    level: VolatilityLevel
    color: SignalColor
    explanation: str


@dataclass(frozen=True)
class EntryGeometryResult:
    """Stretch geometry of the latest close against its rolling mean."""

    distance_from_mean_pct: Decimal
    stretch_z: Decimal
    atr_dislocation: Decimal
    band_position: Decimal  # [0, 1]
    mean_price: Decimal
    reversion_potential: Decimal  # [0, 1]
    chase_risk: Decimal  # [0, 1]
    entry_quality: EntryQuality
    direction_bias: SignalDirection
    color: SignalColor
    explanation: str


@dataclass(frozen=True)
class SignalBreakdown:
    """One directional sub-signal's vote within the composite."""

    name: str
    direction: SignalDirection
    agrees: bool


@dataclass(frozen=True)
class CompositeSignal:
    """Regime-weighted combination of the three directional signals."""

    value: Decimal  # [-1, 1]
    direction: SignalDirection
    strength: CompositeStrength
    agreement_count: int
    agreement_total: int
    color: SignalColor
    label: str
    explanation: str
    breakdown: tuple[SignalBreakdown, ...]


@dataclass(frozen=True)
class DecisionResult:
    """Decision state machine output; recomputed every tick, never stored."""

    action: DecisionAction
    label: str
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class AssetSignals:
    """Full signal output for one coin at one instant."""

    coin: str
    regime: RegimeResult
    zscore: ZScoreResult
    funding: FundingResult
    oi_delta: OIDeltaResult
    volatility: VolatilityResult
    entry_geometry: EntryGeometryResult
    composite: CompositeSignal
    decision: DecisionResult
    updated_at: int
    is_stale: bool
    is_warming_up: bool
    warmup_progress: Decimal
