"""Signal analysis: pure primitives, the composite, the decision and the engine.

Each primitive consumes a numeric window and returns a frozen result with a
categorical label, a traffic-light color and (where directional) a
normalized signal in [-1, 1]. ``compute_signals`` runs them all for one coin.
"""

from levtrade.signals.composite import compute_composite
from levtrade.signals.decision import compute_decision
from levtrade.signals.engine import (
    NEUTRAL_FUNDING,
    NEUTRAL_OI,
    compute_asset_signals,
    compute_signals,
    is_feed_stale,
    reference_price,
)
from levtrade.signals.entry_geometry import compute_entry_geometry
from levtrade.signals.funding import compute_funding_zscore
from levtrade.signals.models import (
    AssetSignals,
    CompositeSignal,
    CompositeStrength,
    DecisionAction,
    DecisionResult,
    EntryGeometryResult,
    EntryQuality,
    FundingResult,
    MarketRegime,
    OIDeltaResult,
    RegimeResult,
    RiskStatus,
    SignalBreakdown,
    VolatilityLevel,
    VolatilityResult,
    ZScoreResult,
)
from levtrade.signals.oi_delta import compute_oi_delta
from levtrade.signals.regime import compute_regime
from levtrade.signals.volatility import compute_atr, compute_realized_vol, compute_volatility
from levtrade.signals.zscore import compute_zscore

__all__ = [
    "NEUTRAL_FUNDING",
    "NEUTRAL_OI",
    "AssetSignals",
    "CompositeSignal",
    "CompositeStrength",
    "DecisionAction",
    "DecisionResult",
    "EntryGeometryResult",
    "EntryQuality",
    "FundingResult",
    "MarketRegime",
    "OIDeltaResult",
    "RegimeResult",
    "RiskStatus",
    "SignalBreakdown",
    "VolatilityLevel",
    "VolatilityResult",
    "ZScoreResult",
    "compute_asset_signals",
    "compute_atr",
    "compute_composite",
    "compute_decision",
    "compute_entry_geometry",
    "compute_funding_zscore",
    "compute_oi_delta",
    "compute_realized_vol",
    "compute_regime",
    "compute_signals",
    "compute_volatility",
    "compute_zscore",
    "is_feed_stale",
    "reference_price",
]
