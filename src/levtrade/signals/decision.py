"""Decision state machine: ENTER LONG / ENTER SHORT / WAIT / AVOID.

Stale feeds always avoid and warming feeds always wait. Otherwise an entry
needs a directional, non-weak composite, an ideal or extended stretch in
the same direction, no trend veto and a risk status other than danger.
Every non-entry outcome carries short human-readable reasons.
"""

from decimal import Decimal

from levtrade.models import SignalDirection
from levtrade.signals.models import (
    CompositeSignal,
    CompositeStrength,
    DecisionAction,
    DecisionResult,
    EntryGeometryResult,
    EntryQuality,
    MarketRegime,
    RegimeResult,
    RiskStatus,
)

MAX_REASONS = 4

_STRONG_GEOMETRY = frozenset({EntryQuality.IDEAL, EntryQuality.EXTENDED})

_ENTRY_ACTIONS: dict[SignalDirection, tuple[DecisionAction, str]] = {
    SignalDirection.LONG: (DecisionAction.LONG, "ENTER LONG"),
    SignalDirection.SHORT: (DecisionAction.SHORT, "ENTER SHORT"),
}

_RISK_REASONS: dict[RiskStatus, str | None] = {
    RiskStatus.DANGER: "risk too large",
    RiskStatus.BORDERLINE: "risk tight",
    RiskStatus.SAFE: None,
    RiskStatus.UNKNOWN: None,
}

_ENTRY_RISK_REASONS: dict[RiskStatus, str | None] = {
    RiskStatus.SAFE: "risk clear",
    RiskStatus.BORDERLINE: "risk tight",
    RiskStatus.DANGER: None,
    RiskStatus.UNKNOWN: None,
}


def _dedupe(reasons: list[str]) -> tuple[str, ...]:
    """Drop repeats (first occurrence wins) and cap the list."""
    return tuple(dict.fromkeys(reasons))[:MAX_REASONS]


def compute_decision(
    composite: CompositeSignal,
    entry_geometry: EntryGeometryResult,
    regime: RegimeResult,
    is_stale: bool,
    is_warming_up: bool,
    risk_status: RiskStatus = RiskStatus.UNKNOWN,
    veto_threshold: Decimal = Decimal("0.6"),
) -> DecisionResult:
    """Resolve the current signals into an actionable decision.

    Args:
        composite: Composite signal.
        entry_geometry: Stretch geometry of the latest close.
        regime: Regime classification.
        is_stale: True when the feed has stopped updating.
        is_warming_up: True while history is shorter than the warm-up size.
        risk_status: Verdict of the risk calculator, if one is available.
        veto_threshold: H above which a trending regime blocks entries.

    Returns:
        DecisionResult with at most four reasons.
    """
    if is_stale:
        return DecisionResult(DecisionAction.AVOID, "AVOID", ("stale feed", "refresh needed"))
    if is_warming_up:
        return DecisionResult(DecisionAction.WAIT, "WAIT", ("warming up", "signals incomplete"))

    regime_blocks = regime.regime is MarketRegime.TRENDING and regime.value > veto_threshold
    mixed = (
        composite.direction is SignalDirection.NEUTRAL
        or composite.strength is CompositeStrength.WEAK
    )
    no_stretch = (
        entry_geometry.entry_quality is EntryQuality.NO_EDGE
        or entry_geometry.direction_bias is SignalDirection.NEUTRAL
    )

    reasons: list[str] = []
    if regime_blocks:
        reasons.append("trend veto")
    if mixed:
        reasons.append("mixed signals")
    if no_stretch:
        reasons.append("no stretch")
    risk_reason = _RISK_REASONS[risk_status]
    if risk_reason is not None:
        reasons.append(risk_reason)

    directional = composite.direction in _ENTRY_ACTIONS
    if (
        directional
        and not mixed
        and entry_geometry.entry_quality in _STRONG_GEOMETRY
        and entry_geometry.direction_bias is composite.direction
        and not regime_blocks
        and risk_status is not RiskStatus.DANGER
    ):
        entry_reasons = [
            f"{abs(entry_geometry.stretch_z):.1f}σ stretched",
            "signals aligned" if composite.agreement_count >= 3 else "partial agreement",
            "mean-reverting regime"
            if regime.regime is MarketRegime.MEAN_REVERTING
            else "regime acceptable",
        ]
        entry_risk = _ENTRY_RISK_REASONS[risk_status]
        if entry_risk is not None:
            entry_reasons.append(entry_risk)
        action, label = _ENTRY_ACTIONS[composite.direction]
        return DecisionResult(action, label, tuple(entry_reasons))

    if risk_status is RiskStatus.DANGER or regime_blocks:
        return DecisionResult(DecisionAction.AVOID, "AVOID", _dedupe(reasons))
    return DecisionResult(DecisionAction.WAIT, "WAIT", _dedupe(reasons or ["setup developing"]))
