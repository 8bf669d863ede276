"""Raw-signal tracking ledger.

Every tick, each of the seven tracked signal kinds for a coin is snapshotted
as a TrackedSignalRecord with three pending outcomes (4h / 24h / 72h). A
record is only kept when it says something new compared with the latest
record of the same coin and kind, so a quiet market does not flood the
ledger. Outcomes are graded later against the candle closes that followed.
"""

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from levtrade.config import ResolutionSettings, TrackerSettings
from levtrade.logging import get_logger
from levtrade.market.models import Candle, MarketSnapshot
from levtrade.market.series import resolution_candles
from levtrade.models import WINDOWS, SignalDirection, stable_id
from levtrade.setups.resolution import resolve_signal_window
from levtrade.signals.models import AssetSignals, DecisionAction
from levtrade.signals.stats import direction_of
from levtrade.tracker.models import (
    SIGNAL_ENGINE_SOURCE,
    MetadataValue,
    TrackedSignalKind,
    TrackedSignalOutcome,
    TrackedSignalRecord,
)

logger = get_logger(__name__)

_HIGH_STRENGTH = Decimal("0.66")
_MEDIUM_STRENGTH = Decimal("0.33")
_STRETCH_SCALE = Decimal("3")

_DECISION_DIRECTIONS: dict[DecisionAction, SignalDirection] = {
    DecisionAction.LONG: SignalDirection.LONG,
    DecisionAction.SHORT: SignalDirection.SHORT,
}

SignalLedger = tuple[tuple[TrackedSignalRecord, ...], tuple[TrackedSignalOutcome, ...]]


def strength_bucket(value: Decimal) -> str:
    if value >= _HIGH_STRENGTH:
        return "high"
    if value >= _MEDIUM_STRENGTH:
        return "medium"
    return "low"


def record_id(
    coin: str,
    kind: TrackedSignalKind,
    timestamp: int,
    direction: SignalDirection,
    label: str,
) -> str:
    digest = stable_id(coin, kind, timestamp, direction, label)
    return f"{coin}-{kind.value}-{timestamp}-{digest}"


def _record(
    coin: str,
    timestamp: int,
    kind: TrackedSignalKind,
    direction: SignalDirection,
    strength: Decimal,
    label: str,
    reference_price: Decimal,
    metadata: dict[str, MetadataValue],
    source: str,
) -> TrackedSignalRecord:
    return TrackedSignalRecord(
        id=record_id(coin, kind, timestamp, direction, label),
        source=source,
        coin=coin,
        timestamp=timestamp,
        kind=kind,
        direction=direction,
        strength=strength,
        label=label,
        reference_price=reference_price,
        metadata=metadata,
    )


def build_tracked_records(
    coin: str,
    signals: AssetSignals,
    reference_price: Decimal,
    source: str = SIGNAL_ENGINE_SOURCE,
) -> tuple[TrackedSignalRecord, ...]:
    """Snapshot all seven tracked kinds from one signal set.

    Directions of the normalized signals use the +/-0.1 neutral band. The
    regime record is always neutral: it describes market character, not a
    directional bet.
    """
    timestamp = signals.updated_at
    composite = signals.composite
    zscore = signals.zscore
    funding = signals.funding
    oi = signals.oi_delta
    regime = signals.regime
    geometry = signals.entry_geometry
    decision = signals.decision

    def build(
        kind: TrackedSignalKind,
        direction: SignalDirection,
        strength: Decimal,
        label: str,
        metadata: dict[str, MetadataValue],
    ) -> TrackedSignalRecord:
        return _record(
            coin, timestamp, kind, direction, strength, label, reference_price, metadata, source
        )

    return (
        build(
            TrackedSignalKind.DECISION,
            _DECISION_DIRECTIONS.get(decision.action, SignalDirection.NEUTRAL),
            abs(composite.value),
            decision.label,
            {"reasons": " | ".join(decision.reasons), "action": decision.action.value},
        ),
        build(
            TrackedSignalKind.COMPOSITE,
            composite.direction,
            abs(composite.value),
            composite.label,
            {
                "agreementCount": composite.agreement_count,
                "agreementTotal": composite.agreement_total,
            },
        ),
        build(
            TrackedSignalKind.ZSCORE,
            direction_of(zscore.normalized_signal),
            abs(zscore.normalized_signal),
            zscore.label,
            {"value": zscore.value},
        ),
        build(
            TrackedSignalKind.FUNDING,
            direction_of(funding.normalized_signal),
            abs(funding.normalized_signal),
            funding.label,
            {"rate": funding.current_rate, "zScore": funding.z_score},
        ),
        build(
            TrackedSignalKind.OI_DELTA,
            direction_of(oi.normalized_signal),
            abs(oi.normalized_signal),
            oi.label,
            {
                "oiChangePct": oi.oi_change_pct,
                "priceChangePct": oi.price_change_pct,
                "confirmation": oi.confirmation,
            },
        ),
        build(
            TrackedSignalKind.HURST,
            SignalDirection.NEUTRAL,
            regime.confidence,
            regime.regime.value,
            {"value": regime.value, "confidence": regime.confidence},
        ),
        build(
            TrackedSignalKind.ENTRY_GEOMETRY,
            geometry.direction_bias,
            abs(geometry.stretch_z) / _STRETCH_SCALE,
            geometry.entry_quality.value,
            {"stretch": geometry.stretch_z, "atrDislocation": geometry.atr_dislocation},
        ),
    )


def _latest_of_kind(
    record: TrackedSignalRecord,
    existing: Iterable[TrackedSignalRecord],
) -> TrackedSignalRecord | None:
    same = [r for r in existing if r.coin == record.coin and r.kind is record.kind]
    if not same:
        return None
    return max(same, key=lambda r: (r.timestamp, r.id))


def should_track_record(
    record: TrackedSignalRecord,
    existing: Sequence[TrackedSignalRecord],
    settings: TrackerSettings,
) -> bool:
    """Keep a record after the dedupe window or when anything visible changed.

    "Visible" means direction, label or strength bucket differ from the
    latest record of the same coin and kind.
    """
    if any(r.id == record.id for r in existing):
        return False
    previous = _latest_of_kind(record, existing)
    if previous is None:
        return True
    if record.timestamp - previous.timestamp >= settings.dedupe_window_ms:
        return True
    return (
        previous.direction is not record.direction
        or previous.label != record.label
        or strength_bucket(previous.strength) != strength_bucket(record.strength)
    )


def pending_signal_outcomes(record: TrackedSignalRecord) -> tuple[TrackedSignalOutcome, ...]:
    return tuple(TrackedSignalOutcome(record_id=record.id, window=w) for w in WINDOWS)


def track_signals(
    records: Sequence[TrackedSignalRecord],
    outcomes: Sequence[TrackedSignalOutcome],
    coin: str,
    signals: AssetSignals,
    reference_price: Decimal,
    settings: TrackerSettings,
    source: str = SIGNAL_ENGINE_SOURCE,
) -> SignalLedger:
    """Append the records from ``signals`` that pass the dedupe rule.

    Nothing is tracked for an unusable reference price or a stale or
    warming-up feed.

    Returns:
        ``(records, outcomes)``; the inputs unchanged when nothing was added.
    """
    if (
        not reference_price.is_finite()
        or reference_price <= 0
        or signals.is_stale
        or signals.is_warming_up
    ):
        return tuple(records), tuple(outcomes)

    candidates = build_tracked_records(coin, signals, reference_price, source)
    new_records = [r for r in candidates if should_track_record(r, records, settings)]
    if not new_records:
        return tuple(records), tuple(outcomes)

    new_outcomes = [o for r in new_records for o in pending_signal_outcomes(r)]
    logger.debug(
        "signals_tracked",
        coin=coin,
        source=source,
        kinds=[r.kind.value for r in new_records],
    )
    return (*records, *new_records), (*outcomes, *new_outcomes)


def resolve_tracked_outcomes(
    records: Sequence[TrackedSignalRecord],
    outcomes: Sequence[TrackedSignalOutcome],
    markets: Mapping[str, MarketSnapshot],
    now: int,
    settings: ResolutionSettings,
) -> tuple[TrackedSignalOutcome, ...]:
    """Grade pending outcomes whose window has elapsed.

    Coins absent from ``markets`` are skipped this round; resolved outcomes
    are never touched again.
    """
    by_id = {r.id: r for r in records}
    candles_by_coin: dict[str, tuple[Candle, ...]] = {}
    result: list[TrackedSignalOutcome] = []
    resolved_count = 0
    for outcome in outcomes:
        record = by_id.get(outcome.record_id)
        snapshot = markets.get(record.coin) if record is not None else None
        if outcome.is_resolved or record is None or snapshot is None:
            result.append(outcome)
            continue
        if record.coin not in candles_by_coin:
            candles_by_coin[record.coin] = resolution_candles(snapshot)
        resolved = resolve_signal_window(record, outcome, candles_by_coin[record.coin], now, settings)
        if resolved is None:
            result.append(outcome)
            continue
        resolved_count += 1
        result.append(resolved)

    if not resolved_count:
        return tuple(outcomes)
    logger.info("signal_outcomes_resolved", count=resolved_count)
    return tuple(result)


def prune_tracker(
    records: Sequence[TrackedSignalRecord],
    outcomes: Sequence[TrackedSignalOutcome],
    now: int,
    settings: TrackerSettings,
) -> SignalLedger:
    """Drop records older than the retention window along with their outcomes."""
    cutoff = now - settings.retention_ms
    kept_records = tuple(r for r in records if r.timestamp >= cutoff)
    kept_ids = {r.id for r in kept_records}
    kept_outcomes = tuple(o for o in outcomes if o.record_id in kept_ids)
    if len(kept_records) != len(records) or len(kept_outcomes) != len(outcomes):
        logger.info(
            "tracker_pruned",
            records_removed=len(records) - len(kept_records),
            outcomes_removed=len(outcomes) - len(kept_outcomes),
        )
    return kept_records, kept_outcomes
