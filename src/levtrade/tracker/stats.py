"""Hit-rate and average-return statistics over the tracked signal ledger."""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from levtrade.models import WINDOWS, ResolutionWindow
from levtrade.tracker.models import (
    KIND_LABELS,
    LatestResolved,
    TrackedSignalOutcome,
    TrackedSignalRecord,
    TrackerKindStats,
    TrackerStats,
    TrackerWindowMetric,
)


def window_metrics(
    record_ids: Iterable[str],
    outcomes: Sequence[TrackedSignalOutcome],
) -> dict[ResolutionWindow, TrackerWindowMetric]:
    """Per-window metrics over the outcomes of ``record_ids``.

    Only scored outcomes (``correct`` not None) enter the hit rate and the
    average return; ``resolved_size`` also counts neutral and unpriced ones.
    """
    ids = set(record_ids)
    metrics: dict[ResolutionWindow, TrackerWindowMetric] = {}
    for window in WINDOWS:
        in_window = [o for o in outcomes if o.window is window and o.record_id in ids]
        scored = [o for o in in_window if o.correct is not None]
        correct = sum(1 for o in scored if o.correct)
        returns = [o.return_pct for o in scored if o.return_pct is not None]
        metrics[window] = TrackerWindowMetric(
            sample_size=len(scored),
            resolved_size=sum(1 for o in in_window if o.is_resolved),
            correct_size=correct,
            hit_rate=Decimal(correct) / len(scored) if scored else None,
            avg_return_pct=sum(returns, Decimal(0)) / len(returns) if returns else None,
        )
    return metrics


def _best_kind_24h(by_kind: Sequence[TrackerKindStats]) -> TrackerKindStats | None:
    eligible = [
        k
        for k in by_kind
        if k.windows[ResolutionWindow.H24].sample_size > 0
        and k.windows[ResolutionWindow.H24].hit_rate is not None
    ]
    if not eligible:
        return None

    def rank(k: TrackerKindStats) -> tuple[Decimal, int]:
        metric = k.windows[ResolutionWindow.H24]
        return metric.hit_rate or Decimal(0), metric.sample_size

    # max keeps the first of equal ranks, i.e. reporting order
    return max(eligible, key=rank)


def _latest_resolved(
    records: Sequence[TrackedSignalRecord],
    outcomes: Sequence[TrackedSignalOutcome],
) -> LatestResolved | None:
    scored = [o for o in outcomes if o.resolved_at is not None and o.correct is not None]
    if not scored:
        return None
    latest = max(scored, key=lambda o: o.resolved_at or 0)
    record = next((r for r in records if r.id == latest.record_id), None)
    if record is None or latest.resolved_at is None or latest.correct is None:
        return None
    return LatestResolved(
        kind=record.kind,
        label=KIND_LABELS[record.kind],
        coin=record.coin,
        window=latest.window,
        correct=latest.correct,
        return_pct=latest.return_pct,
        resolved_at=latest.resolved_at,
    )


def compute_tracker_stats(
    records: Sequence[TrackedSignalRecord],
    outcomes: Sequence[TrackedSignalOutcome],
) -> TrackerStats:
    """Aggregate accuracy per kind and overall, plus the best 24h kind."""
    by_kind = tuple(
        TrackerKindStats(
            kind=kind,
            label=label,
            windows=window_metrics((r.id for r in records if r.kind is kind), outcomes),
            total_signals=sum(1 for r in records if r.kind is kind),
        )
        for kind, label in KIND_LABELS.items()
    )
    return TrackerStats(
        total_signals=len(records),
        total_resolved=sum(1 for o in outcomes if o.is_resolved),
        overall_by_window=window_metrics((r.id for r in records), outcomes),
        by_kind=by_kind,
        best_kind_24h=_best_kind_24h(by_kind),
        latest_resolved=_latest_resolved(records, outcomes),
    )
