"""Merge contract for two copies of the shared state.

``merge_states`` is idempotent (merging a state with itself returns an
equal state) and commutative (argument order does not change the result):
every pick falls back to a comparison of canonical serializations when the
documented preference is tied.
"""

from collections.abc import Iterable
from typing import Any

from levtrade.models import WINDOWS, canonical_json
from levtrade.setups.ledger import prefer_setup
from levtrade.setups.models import TrackedSetup
from levtrade.state import AppState
from levtrade.sync.codec import state_to_dict
from levtrade.tracker.models import TrackedSignalOutcome, TrackedSignalRecord

_WINDOW_ORDER = {w: i for i, w in enumerate(WINDOWS)}


def _max_optional(a: int | None, b: int | None) -> int | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def _canonical_pick(a: Any, b: Any) -> Any:
    return a if canonical_json(a.to_dict()) >= canonical_json(b.to_dict()) else b


def merge_setups(
    local: Iterable[TrackedSetup],
    remote: Iterable[TrackedSetup],
) -> tuple[TrackedSetup, ...]:
    """Union by id; duplicate ids keep the more complete version."""
    merged: dict[str, TrackedSetup] = {}
    for item in (*local, *remote):
        current = merged.get(item.id)
        merged[item.id] = item if current is None else prefer_setup(current, item)
    return tuple(sorted(merged.values(), key=lambda t: (t.setup.generated_at, t.id)))


def merge_records(
    local: Iterable[TrackedSignalRecord],
    remote: Iterable[TrackedSignalRecord],
) -> tuple[TrackedSignalRecord, ...]:
    """Union by id. Records are append-only, so duplicates are normally equal."""
    merged: dict[str, TrackedSignalRecord] = {}
    for record in (*local, *remote):
        current = merged.get(record.id)
        merged[record.id] = record if current is None else _canonical_pick(current, record)
    return tuple(sorted(merged.values(), key=lambda r: (r.timestamp, r.id)))


def prefer_outcome(a: TrackedSignalOutcome, b: TrackedSignalOutcome) -> TrackedSignalOutcome:
    """Resolved beats pending; between resolved, the later ``resolved_at`` wins."""
    if a.is_resolved != b.is_resolved:
        return a if a.is_resolved else b
    if a.resolved_at != b.resolved_at:
        return a if (a.resolved_at or 0) > (b.resolved_at or 0) else b
    return _canonical_pick(a, b)


def merge_outcomes(
    local: Iterable[TrackedSignalOutcome],
    remote: Iterable[TrackedSignalOutcome],
) -> tuple[TrackedSignalOutcome, ...]:
    """Union keyed by ``(record_id, window)``."""
    merged: dict[tuple[str, Any], TrackedSignalOutcome] = {}
    for outcome in (*local, *remote):
        current = merged.get(outcome.key)
        merged[outcome.key] = outcome if current is None else prefer_outcome(current, outcome)
    return tuple(
        sorted(merged.values(), key=lambda o: (o.record_id, _WINDOW_ORDER[o.window]))
    )


def merge_states(local: AppState, remote: AppState | None) -> AppState:
    """Merge two copies of the shared state.

    Risk inputs come from the side with the newer ``risk_inputs_updated_at``.
    ``updated_at``, ``tracker_last_run_at`` and ``risk_inputs_updated_at``
    take the maximum of both sides.
    """
    if remote is None:
        return local

    local_risk_at = local.risk_inputs_updated_at or 0
    remote_risk_at = remote.risk_inputs_updated_at or 0
    if remote_risk_at != local_risk_at:
        risk_inputs = remote.risk_inputs if remote_risk_at > local_risk_at else local.risk_inputs
    else:
        risk_inputs = _canonical_pick(local.risk_inputs, remote.risk_inputs)

    return AppState(
        tracked_setups=merge_setups(local.tracked_setups, remote.tracked_setups),
        tracked_signals=merge_records(local.tracked_signals, remote.tracked_signals),
        tracked_outcomes=merge_outcomes(local.tracked_outcomes, remote.tracked_outcomes),
        tracker_last_run_at=_max_optional(local.tracker_last_run_at, remote.tracker_last_run_at),
        risk_inputs=risk_inputs,
        risk_inputs_updated_at=_max_optional(
            local.risk_inputs_updated_at, remote.risk_inputs_updated_at
        ),
        updated_at=_max_optional(local.updated_at, remote.updated_at),
        last_signal_computed_at=_max_optional(
            local.last_signal_computed_at, remote.last_signal_computed_at
        ),
    )


def stable_serialize(state: AppState) -> str:
    """Deterministic serialization of the shared content, for change detection.

    Lists are sorted by id (outcomes by record id and window) and
    ``updatedAt`` is left out, so two states that only differ in when they
    were written compare equal.
    """
    data = state_to_dict(state)
    data.pop("updatedAt", None)
    data["trackedSetups"] = sorted(data["trackedSetups"], key=lambda t: t["id"])
    data["trackedSignals"] = sorted(data["trackedSignals"], key=lambda r: r["id"])
    data["trackedOutcomes"] = sorted(
        data["trackedOutcomes"], key=lambda o: f"{o['recordId']}:{o['window']}"
    )
    return canonical_json(data)


def needs_push(local: AppState, remote: AppState | None) -> bool:
    """True when merging ``local`` into ``remote`` would change the remote content."""
    if remote is None:
        return True
    return stable_serialize(merge_states(local, remote)) != stable_serialize(remote)
