"""Tests for the state merge contract.

Tests verify:
- Merging is idempotent and commutative
- Setups and records union by id; outcomes by (record, window)
- Resolved outcomes beat pending ones, later resolutions beat earlier ones
- Risk inputs follow the newer edit
- needs_push only fires when the remote would change
"""

from dataclasses import replace
from decimal import Decimal

from levtrade.models import ResolutionWindow, SignalDirection, TradeDirection
from levtrade.risk.models import DEFAULT_RISK_INPUTS
from levtrade.state import AppState
from levtrade.sync.merge import merge_states, needs_push, prefer_outcome, stable_serialize
from levtrade.tracker.models import TrackedSignalKind, TrackedSignalOutcome, TrackedSignalRecord

T0 = 1_700_000_000_000


def _make_record(record_id: str, timestamp: int = T0) -> TrackedSignalRecord:
    return TrackedSignalRecord(
        id=record_id,
        source="signal-engine",
        coin="BTC",
        timestamp=timestamp,
        kind=TrackedSignalKind.COMPOSITE,
        direction=SignalDirection.LONG,
        strength=Decimal("0.5"),
        label="LONG",
        reference_price=Decimal("100"),
        metadata={},
    )


def _pending(record_id: str, window: ResolutionWindow = ResolutionWindow.H4) -> TrackedSignalOutcome:
    return TrackedSignalOutcome(record_id=record_id, window=window)


def _resolved(record_id: str, resolved_at: int, correct: bool = True) -> TrackedSignalOutcome:
    return TrackedSignalOutcome(
        record_id=record_id,
        window=ResolutionWindow.H4,
        resolved_at=resolved_at,
        future_price=Decimal("101"),
        return_pct=Decimal("1"),
        correct=correct,
    )


def _local() -> AppState:
    return AppState(
        tracked_signals=(_make_record("a"), _make_record("b", T0 + 1)),
        tracked_outcomes=(_resolved("a", T0 + 10), _pending("b")),
        tracker_last_run_at=T0 + 10,
        updated_at=T0 + 10,
    )


def _remote() -> AppState:
    return AppState(
        tracked_signals=(_make_record("b", T0 + 1), _make_record("c", T0 + 2)),
        tracked_outcomes=(_pending("a"), _resolved("b", T0 + 20), _pending("c")),
        tracker_last_run_at=T0 + 20,
        risk_inputs=replace(DEFAULT_RISK_INPUTS, coin="SOL", direction=TradeDirection.SHORT),
        risk_inputs_updated_at=T0 + 5,
        updated_at=T0 + 20,
    )


class TestMergeStates:
    """Tests for merge_states."""

    def test_union(self) -> None:
        merged = merge_states(_local(), _remote())
        assert [r.id for r in merged.tracked_signals] == ["a", "b", "c"]
        by_id = {o.record_id: o for o in merged.tracked_outcomes}
        assert by_id["a"].resolved_at == T0 + 10
        assert by_id["b"].resolved_at == T0 + 20
        assert not by_id["c"].is_resolved
        assert merged.tracker_last_run_at == T0 + 20
        assert merged.updated_at == T0 + 20

    def test_newer_risk_inputs_win(self) -> None:
        merged = merge_states(_local(), _remote())
        assert merged.risk_inputs.coin == "SOL"
        assert merged.risk_inputs_updated_at == T0 + 5

    def test_idempotent(self) -> None:
        local = _local()
        assert merge_states(local, local) == local
        merged = merge_states(local, _remote())
        assert merge_states(merged, merged) == merged

    def test_commutative(self) -> None:
        assert merge_states(_local(), _remote()) == merge_states(_remote(), _local())

    def test_commutative_on_conflicting_resolutions(self) -> None:
        left = AppState(tracked_outcomes=(_resolved("a", T0, correct=True),))
        right = AppState(tracked_outcomes=(_resolved("a", T0, correct=False),))
        assert merge_states(left, right) == merge_states(right, left)

    def test_missing_remote(self) -> None:
        local = _local()
        assert merge_states(local, None) is local


class TestPreferOutcome:
    """Tests for prefer_outcome."""

    def test_resolved_beats_pending(self) -> None:
        resolved = _resolved("a", T0)
        assert prefer_outcome(_pending("a"), resolved) is resolved
        assert prefer_outcome(resolved, _pending("a")) is resolved

    def test_later_resolution_wins(self) -> None:
        early = _resolved("a", T0)
        late = _resolved("a", T0 + 1)
        assert prefer_outcome(early, late) is late


class TestNeedsPush:
    """Tests for stable_serialize and needs_push."""

    def test_serialization_ignores_order_and_updated_at(self) -> None:
        state = _local()
        shuffled = replace(
            state,
            tracked_signals=tuple(reversed(state.tracked_signals)),
            tracked_outcomes=tuple(reversed(state.tracked_outcomes)),
            updated_at=T0 + 999,
        )
        assert stable_serialize(state) == stable_serialize(shuffled)

    def test_push_when_remote_missing_or_behind(self) -> None:
        assert needs_push(_local(), None) is True
        assert needs_push(_local(), _remote()) is True

    def test_no_push_when_remote_has_everything(self) -> None:
        merged = merge_states(_local(), _remote())
        assert needs_push(_local(), merged) is False
