"""Tests for the AppState JSON codec."""

import json
from decimal import Decimal

import pytest

from levtrade.exceptions import StateDecodeError
from levtrade.models import ResolutionWindow, SignalColor, SignalDirection, TradeDirection
from levtrade.risk.models import DEFAULT_RISK_INPUTS, RiskInputs
from levtrade.setups.ledger import pending_outcomes
from levtrade.setups.models import ConfidenceTier, SetupTimeframe, SuggestedSetup, TrackedSetup
from levtrade.signals.models import EntryQuality, MarketRegime
from levtrade.state import AppState
from levtrade.sync.codec import state_from_dict, state_to_dict
from levtrade.tracker.models import TrackedSignalKind, TrackedSignalOutcome, TrackedSignalRecord

T0 = 1_700_000_000_000


def _make_state() -> AppState:
    record = TrackedSignalRecord(
        id="BTC-zScore-1",
        source="signal-engine",
        coin="BTC",
        timestamp=T0,
        kind=TrackedSignalKind.ZSCORE,
        direction=SignalDirection.LONG,
        strength=Decimal("0.6"),
        label="Oversold",
        reference_price=Decimal("100"),
        metadata={"value": "-1.8"},
    )
    return AppState(
        tracked_signals=(record,),
        tracked_outcomes=(
            TrackedSignalOutcome(record.id, ResolutionWindow.H4, T0 + 1, Decimal("101"), Decimal("1"), True),
        ),
        tracker_last_run_at=T0,
        risk_inputs=RiskInputs(
            coin="ETH",
            direction=TradeDirection.SHORT,
            entry_price=Decimal("2500"),
            account_size=Decimal("5000"),
            position_size=Decimal("1000"),
            leverage=Decimal("3"),
            stop_price=Decimal("2600"),
        ),
        risk_inputs_updated_at=T0 - 5,
        updated_at=T0,
        last_signal_computed_at=T0 - 10,
    )


def _make_tracked_setup(tracked_id: str) -> TrackedSetup:
    setup = SuggestedSetup(
        coin="BTC",
        direction=TradeDirection.LONG,
        entry_price=Decimal("100"),
        stop_price=Decimal("97"),
        target_price=Decimal("106"),
        mean_reversion_target=Decimal("103"),
        rr_ratio=Decimal("2"),
        suggested_position_size=Decimal("3333"),
        suggested_leverage=Decimal("0.33"),
        trade_grade=SignalColor.GREEN,
        confidence=Decimal("0.7"),
        confidence_tier=ConfidenceTier.HIGH,
        entry_quality=EntryQuality.IDEAL,
        agreement_count=3,
        agreement_total=4,
        regime=MarketRegime.MEAN_REVERTING,
        reversion_potential=Decimal("0.8"),
        stretch_sigma=Decimal("1.8"),
        atr=Decimal("2"),
        composite_value=Decimal("0.6"),
        timeframe=SetupTimeframe.STANDARD,
        summary="",
        generated_at=T0,
    )
    return TrackedSetup(id=tracked_id, setup=setup, outcomes=pending_outcomes())


class TestStateToDict:
    """Tests for state_to_dict."""

    def test_camel_case_keys(self) -> None:
        data = state_to_dict(_make_state())
        assert set(data) == {
            "trackedSetups",
            "trackedSignals",
            "trackedOutcomes",
            "trackerLastRunAt",
            "riskInputs",
            "riskInputsUpdatedAt",
            "updatedAt",
        }
        assert data["riskInputs"]["stopPrice"] == "2600"
        assert data["riskInputs"]["targetPrice"] is None

    def test_local_bookkeeping_only_on_request(self) -> None:
        assert state_to_dict(_make_state(), include_local=True)["lastSignalComputedAt"] == T0 - 10

    def test_json_round_trip_drops_local_field(self) -> None:
        state = _make_state()
        decoded = state_from_dict(json.loads(json.dumps(state_to_dict(state))))
        assert decoded.tracked_signals == state.tracked_signals
        assert decoded.tracked_outcomes == state.tracked_outcomes
        assert decoded.risk_inputs == state.risk_inputs
        assert decoded.last_signal_computed_at is None


class TestStateFromDict:
    """Tests for tolerant decoding."""

    @pytest.mark.parametrize("payload", [None, [], "state", 3])
    def test_non_object_rejected(self, payload: object) -> None:
        with pytest.raises(StateDecodeError):
            state_from_dict(payload)

    def test_empty_object_is_default_state(self) -> None:
        assert state_from_dict({}) == AppState()

    def test_malformed_entries_dropped(self) -> None:
        data = state_to_dict(_make_state())
        data["trackedSignals"].extend(["junk", {"id": "missing-fields"}])
        data["trackedOutcomes"].append({"recordId": "x", "window": "1w"})
        data["trackedSetups"] = "not a list"
        state = state_from_dict(data)
        assert len(state.tracked_signals) == 1
        assert len(state.tracked_outcomes) == 1
        assert state.tracked_setups == ()

    def test_bad_scalars_fall_back(self) -> None:
        state = state_from_dict(
            {
                "updatedAt": "yesterday",
                "trackerLastRunAt": True,
                "riskInputs": {"coin": "BTC", "direction": "sideways"},
            }
        )
        assert state.updated_at is None
        assert state.tracker_last_run_at is None
        assert state.risk_inputs == DEFAULT_RISK_INPUTS

    @pytest.mark.parametrize("field", ["entryPrice", "stopPrice", "targetPrice"])
    @pytest.mark.parametrize("bad", ["0", "-1", "NaN", "Infinity"])
    def test_setup_with_unusable_price_dropped(self, field: str, bad: str) -> None:
        """A pushed setup with a zero, negative or non-finite level never enters the ledger."""
        broken = _make_tracked_setup("broken").to_dict()
        broken["setup"][field] = bad
        data = {"trackedSetups": [broken, _make_tracked_setup("good").to_dict()]}

        state = state_from_dict(data)

        assert [t.id for t in state.tracked_setups] == ["good"]
