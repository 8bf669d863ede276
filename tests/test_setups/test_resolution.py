"""Tests for outcome resolution of setups and tracked signal records.

Tests verify:
- Resolution candle lookup: not yet, ready, partial, unresolvable
- Target / stop / expiry grading with R multiples and excursions
- Same-candle tie-break policies
- Coverage downgrade when extended history was needed
- Directional scoring of raw signal records
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from levtrade.config import ResolutionSettings
from levtrade.market.models import Candle
from levtrade.models import (
    MS_PER_HOUR,
    CoverageStatus,
    ResolutionWindow,
    SignalColor,
    SignalDirection,
    TradeDirection,
)
from levtrade.setups.models import (
    ConfidenceTier,
    OutcomeResult,
    ResolutionReason,
    SetupOutcome,
    SetupTimeframe,
    SuggestedSetup,
)
from levtrade.setups.resolution import (
    LookupStatus,
    locate_resolution,
    resolve_setup_window,
    resolve_signal_window,
    summarize_coverage,
)
from levtrade.signals.models import EntryQuality, MarketRegime
from levtrade.tracker.models import TrackedSignalKind, TrackedSignalOutcome, TrackedSignalRecord

T0 = 1_700_000_000_000 // MS_PER_HOUR * MS_PER_HOUR
H4_END = T0 + 4 * MS_PER_HOUR


def _make_setup(direction: TradeDirection = TradeDirection.LONG) -> SuggestedSetup:
    is_long = direction is TradeDirection.LONG
    return SuggestedSetup(
        coin="BTC",
        direction=direction,
        entry_price=Decimal("100"),
        stop_price=Decimal("97") if is_long else Decimal("103"),
        target_price=Decimal("106") if is_long else Decimal("94"),
        mean_reversion_target=Decimal("103") if is_long else Decimal("97"),
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


def _make_candle(hour: int, close: str = "100", high: str | None = None, low: str | None = None, open_: str = "100") -> Candle:
    price = Decimal(close)
    return Candle(
        time=T0 + hour * MS_PER_HOUR,
        open=Decimal(open_),
        high=Decimal(high) if high is not None else max(price, Decimal(open_)),
        low=Decimal(low) if low is not None else min(price, Decimal(open_)),
        close=price,
    )


def _quiet_candles(hours: int) -> list[Candle]:
    return [_make_candle(h, close="101", high="102", low="99") for h in range(hours + 1)]


@pytest.fixture
def resolution_settings() -> ResolutionSettings:
    return ResolutionSettings()


class TestLocateResolution:
    """Tests for locate_resolution."""

    def test_before_window_end(self, resolution_settings: ResolutionSettings) -> None:
        lookup = locate_resolution(T0, ResolutionWindow.H4, _quiet_candles(8), H4_END - 1, resolution_settings)
        assert lookup.status is LookupStatus.NOT_YET

    def test_first_candle_at_window_end(self, resolution_settings: ResolutionSettings) -> None:
        lookup = locate_resolution(T0, ResolutionWindow.H4, _quiet_candles(8), H4_END, resolution_settings)
        assert lookup.status is LookupStatus.READY
        assert lookup.candle is not None and lookup.candle.time == H4_END
        assert len(lookup.traversal) == 5
        assert lookup.partial is False

    def test_latest_close_enough_is_partial(self, resolution_settings: ResolutionSettings) -> None:
        lookup = locate_resolution(T0, ResolutionWindow.H4, _quiet_candles(3), H4_END, resolution_settings)
        assert lookup.status is LookupStatus.READY
        assert lookup.partial is True

    def test_gap_within_grace_retries(self, resolution_settings: ResolutionSettings) -> None:
        lookup = locate_resolution(
            T0, ResolutionWindow.H4, _quiet_candles(1), H4_END + MS_PER_HOUR, resolution_settings
        )
        assert lookup.status is LookupStatus.NOT_YET

    def test_gap_past_grace_is_unresolvable(self, resolution_settings: ResolutionSettings) -> None:
        now = H4_END + resolution_settings.grace_period_ms
        lookup = locate_resolution(T0, ResolutionWindow.H4, _quiet_candles(1), now, resolution_settings)
        assert lookup.status is LookupStatus.UNRESOLVABLE


class TestResolveSetupWindow:
    """Tests for resolve_setup_window."""

    def test_not_yet(self, resolution_settings: ResolutionSettings) -> None:
        assert (
            resolve_setup_window(_make_setup(), ResolutionWindow.H4, _quiet_candles(8), T0, resolution_settings)
            is None
        )

    def test_target_hit(self, resolution_settings: ResolutionSettings) -> None:
        candles = _quiet_candles(8)
        candles[2] = _make_candle(2, close="105", high="107", low="100")
        outcome = resolve_setup_window(_make_setup(), ResolutionWindow.H4, candles, H4_END, resolution_settings)
        assert outcome is not None
        assert outcome.result is OutcomeResult.WIN
        assert outcome.resolution_reason is ResolutionReason.TARGET
        assert outcome.target_hit is True
        assert outcome.price_at_resolution == Decimal("106")
        assert outcome.r_achieved == Decimal("2")
        assert outcome.return_pct == Decimal("6")
        assert outcome.mfe == Decimal("7")
        assert outcome.mae == Decimal("1")
        assert outcome.resolved_at == H4_END
        assert outcome.coverage_status is CoverageStatus.FULL

    def test_stop_hit(self, resolution_settings: ResolutionSettings) -> None:
        candles = _quiet_candles(8)
        candles[1] = _make_candle(1, close="98", high="100", low="96")
        outcome = resolve_setup_window(_make_setup(), ResolutionWindow.H4, candles, H4_END, resolution_settings)
        assert outcome is not None
        assert outcome.result is OutcomeResult.LOSS
        assert outcome.stop_hit is True
        assert outcome.price_at_resolution == Decimal("97")
        assert outcome.r_achieved == Decimal("-1")

    def test_expiry_exits_at_resolution_close(self, resolution_settings: ResolutionSettings) -> None:
        outcome = resolve_setup_window(
            _make_setup(), ResolutionWindow.H4, _quiet_candles(8), H4_END, resolution_settings
        )
        assert outcome is not None
        assert outcome.result is OutcomeResult.EXPIRED
        assert outcome.resolution_reason is ResolutionReason.EXPIRED
        assert outcome.price_at_resolution == Decimal("101")
        assert outcome.return_pct == Decimal("1")
        assert outcome.mfe_pct == Decimal("2")
        assert outcome.mae_pct == Decimal("1")

    def test_short_target(self, resolution_settings: ResolutionSettings) -> None:
        candles = _quiet_candles(8)
        candles[3] = _make_candle(3, close="95", high="100", low="93")
        outcome = resolve_setup_window(
            _make_setup(TradeDirection.SHORT), ResolutionWindow.H4, candles, H4_END, resolution_settings
        )
        assert outcome is not None
        assert outcome.result is OutcomeResult.WIN
        assert outcome.r_achieved == Decimal("2")

    @pytest.mark.parametrize(
        ("tie_break", "expected"),
        [
            ("nearest_to_open", OutcomeResult.LOSS),
            ("stop_first", OutcomeResult.LOSS),
            ("target_first", OutcomeResult.WIN),
        ],
    )
    def test_same_candle_tie_break(self, tie_break: str, expected: OutcomeResult) -> None:
        """Open 100 is nearer the stop (97) than the target (106)."""
        candles = _quiet_candles(8)
        candles[1] = _make_candle(1, close="100", high="107", low="96")
        settings = ResolutionSettings(tie_break=tie_break)  # type: ignore[arg-type]
        outcome = resolve_setup_window(_make_setup(), ResolutionWindow.H4, candles, H4_END, settings)
        assert outcome is not None
        assert outcome.result is expected

    def test_nearest_to_open_can_pick_target(self) -> None:
        candles = _quiet_candles(8)
        candles[1] = _make_candle(1, close="105", high="107", low="96", open_="105")
        outcome = resolve_setup_window(
            _make_setup(), ResolutionWindow.H4, candles, H4_END, ResolutionSettings()
        )
        assert outcome is not None
        assert outcome.result is OutcomeResult.WIN

    def test_partial_coverage(self, resolution_settings: ResolutionSettings) -> None:
        outcome = resolve_setup_window(
            _make_setup(), ResolutionWindow.H4, _quiet_candles(3), H4_END, resolution_settings
        )
        assert outcome is not None
        assert outcome.coverage_status is CoverageStatus.PARTIAL

    def test_unresolvable(self, resolution_settings: ResolutionSettings) -> None:
        now = H4_END + resolution_settings.grace_period_ms
        outcome = resolve_setup_window(_make_setup(), ResolutionWindow.H4, [], now, resolution_settings)
        assert outcome is not None
        assert outcome.result is OutcomeResult.UNRESOLVABLE
        assert outcome.coverage_status is CoverageStatus.INSUFFICIENT
        assert outcome.resolved_at == now
        assert outcome.r_achieved is None

    def test_extended_history_downgrades_coverage(self, resolution_settings: ResolutionSettings) -> None:
        candles = _quiet_candles(8)
        outcome = resolve_setup_window(
            _make_setup(),
            ResolutionWindow.H4,
            candles,
            H4_END,
            resolution_settings,
            regular_candles=candles[3:],
            extended_candles=candles[:3],
        )
        assert outcome is not None
        assert outcome.coverage_status is CoverageStatus.PARTIAL

    @pytest.mark.parametrize(
        "field",
        ["entry_price", "stop_price", "target_price"],
    )
    @pytest.mark.parametrize("bad", ["0", "-5", "NaN", "Infinity"])
    def test_invalid_levels_resolve_unresolvable(
        self, field: str, bad: str, resolution_settings: ResolutionSettings
    ) -> None:
        """A setup with an unusable price is graded unresolvable instead of raising."""
        setup = replace(_make_setup(), **{field: Decimal(bad)})
        outcome = resolve_setup_window(
            setup, ResolutionWindow.H4, _quiet_candles(8), T0 + 10 * MS_PER_HOUR, resolution_settings
        )
        assert outcome is not None
        assert outcome.result is OutcomeResult.UNRESOLVABLE
        assert outcome.resolution_reason is ResolutionReason.UNRESOLVABLE
        assert outcome.return_pct is None
        assert outcome.resolved_at == T0 + 10 * MS_PER_HOUR


class TestSummarizeCoverage:
    """Tests for summarize_coverage."""

    def test_worst_status_wins(self) -> None:
        outcomes = {
            ResolutionWindow.H4: SetupOutcome(ResolutionWindow.H4, coverage_status=CoverageStatus.PARTIAL),
            ResolutionWindow.H24: SetupOutcome(
                ResolutionWindow.H24, coverage_status=CoverageStatus.INSUFFICIENT
            ),
        }
        assert summarize_coverage(outcomes) is CoverageStatus.INSUFFICIENT

    def test_all_full_keeps_current(self) -> None:
        outcomes = {ResolutionWindow.H4: SetupOutcome(ResolutionWindow.H4)}
        assert summarize_coverage(outcomes, CoverageStatus.PARTIAL) is CoverageStatus.PARTIAL
        assert summarize_coverage(outcomes) is CoverageStatus.FULL


class TestResolveSignalWindow:
    """Tests for resolve_signal_window."""

    @staticmethod
    def _record(direction: SignalDirection) -> TrackedSignalRecord:
        return TrackedSignalRecord(
            id="BTC-zScore-1",
            source="signal-engine",
            coin="BTC",
            timestamp=T0,
            kind=TrackedSignalKind.ZSCORE,
            direction=direction,
            strength=Decimal("0.5"),
            label="Oversold",
            reference_price=Decimal("100"),
            metadata={},
        )

    @pytest.mark.parametrize(
        ("direction", "correct"),
        [
            (SignalDirection.LONG, True),
            (SignalDirection.SHORT, False),
            (SignalDirection.NEUTRAL, None),
        ],
    )
    def test_scored_by_close(
        self,
        direction: SignalDirection,
        correct: bool | None,
        resolution_settings: ResolutionSettings,
    ) -> None:
        candles = _quiet_candles(8)
        outcome = TrackedSignalOutcome(record_id="BTC-zScore-1", window=ResolutionWindow.H4)
        resolved = resolve_signal_window(self._record(direction), outcome, candles, H4_END, resolution_settings)
        assert resolved is not None
        assert resolved.future_price == Decimal("101")
        assert resolved.return_pct == Decimal("1")
        assert resolved.correct is correct
        assert resolved.resolved_at == H4_END

    def test_unpriced_after_grace(self, resolution_settings: ResolutionSettings) -> None:
        outcome = TrackedSignalOutcome(record_id="BTC-zScore-1", window=ResolutionWindow.H4)
        now = H4_END + resolution_settings.grace_period_ms
        resolved = resolve_signal_window(self._record(SignalDirection.LONG), outcome, [], now, resolution_settings)
        assert resolved is not None
        assert resolved.is_resolved is True
        assert resolved.correct is None
        assert resolved.future_price is None

    def test_not_yet(self, resolution_settings: ResolutionSettings) -> None:
        outcome = TrackedSignalOutcome(record_id="BTC-zScore-1", window=ResolutionWindow.H24)
        assert (
            resolve_signal_window(
                self._record(SignalDirection.LONG), outcome, _quiet_candles(8), H4_END, resolution_settings
            )
            is None
        )

    @pytest.mark.parametrize("reference", ["0", "NaN", "-1"])
    def test_unusable_reference_price_resolves_unpriced(
        self, reference: str, resolution_settings: ResolutionSettings
    ) -> None:
        record = replace(self._record(SignalDirection.LONG), reference_price=Decimal(reference))
        outcome = TrackedSignalOutcome(record_id="BTC-zScore-1", window=ResolutionWindow.H4)
        resolved = resolve_signal_window(record, outcome, _quiet_candles(8), H4_END, resolution_settings)
        assert resolved is not None
        assert resolved.resolved_at == H4_END
        assert resolved.future_price is None
        assert resolved.return_pct is None
        assert resolved.correct is None
