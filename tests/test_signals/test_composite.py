"""Tests for the regime-weighted composite signal.

Tests verify:
- regime_multiplier: amplification, dampening and clamping
- compute_composite: aligned signals, mixed signals, agreement counting
"""

from decimal import Decimal

from levtrade.models import SignalColor, SignalDirection
from levtrade.signals.composite import classify_strength, compute_composite, regime_multiplier
from levtrade.signals.models import (
    CompositeStrength,
    FundingResult,
    MarketRegime,
    OIDeltaResult,
    RegimeResult,
    ZScoreResult,
)


def _make_regime(value: str, regime: MarketRegime) -> RegimeResult:
    return RegimeResult(
        value=Decimal(value),
        regime=regime,
        color=SignalColor.YELLOW,
        confidence=Decimal("1"),
        explanation="",
    )


def _make_inputs(
    zscore: str, funding: str, oi: str
) -> tuple[ZScoreResult, FundingResult, OIDeltaResult]:
    return (
        ZScoreResult(
            value=Decimal("0"),
            normalized_signal=Decimal(zscore),
            label="",
            color=SignalColor.YELLOW,
            explanation="",
        ),
        FundingResult(
            current_rate=Decimal("0"),
            z_score=Decimal("0"),
            normalized_signal=Decimal(funding),
            label="",
            color=SignalColor.YELLOW,
            explanation="",
        ),
        OIDeltaResult(
            oi_change_pct=Decimal("0"),
            price_change_pct=Decimal("0"),
            confirmation=False,
            normalized_signal=Decimal(oi),
            label="",
            color=SignalColor.YELLOW,
            explanation="",
        ),
    )


class TestRegimeMultiplier:
    """Tests for regime_multiplier."""

    def test_mean_reverting_amplifies_and_caps(self) -> None:
        assert regime_multiplier(Decimal("0.3")) == Decimal("1.3")

    def test_choppy_middle(self) -> None:
        assert regime_multiplier(Decimal("0.5")) == Decimal("0.85")

    def test_trending_dampens(self) -> None:
        assert regime_multiplier(Decimal("0.7")) == Decimal("0.4")

    def test_strong_trend_floors(self) -> None:
        assert regime_multiplier(Decimal("1")) == Decimal("0.1")


class TestClassifyStrength:
    """Tests for classify_strength."""

    def test_bands(self) -> None:
        assert classify_strength(Decimal("0.6")) is CompositeStrength.STRONG
        assert classify_strength(Decimal("-0.3")) is CompositeStrength.MODERATE
        assert classify_strength(Decimal("0.2")) is CompositeStrength.WEAK


class TestComputeComposite:
    """Tests for compute_composite."""

    def test_aligned_long_in_mean_reverting_market(self) -> None:
        zscore, funding, oi = _make_inputs("0.6", "0.6", "0.6")
        result = compute_composite(_make_regime("0.3", MarketRegime.MEAN_REVERTING), zscore, funding, oi)
        assert result.value == Decimal("0.78")
        assert result.direction is SignalDirection.LONG
        assert result.strength is CompositeStrength.STRONG
        assert result.color is SignalColor.GREEN
        assert result.label == "STRONG LONG"
        assert result.agreement_count == 4
        assert result.agreement_total == 4
        assert all(b.agrees for b in result.breakdown)

    def test_mixed_signals_stay_out(self) -> None:
        zscore, funding, oi = _make_inputs("0.6", "-0.6", "0")
        result = compute_composite(_make_regime("0.5", MarketRegime.CHOPPY), zscore, funding, oi)
        assert result.value == Decimal("0")
        assert result.direction is SignalDirection.NEUTRAL
        assert result.label == "STAY OUT"
        assert result.agreement_count == 1
        assert result.agreement_total == 3
        assert not any(b.agrees for b in result.breakdown)

    def test_value_clamped_to_one(self) -> None:
        zscore, funding, oi = _make_inputs("1", "1", "1")
        result = compute_composite(_make_regime("0.3", MarketRegime.MEAN_REVERTING), zscore, funding, oi)
        assert result.value == Decimal("1")

    def test_trending_regime_counts_in_total_only(self) -> None:
        zscore, funding, oi = _make_inputs("-0.9", "-0.9", "0.3")
        result = compute_composite(_make_regime("0.6", MarketRegime.TRENDING), zscore, funding, oi)
        assert result.direction is SignalDirection.SHORT
        assert result.agreement_count == 2
        assert result.agreement_total == 4
        assert [b.agrees for b in result.breakdown] == [True, True, False]
        assert "Money Flow disagrees" in result.explanation
