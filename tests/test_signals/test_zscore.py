"""Tests for the price z-score (price position) primitive.

Tests verify:
- classify_zscore: label and color bands on both sides
- compute_zscore: insufficient data, flat window, extreme stretch, normal range
"""

from decimal import Decimal

from levtrade.models import SignalColor
from levtrade.signals.zscore import classify_zscore, compute_zscore


class TestClassifyZscore:
    """Tests for classify_zscore."""

    def test_extreme_overbought_is_green(self) -> None:
        assert classify_zscore(Decimal("2.6")) == ("Extremely Overbought", SignalColor.GREEN)

    def test_strongly_oversold(self) -> None:
        assert classify_zscore(Decimal("-2.2")) == ("Strongly Oversold", SignalColor.GREEN)

    def test_overbought_is_yellow(self) -> None:
        assert classify_zscore(Decimal("1.5")) == ("Overbought", SignalColor.YELLOW)

    def test_normal_range_is_red(self) -> None:
        """No stretch means no edge."""
        assert classify_zscore(Decimal("-0.5")) == ("Normal Range", SignalColor.RED)


class TestComputeZscore:
    """Tests for compute_zscore."""

    def test_insufficient_data(self) -> None:
        result = compute_zscore([Decimal("100")] * 5, period=20)
        assert result.label == "Insufficient Data"
        assert result.value == Decimal("0")
        assert result.normalized_signal == Decimal("0")
        assert "Currently have 5" in result.explanation

    def test_flat_window_has_no_movement(self) -> None:
        result = compute_zscore([Decimal("100")] * 20, period=20)
        assert result.label == "No Movement"
        assert result.normalized_signal == Decimal("0")

    def test_spike_is_contrarian_short(self) -> None:
        """A close far above the mean leans short, clamped to -1."""
        closes = [Decimal("100")] * 19 + [Decimal("110")]
        result = compute_zscore(closes, period=20)
        assert result.value > Decimal("4")
        assert result.label == "Extremely Overbought"
        assert result.normalized_signal == Decimal("-1")

    def test_normal_range_scales_by_three(self) -> None:
        """Alternating 99/101 ending at 101 gives z = 1 exactly."""
        closes = [Decimal("99") if i % 2 == 0 else Decimal("101") for i in range(20)]
        result = compute_zscore(closes, period=20)
        assert result.value == Decimal("1")
        assert result.label == "Normal Range"
        assert result.normalized_signal == Decimal("-1") / Decimal("3")

    def test_only_last_period_closes_count(self) -> None:
        """Older history outside the window does not move the score."""
        closes = [Decimal("500")] * 10 + [Decimal("100")] * 20
        assert compute_zscore(closes, period=20).label == "No Movement"
