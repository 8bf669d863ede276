"""Tests for regime classification from return autocorrelation."""

from decimal import Decimal

from levtrade.models import SignalColor
from levtrade.signals.models import MarketRegime
from levtrade.signals.regime import classify_regime, compute_regime


def _make_trend_then_reversal(steps: int) -> list[Decimal]:
    """Persistent returns: ``steps`` rises of 1% then ``steps`` falls of 1%."""
    closes = [Decimal("100")]
    for _ in range(steps):
        closes.append(closes[-1] * Decimal("1.01"))
    for _ in range(steps):
        closes.append(closes[-1] * Decimal("0.99"))
    return closes


class TestClassifyRegime:
    """Tests for the H boundaries."""

    def test_trending_above_055(self) -> None:
        assert classify_regime(Decimal("0.6")) is MarketRegime.TRENDING

    def test_mean_reverting_below_045(self) -> None:
        assert classify_regime(Decimal("0.4")) is MarketRegime.MEAN_REVERTING

    def test_boundaries_are_choppy(self) -> None:
        assert classify_regime(Decimal("0.55")) is MarketRegime.CHOPPY
        assert classify_regime(Decimal("0.45")) is MarketRegime.CHOPPY


class TestComputeRegime:
    """Tests for compute_regime."""

    def test_too_few_closes(self) -> None:
        result = compute_regime([Decimal("100"), Decimal("101")])
        assert result.regime is MarketRegime.CHOPPY
        assert result.value == Decimal("0.5")
        assert result.confidence == Decimal("0")

    def test_flat_prices_are_choppy(self) -> None:
        result = compute_regime([Decimal("100")] * 50, period=100)
        assert result.regime is MarketRegime.CHOPPY
        assert result.value == Decimal("0.5")
        assert result.confidence == Decimal("0.5")

    def test_alternating_prices_mean_revert(self) -> None:
        """Every up move is followed by a down move: strongly negative autocorrelation."""
        closes = [Decimal("100") if i % 2 == 0 else Decimal("110") for i in range(60)]
        result = compute_regime(closes, period=100)
        assert result.regime is MarketRegime.MEAN_REVERTING
        assert result.color is SignalColor.GREEN
        assert result.value < Decimal("0.1")

    def test_persistent_moves_trend(self) -> None:
        result = compute_regime(_make_trend_then_reversal(20), period=100)
        assert result.regime is MarketRegime.TRENDING
        assert result.color is SignalColor.YELLOW
        assert result.value > Decimal("0.9")
        assert result.confidence == Decimal("0.41")

    def test_value_is_clamped(self) -> None:
        closes = [Decimal("100") if i % 2 == 0 else Decimal("110") for i in range(60)]
        result = compute_regime(closes)
        assert Decimal("0") <= result.value <= Decimal("1")

    def test_confidence_caps_at_one(self) -> None:
        closes = [Decimal("100") if i % 2 == 0 else Decimal("110") for i in range(250)]
        assert compute_regime(closes, period=100).confidence == Decimal("1")
