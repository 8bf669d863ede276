"""Tests for the funding-rate z-score (crowd positioning) primitive."""

from decimal import Decimal

from levtrade.market.models import FundingSnapshot
from levtrade.models import SignalColor
from levtrade.signals.funding import classify_funding, compute_funding_zscore


def _make_history(rates: list[str]) -> list[FundingSnapshot]:
    return [FundingSnapshot(time=i * 3_600_000, rate=Decimal(r)) for i, r in enumerate(rates)]


class TestClassifyFunding:
    """Tests for classify_funding."""

    def test_extreme_longs(self) -> None:
        assert classify_funding(Decimal("2.5")) == ("Extreme Longs", SignalColor.GREEN)

    def test_crowded_short(self) -> None:
        assert classify_funding(Decimal("-1.5")) == ("Crowded Short", SignalColor.YELLOW)

    def test_balanced(self) -> None:
        assert classify_funding(Decimal("0.3")) == ("Balanced", SignalColor.RED)


class TestComputeFundingZscore:
    """Tests for compute_funding_zscore."""

    def test_insufficient_data_keeps_last_rate(self) -> None:
        result = compute_funding_zscore(_make_history(["0.0001", "0.0003"]), min_entries=8)
        assert result.label == "Insufficient Data"
        assert result.current_rate == Decimal("0.0003")
        assert result.normalized_signal == Decimal("0")

    def test_empty_history(self) -> None:
        result = compute_funding_zscore([], min_entries=8)
        assert result.current_rate == Decimal("0")

    def test_flat_funding(self) -> None:
        result = compute_funding_zscore(_make_history(["0.0001"] * 10), min_entries=8)
        assert result.label == "Flat Funding"
        assert result.z_score == Decimal("0")

    def test_extreme_positive_funding_fades_longs(self) -> None:
        """A funding spike means crowded longs: contrarian short."""
        result = compute_funding_zscore(_make_history(["0.0001"] * 29 + ["0.001"]))
        assert result.label == "Extreme Longs"
        assert result.z_score > Decimal("2")
        assert result.normalized_signal == Decimal("-1")

    def test_negative_spike_is_long(self) -> None:
        result = compute_funding_zscore(_make_history(["0.0001"] * 29 + ["-0.001"]))
        assert result.label == "Extreme Shorts"
        assert result.normalized_signal == Decimal("1")
