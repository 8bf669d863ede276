"""Tests for the open interest vs price divergence (money flow) primitive."""

from decimal import Decimal

from levtrade.market.models import OISnapshot
from levtrade.models import SignalColor
from levtrade.signals.oi_delta import compute_oi_delta


def _make_oi(values: list[int]) -> list[OISnapshot]:
    return [OISnapshot(time=i * 3_600_000, open_interest=Decimal(v)) for i, v in enumerate(values)]


def _make_closes(values: list[int]) -> list[Decimal]:
    return [Decimal(v) for v in values]


class TestComputeOIDelta:
    """Tests for compute_oi_delta."""

    def test_insufficient_data(self) -> None:
        result = compute_oi_delta(_make_oi([100, 101, 102]), _make_closes([1, 2, 3]), window=5)
        assert result.label == "Insufficient Data"
        assert result.confirmation is False
        assert "Need at least 6" in result.explanation

    def test_confirmed_bullish(self) -> None:
        """OI and price both rising: fresh money backs the move."""
        result = compute_oi_delta(
            _make_oi([100] * 5 + [110] * 5),
            _make_closes([100] * 5 + [105] * 5),
        )
        assert result.label == "Confirmed Bullish"
        assert result.confirmation is True
        assert result.color is SignalColor.GREEN
        assert result.oi_change_pct == Decimal("0.1")
        assert result.price_change_pct == Decimal("0.05")
        assert result.normalized_signal == Decimal("1")

    def test_confirmed_bearish(self) -> None:
        result = compute_oi_delta(
            _make_oi([100] * 5 + [101] * 5),
            _make_closes([100] * 5 + [95] * 5),
        )
        assert result.label == "Confirmed Bearish"
        # 0.5 + min(0.5, 0.01 * 10)
        assert result.normalized_signal == Decimal("-0.6")

    def test_weak_rally(self) -> None:
        """Price up while OI falls: shorts covering, not new buyers."""
        result = compute_oi_delta(
            _make_oi([110] * 5 + [100] * 5),
            _make_closes([100] * 5 + [105] * 5),
        )
        assert result.label == "Weak Rally"
        assert result.confirmation is False
        assert result.normalized_signal == Decimal("0.2")

    def test_weak_decline(self) -> None:
        result = compute_oi_delta(
            _make_oi([110] * 5 + [100] * 5),
            _make_closes([100] * 5 + [95] * 5),
        )
        assert result.label == "Weak Decline"
        assert result.normalized_signal == Decimal("-0.2")

    def test_no_clear_flow(self) -> None:
        result = compute_oi_delta(_make_oi([100] * 10), _make_closes([100] * 10))
        assert result.label == "No Clear Flow"
        assert result.color is SignalColor.RED
        assert result.normalized_signal == Decimal("0")

    def test_zero_baseline_has_no_change(self) -> None:
        result = compute_oi_delta(_make_oi([0] * 5 + [10] * 5), _make_closes([100] * 10))
        assert result.oi_change_pct == Decimal("0")
