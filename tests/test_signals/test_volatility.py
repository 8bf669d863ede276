"""Tests for ATR and realized volatility."""

from decimal import Decimal

from levtrade.market.models import Candle
from levtrade.signals.models import VolatilityLevel
from levtrade.signals.volatility import (
    classify_volatility,
    compute_atr,
    compute_realized_vol,
    compute_volatility,
)


def _make_candles(count: int, spread: str = "1") -> list[Candle]:
    half = Decimal(spread)
    return [
        Candle(
            time=i * 3_600_000,
            open=Decimal("100"),
            high=Decimal("100") + half,
            low=Decimal("100") - half,
            close=Decimal("100"),
        )
        for i in range(count)
    ]


class TestComputeAtr:
    """Tests for compute_atr."""

    def test_fewer_than_two_candles(self) -> None:
        assert compute_atr(_make_candles(1)) == Decimal("0")

    def test_short_history_uses_simple_average(self) -> None:
        assert compute_atr(_make_candles(5), period=14) == Decimal("2")

    def test_wilder_smoothing_of_constant_range(self) -> None:
        assert compute_atr(_make_candles(40), period=14) == Decimal("2")

    def test_gap_counts_in_true_range(self) -> None:
        """A gap from the previous close widens the true range."""
        prev = Candle(time=0, open=Decimal("100"), high=Decimal("101"), low=Decimal("99"), close=Decimal("100"))
        gap = Candle(
            time=3_600_000, open=Decimal("110"), high=Decimal("111"), low=Decimal("109"), close=Decimal("110")
        )
        assert compute_atr([prev, gap]) == Decimal("11")


class TestRealizedVolatility:
    """Tests for compute_realized_vol and classify_volatility."""

    def test_classification_bands(self) -> None:
        assert classify_volatility(Decimal("120")) is VolatilityLevel.EXTREME
        assert classify_volatility(Decimal("80")) is VolatilityLevel.HIGH
        assert classify_volatility(Decimal("40")) is VolatilityLevel.NORMAL
        assert classify_volatility(Decimal("10")) is VolatilityLevel.LOW

    def test_insufficient_closes(self) -> None:
        result = compute_realized_vol([Decimal("100")] * 5, period=20)
        assert result.realized_vol == Decimal("0")
        assert result.level is VolatilityLevel.NORMAL
        assert "Need at least 21" in result.explanation

    def test_flat_closes_are_low(self) -> None:
        result = compute_realized_vol([Decimal("100")] * 30, period=20)
        assert result.realized_vol == Decimal("0")
        assert result.level is VolatilityLevel.LOW

    def test_large_swings_are_extreme(self) -> None:
        closes = [Decimal("100") if i % 2 == 0 else Decimal("105") for i in range(30)]
        result = compute_realized_vol(closes, period=20)
        assert result.level is VolatilityLevel.EXTREME

    def test_compute_volatility_fills_atr(self) -> None:
        result = compute_volatility(_make_candles(30))
        assert result.atr == Decimal("2")
        assert result.level is VolatilityLevel.LOW
