"""Tests for entry geometry (stretch from the mean in sigma and ATR terms)."""

from decimal import Decimal

import pytest

from levtrade.models import SignalColor, SignalDirection
from levtrade.signals.entry_geometry import classify_entry_quality, compute_entry_geometry
from levtrade.signals.models import EntryQuality


def _stretched_below() -> list[Decimal]:
    """Mean 99.85, population sigma ~1.062, last close 98 (about -1.74 sigma)."""
    return [Decimal("99")] * 10 + [Decimal("101")] * 9 + [Decimal("98")]


class TestClassifyEntryQuality:
    """Tests for classify_entry_quality."""

    @pytest.mark.parametrize(
        ("abs_z", "atr_dislocation", "expected"),
        [
            ("0.5", "5", EntryQuality.NO_EDGE),
            ("1.0", "2", EntryQuality.EARLY),
            ("1.5", "0.5", EntryQuality.EARLY),
            ("2.0", "2.0", EntryQuality.IDEAL),
            ("3.0", "3.0", EntryQuality.EXTENDED),
            ("3.5", "1.0", EntryQuality.CHASING),
        ],
    )
    def test_bands(self, abs_z: str, atr_dislocation: str, expected: EntryQuality) -> None:
        assert classify_entry_quality(Decimal(abs_z), Decimal(atr_dislocation)) is expected


class TestComputeEntryGeometry:
    """Tests for compute_entry_geometry."""

    def test_insufficient_closes(self) -> None:
        result = compute_entry_geometry([Decimal("100")] * 5, atr=Decimal("1"))
        assert result.entry_quality is EntryQuality.NO_EDGE
        assert result.direction_bias is SignalDirection.NEUTRAL
        assert result.chase_risk == Decimal("0.25")
        assert result.band_position == Decimal("0.5")

    def test_flat_window(self) -> None:
        result = compute_entry_geometry([Decimal("100")] * 20, atr=Decimal("1"))
        assert result.entry_quality is EntryQuality.NO_EDGE
        assert result.chase_risk == Decimal("0.2")
        assert result.mean_price == Decimal("100")

    def test_ideal_long_stretch(self) -> None:
        result = compute_entry_geometry(_stretched_below(), atr=Decimal("1"))
        assert result.entry_quality is EntryQuality.IDEAL
        assert result.direction_bias is SignalDirection.LONG
        assert result.color is SignalColor.GREEN
        assert result.mean_price == Decimal("99.85")
        assert result.atr_dislocation == Decimal("1.85")
        assert Decimal("-1.8") < result.stretch_z < Decimal("-1.7")
        assert result.distance_from_mean_pct < 0
        assert Decimal("0") < result.reversion_potential < Decimal("1")

    def test_zero_atr_has_no_dislocation(self) -> None:
        """Without an ATR the stretch is judged in sigma only (and stays early)."""
        result = compute_entry_geometry(_stretched_below(), atr=Decimal("0"))
        assert result.atr_dislocation == Decimal("0")
        assert result.entry_quality is EntryQuality.EARLY

    def test_spike_above_is_short_chase(self) -> None:
        closes = [Decimal("100")] * 19 + [Decimal("110")]
        result = compute_entry_geometry(closes, atr=Decimal("1"))
        assert result.direction_bias is SignalDirection.SHORT
        assert result.entry_quality is EntryQuality.CHASING
        assert result.band_position == Decimal("1")
        assert result.chase_risk == Decimal("0")
