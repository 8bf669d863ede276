"""Tests for the signal engine that assembles AssetSignals for one coin."""

from decimal import Decimal

from levtrade.config import SignalSettings
from levtrade.market.models import Candle, FundingSnapshot, MarketSnapshot
from levtrade.models import MS_PER_HOUR
from levtrade.signals.engine import (
    NEUTRAL_FUNDING,
    NEUTRAL_OI,
    compute_asset_signals,
    compute_signals,
    is_feed_stale,
    reference_price,
)
from levtrade.signals.models import DecisionAction

NOW = 1_700_000_000_000 // MS_PER_HOUR * MS_PER_HOUR


def _make_candles(count: int) -> tuple[Candle, ...]:
    """Hourly candles ending one hour before NOW with a bounded oscillation."""
    candles = []
    for i in range(count):
        close = Decimal(100 + (i % 7) - 3)
        candles.append(
            Candle(
                time=NOW - (count - i) * MS_PER_HOUR,
                open=close,
                high=close + Decimal("1"),
                low=close - Decimal("1"),
                close=close,
            )
        )
    return tuple(candles)


class TestFeedHelpers:
    """Tests for is_feed_stale and reference_price."""

    def test_never_updated_is_stale(self) -> None:
        assert is_feed_stale(None, NOW, 180_000) is True

    def test_recent_update_is_fresh(self) -> None:
        assert is_feed_stale(NOW - 1_000, NOW, 180_000) is False

    def test_old_update_is_stale(self) -> None:
        assert is_feed_stale(NOW - 181_000, NOW, 180_000) is True

    def test_reference_price_prefers_live_price(self) -> None:
        snapshot = MarketSnapshot(coin="BTC", candles=_make_candles(3), price=Decimal("123"))
        assert reference_price(snapshot) == Decimal("123")

    def test_reference_price_falls_back_to_close(self) -> None:
        candles = _make_candles(3)
        snapshot = MarketSnapshot(coin="BTC", candles=candles)
        assert reference_price(snapshot) == candles[-1].close

    def test_reference_price_empty(self) -> None:
        assert reference_price(MarketSnapshot(coin="BTC")) == Decimal("0")


class TestComputeSignals:
    """Tests for compute_signals and compute_asset_signals."""

    def test_too_few_candles_returns_none(self) -> None:
        assert compute_signals("BTC", _make_candles(2), (), (), NOW, SignalSettings()) is None

    def test_warming_up_waits(self) -> None:
        result = compute_signals("BTC", _make_candles(50), (), (), NOW, SignalSettings())
        assert result is not None
        assert result.is_warming_up is True
        assert result.warmup_progress == Decimal("0.5")
        assert result.decision.action is DecisionAction.WAIT

    def test_full_history(self) -> None:
        result = compute_signals("BTC", _make_candles(120), (), (), NOW, SignalSettings())
        assert result is not None
        assert result.coin == "BTC"
        assert result.updated_at == NOW
        assert result.is_warming_up is False
        assert result.warmup_progress == Decimal("1")
        assert result.volatility.atr > 0
        assert Decimal("-1") <= result.composite.value <= Decimal("1")

    def test_live_thin_funding_reports_insufficient(self) -> None:
        result = compute_signals("BTC", _make_candles(120), (), (), NOW, SignalSettings())
        assert result is not None
        assert result.funding.label == "Insufficient Data"
        assert result.oi_delta.label == "Insufficient Data"

    def test_neutral_fallbacks_replace_thin_series(self) -> None:
        funding = (FundingSnapshot(time=NOW - MS_PER_HOUR, rate=Decimal("0.0001")),)
        result = compute_signals(
            "BTC", _make_candles(120), funding, (), NOW, SignalSettings(), neutral_fallbacks=True
        )
        assert result is not None
        assert result.funding == NEUTRAL_FUNDING
        assert result.oi_delta == NEUTRAL_OI

    def test_stale_snapshot_avoids(self) -> None:
        snapshot = MarketSnapshot(
            coin="ETH", candles=_make_candles(120), price=Decimal("100"), last_update=None
        )
        result = compute_asset_signals("ETH", snapshot, NOW, SignalSettings())
        assert result is not None
        assert result.is_stale is True
        assert result.decision.action is DecisionAction.AVOID

    def test_fresh_snapshot_is_not_stale(self) -> None:
        snapshot = MarketSnapshot(
            coin="ETH", candles=_make_candles(120), price=Decimal("100"), last_update=NOW
        )
        result = compute_asset_signals("ETH", snapshot, NOW, SignalSettings())
        assert result is not None
        assert result.is_stale is False

    def test_deterministic(self) -> None:
        candles = _make_candles(120)
        first = compute_signals("BTC", candles, (), (), NOW, SignalSettings())
        second = compute_signals("BTC", candles, (), (), NOW, SignalSettings())
        assert first == second
