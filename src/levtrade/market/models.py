"""Market time-series data models.

CRITICAL: All prices, sizes and rates use Decimal. Never use float.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from levtrade.models import ZERO, to_decimal


@dataclass(frozen=True)
class Candle:
    """One hourly OHLCV bar. ``time`` is the hour-aligned open time (ms)."""

    time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal = ZERO
    trade_count: int = 0

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "open": str(self.open),
            "high": str(self.high),
            "low": str(self.low),
            "close": str(self.close),
            "volume": str(self.volume),
            "tradeCount": self.trade_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Candle":
        return cls(
            time=int(data["time"]),
            open=to_decimal(data["open"]),
            high=to_decimal(data["high"]),
            low=to_decimal(data["low"]),
            close=to_decimal(data["close"]),
            volume=to_decimal(data.get("volume", 0)),
            trade_count=int(data.get("tradeCount", 0)),
        )


@dataclass(frozen=True)
class FundingSnapshot:
    """Funding rate observed at ``time`` (per-period rate, e.g. 0.0001 = 0.01%)."""

    time: int
    rate: Decimal


@dataclass(frozen=True)
class OISnapshot:
    """Open interest observed at ``time``."""

    time: int
    open_interest: Decimal


@dataclass(frozen=True)
class MarketSnapshot:
    """The per-coin "current state" consumed by the pure core.

    ``candles`` is the regular rolling window; ``extended_candles`` holds
    older history fetched only so pending setups can be resolved. Both are
    sorted ascending by time.
    """

    coin: str
    candles: tuple[Candle, ...] = ()
    funding: tuple[FundingSnapshot, ...] = ()
    open_interest: tuple[OISnapshot, ...] = ()
    price: Decimal | None = None
    last_update: int | None = None  # ms of the last successful live refresh
    extended_candles: tuple[Candle, ...] = field(default=())

    @property
    def closes(self) -> list[Decimal]:
        return [c.close for c in self.candles]

    @property
    def latest_candle(self) -> Candle | None:
        return self.candles[-1] if self.candles else None
