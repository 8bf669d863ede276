"""Market time series: candle / funding / OI models, series upserts and the live feed."""

from levtrade.market.models import Candle, FundingSnapshot, MarketSnapshot, OISnapshot
from levtrade.market.series import (
    merge_candles,
    resolution_candles,
    upsert_candle,
    upsert_candles,
    upsert_hourly,
)

__all__ = [
    "Candle",
    "FundingSnapshot",
    "MarketSnapshot",
    "OISnapshot",
    "merge_candles",
    "resolution_candles",
    "upsert_candle",
    "upsert_candles",
    "upsert_hourly",
]
