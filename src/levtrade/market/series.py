"""Append-mostly time-series maintenance.

Candles are keyed by their open time: a later fetch for the same bucket
replaces the in-progress bar. Funding and OI snapshots are deduplicated to
one entry per hour bucket (same-bucket writes overwrite, never append).
All helpers return new tuples; inputs are never mutated.
"""

from collections.abc import Iterable, Sequence
from typing import TypeVar

from levtrade.market.models import Candle, FundingSnapshot, MarketSnapshot, OISnapshot
from levtrade.models import hour_floor

#: Maximum retained funding / OI snapshots per coin.
MAX_HOURLY_HISTORY = 200

_Snapshot = TypeVar("_Snapshot", FundingSnapshot, OISnapshot)


def upsert_candle(series: Sequence[Candle], candle: Candle) -> tuple[Candle, ...]:
    """Insert ``candle`` keeping the series sorted; same ``time`` replaces."""
    by_time = {c.time: c for c in series}
    by_time[candle.time] = candle
    return tuple(by_time[t] for t in sorted(by_time))


def upsert_candles(series: Sequence[Candle], candles: Iterable[Candle]) -> tuple[Candle, ...]:
    """Bulk version of :func:`upsert_candle`; later candles win."""
    by_time = {c.time: c for c in series}
    for candle in candles:
        by_time[candle.time] = candle
    return tuple(by_time[t] for t in sorted(by_time))


def upsert_hourly(
    series: Sequence[_Snapshot],
    snapshot: _Snapshot,
    cap: int = MAX_HOURLY_HISTORY,
) -> tuple[_Snapshot, ...]:
    """Record ``snapshot`` with one entry per hour bucket, keeping at most ``cap``.

    A snapshot falling in an hour bucket that already has an entry replaces
    that entry. The oldest entries are dropped once ``cap`` is exceeded.
    """
    bucket = hour_floor(snapshot.time)
    kept = [s for s in series if hour_floor(s.time) != bucket]
    kept.append(snapshot)
    kept.sort(key=lambda s: s.time)
    if len(kept) > cap:
        kept = kept[-cap:]
    return tuple(kept)


def merge_candles(extended: Sequence[Candle], regular: Sequence[Candle]) -> tuple[Candle, ...]:
    """Union of two candle series by time; the regular series wins on overlap."""
    return upsert_candles(extended, regular)


def resolution_candles(snapshot: MarketSnapshot) -> tuple[Candle, ...]:
    """All candles available for outcome resolution (extended + regular)."""
    if not snapshot.extended_candles:
        return snapshot.candles
    return merge_candles(snapshot.extended_candles, snapshot.candles)
