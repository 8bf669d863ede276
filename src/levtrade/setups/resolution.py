"""Outcome resolution engine.

Grades setups (target / stop / expiry with R-multiples and excursions) and
raw signal records (directional correctness) against the candles that
followed them. Both use the same lookup of the resolution candle:

1. Nothing happens before ``generated_at + window``.
2. The resolution candle is the first candle at or after the window end.
3. Without one, the latest candle is used under partial coverage if it is
   no older than ``generated_at`` and within ``close_enough_ms`` of the
   window end; otherwise, once ``grace_period_ms`` has elapsed past the
   window end, the outcome is terminally unresolvable; otherwise retry.

Resolved outcomes are never recomputed by callers, which keeps results
monotonic and replay-safe.
"""

from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from levtrade.config import ResolutionSettings
from levtrade.market.models import Candle
from levtrade.models import (
    HUNDRED,
    CoverageStatus,
    ResolutionWindow,
    SignalDirection,
    TradeDirection,
    is_valid_price,
)
from levtrade.setups.models import OutcomeResult, ResolutionReason, SetupOutcome, SuggestedSetup
from levtrade.tracker.models import TrackedSignalOutcome, TrackedSignalRecord


class TieBreak(str, Enum):
    """Policy when one candle touches both target and stop.

    Intrabar order is unknown, so NEAREST_TO_OPEN assumes the level closer
    to the candle's open was hit first (equal distance counts as the stop).
    """

    NEAREST_TO_OPEN = "nearest_to_open"
    STOP_FIRST = "stop_first"
    TARGET_FIRST = "target_first"


class LookupStatus(str, Enum):
    READY = "ready"
    NOT_YET = "not_yet"
    UNRESOLVABLE = "unresolvable"


@dataclass(frozen=True)
class ResolutionLookup:
    """Candles relevant to one window, or why there are none yet."""

    status: LookupStatus
    traversal: tuple[Candle, ...] = ()
    candle: Candle | None = None
    partial: bool = False


def empty_outcome(window: ResolutionWindow) -> SetupOutcome:
    """A pending outcome placeholder for ``window``."""
    return SetupOutcome(window=window)


def summarize_coverage(
    outcomes: dict[ResolutionWindow, SetupOutcome],
    current: CoverageStatus | None = None,
) -> CoverageStatus:
    """Worst coverage across outcomes; falls back to ``current`` or FULL."""
    statuses = {o.coverage_status for o in outcomes.values()}
    if CoverageStatus.INSUFFICIENT in statuses:
        return CoverageStatus.INSUFFICIENT
    if CoverageStatus.PARTIAL in statuses:
        return CoverageStatus.PARTIAL
    return current if current is not None else CoverageStatus.FULL


def locate_resolution(
    generated_at: int,
    window: ResolutionWindow,
    candles: Sequence[Candle],
    now: int,
    settings: ResolutionSettings,
) -> ResolutionLookup:
    """Find the traversal and resolution candle for one window.

    Args:
        generated_at: When the setup or record was created.
        window: Resolution window.
        candles: Candles sorted ascending by time.
        now: Current timestamp.
        settings: Tolerances (close-enough and grace period).
    """
    target_time = generated_at + window.duration_ms
    if now < target_time:
        return ResolutionLookup(LookupStatus.NOT_YET)

    traversal = tuple(c for c in candles if generated_at <= c.time <= target_time)
    candle = next((c for c in candles if c.time >= target_time), None)
    if candle is not None:
        return ResolutionLookup(LookupStatus.READY, traversal, candle)

    latest = candles[-1] if candles else None
    if (
        latest is not None
        and latest.time >= generated_at
        and target_time - latest.time <= settings.close_enough_ms
    ):
        return ResolutionLookup(LookupStatus.READY, traversal, latest, partial=True)
    if now >= target_time + settings.grace_period_ms:
        return ResolutionLookup(LookupStatus.UNRESOLVABLE, traversal)
    return ResolutionLookup(LookupStatus.NOT_YET, traversal)


def _has_valid_levels(setup: SuggestedSetup) -> bool:
    return all(
        is_valid_price(p) for p in (setup.entry_price, setup.stop_price, setup.target_price)
    )


def _unresolvable_outcome(window: ResolutionWindow, now: int, candle_count: int) -> SetupOutcome:
    return replace(
        empty_outcome(window),
        resolved_at=now,
        result=OutcomeResult.UNRESOLVABLE,
        resolution_reason=ResolutionReason.UNRESOLVABLE,
        coverage_status=CoverageStatus.INSUFFICIENT,
        candle_count_used=candle_count,
    )


def _touches(setup: SuggestedSetup, candle: Candle) -> tuple[bool, bool]:
    """Return (target touched, stop touched) using the candle's wicks."""
    if setup.direction is TradeDirection.LONG:
        return candle.high >= setup.target_price, candle.low <= setup.stop_price
    return candle.low <= setup.target_price, candle.high >= setup.stop_price


def _stop_wins(setup: SuggestedSetup, candle: Candle, tie_break: TieBreak) -> bool:
    if tie_break is TieBreak.STOP_FIRST:
        return True
    if tie_break is TieBreak.TARGET_FIRST:
        return False
    return abs(candle.open - setup.stop_price) <= abs(candle.open - setup.target_price)


def resolve_setup_window(
    setup: SuggestedSetup,
    window: ResolutionWindow,
    candles: Sequence[Candle],
    now: int,
    settings: ResolutionSettings,
    regular_candles: Sequence[Candle] | None = None,
    extended_candles: Sequence[Candle] | None = None,
) -> SetupOutcome | None:
    """Grade ``setup`` over ``window``.

    Args:
        setup: The setup to grade.
        window: Resolution window.
        candles: Merged (extended + regular) candles sorted by time.
        now: Current timestamp, recorded as ``resolved_at``.
        settings: Resolution tolerances and tie-break policy.
        regular_candles: The regular rolling window, for coverage tracking.
        extended_candles: Older history fetched for resolution, if any.

    Returns:
        The resolved SetupOutcome, or None when the window cannot be
        resolved yet.
    """
    lookup = locate_resolution(setup.generated_at, window, candles, now, settings)
    if lookup.status is LookupStatus.NOT_YET:
        return None
    resolution_candle = lookup.candle
    if (
        lookup.status is LookupStatus.UNRESOLVABLE
        or resolution_candle is None
        or not _has_valid_levels(setup)
    ):
        return _unresolvable_outcome(window, now, len(lookup.traversal))

    tie_break = TieBreak(settings.tie_break)
    is_long = setup.direction is TradeDirection.LONG

    result = OutcomeResult.EXPIRED
    reason = ResolutionReason.EXPIRED
    exit_price = resolution_candle.close
    to_inspect = lookup.traversal or (resolution_candle,)
    inspected = 0

    for candle in to_inspect:
        inspected += 1
        hit_target, hit_stop = _touches(setup, candle)
        if hit_target and hit_stop:
            hit_stop = _stop_wins(setup, candle, tie_break)
            hit_target = not hit_stop
        if hit_stop:
            result = OutcomeResult.LOSS
            reason = ResolutionReason.STOP
            exit_price = setup.stop_price
            break
        if hit_target:
            result = OutcomeResult.WIN
            reason = ResolutionReason.TARGET
            exit_price = setup.target_price
            break

    seen = to_inspect[:inspected]
    highest = max(c.high for c in seen)
    lowest = min(c.low for c in seen)
    entry = setup.entry_price
    move = exit_price - entry if is_long else entry - exit_price
    stop_distance = abs(entry - setup.stop_price)
    mfe = highest - entry if is_long else entry - lowest
    mae = entry - lowest if is_long else highest - entry

    used_backfill = False
    if extended_candles:
        oldest_regular = regular_candles[0].time if regular_candles else None
        used_backfill = oldest_regular is None or setup.generated_at < oldest_regular
    coverage = (
        CoverageStatus.PARTIAL if lookup.partial or used_backfill else CoverageStatus.FULL
    )

    return SetupOutcome(
        window=window,
        resolved_at=now,
        result=result,
        resolution_reason=reason,
        coverage_status=coverage,
        candle_count_used=inspected + 1 if lookup.traversal else inspected,
        return_pct=move / entry * HUNDRED,
        r_achieved=move / stop_distance if stop_distance > 0 else None,
        mfe=mfe,
        mfe_pct=mfe / entry * HUNDRED,
        mae=mae,
        mae_pct=mae / entry * HUNDRED,
        target_hit=result is OutcomeResult.WIN,
        stop_hit=result is OutcomeResult.LOSS,
        price_at_resolution=exit_price,
    )


def _score_direction(direction: SignalDirection, return_pct: Decimal) -> bool | None:
    if direction is SignalDirection.LONG:
        return return_pct > 0
    if direction is SignalDirection.SHORT:
        return return_pct < 0
    return None


def resolve_signal_window(
    record: TrackedSignalRecord,
    outcome: TrackedSignalOutcome,
    candles: Sequence[Candle],
    now: int,
    settings: ResolutionSettings,
) -> TrackedSignalOutcome | None:
    """Grade a tracked record by the close of its resolution candle.

    Neutral records resolve with ``correct = None``: they describe market
    character, not a directional bet. A record without a usable reference
    price resolves the same way, with no price or return.

    Returns:
        The resolved outcome, or None when not resolvable yet.
    """
    lookup = locate_resolution(record.timestamp, outcome.window, candles, now, settings)
    if lookup.status is LookupStatus.NOT_YET:
        return None
    if (
        lookup.status is LookupStatus.UNRESOLVABLE
        or lookup.candle is None
        or not is_valid_price(record.reference_price)
    ):
        return replace(outcome, resolved_at=now, future_price=None, return_pct=None, correct=None)
    future_price = lookup.candle.close
    if not is_valid_price(future_price):
        return None
    return_pct = (future_price - record.reference_price) / record.reference_price * HUNDRED
    return replace(
        outcome,
        resolved_at=now,
        future_price=future_price,
        return_pct=return_pct,
        correct=_score_direction(record.direction, return_pct),
    )
