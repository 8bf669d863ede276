"""Setup ledger: tracking, deduplication, resolution and retention.

The ledger is an immutable tuple of TrackedSetup sorted by
``(generated_at, id)``. Every function returns a new tuple; inputs are
never mutated.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from levtrade.config import ResolutionSettings, TrackerSettings
from levtrade.logging import get_logger
from levtrade.market.models import Candle, MarketSnapshot
from levtrade.market.series import resolution_candles
from levtrade.models import WINDOWS, ResolutionWindow, canonical_json, stable_id
from levtrade.setups.models import SetupOutcome, SuggestedSetup, TrackedSetup
from levtrade.setups.resolution import empty_outcome, resolve_setup_window, summarize_coverage

logger = get_logger(__name__)


def setup_id(setup: SuggestedSetup) -> str:
    """Deterministic id: readable prefix plus a content hash."""
    digest = stable_id(setup.coin, setup.direction, setup.generated_at, setup.entry_price)
    return f"{setup.coin}-{setup.direction.value}-{setup.generated_at}-{digest}"


def pending_outcomes() -> dict[ResolutionWindow, SetupOutcome]:
    return {w: empty_outcome(w) for w in WINDOWS}


def _sort_key(tracked: TrackedSetup) -> tuple[int, str]:
    return tracked.setup.generated_at, tracked.id


def _has_metadata(outcome: SetupOutcome) -> bool:
    return outcome.candle_count_used > 0 or outcome.mfe is not None or outcome.mae is not None


def completeness_score(tracked: TrackedSetup) -> int:
    """10 per resolved window, 2 per window with excursion metadata, plus coverage rank."""
    outcomes = tracked.outcomes.values()
    resolved = sum(1 for o in outcomes if not o.is_pending)
    with_metadata = sum(1 for o in outcomes if _has_metadata(o))
    return 10 * resolved + 2 * with_metadata + tracked.coverage_status.rank


def latest_resolved_at(tracked: TrackedSetup) -> int:
    return max((o.resolved_at or 0 for o in tracked.outcomes.values()), default=0)


def is_duplicate_setup(
    setup: SuggestedSetup,
    existing: Iterable[SuggestedSetup],
    settings: TrackerSettings,
) -> bool:
    """True when a same-coin, same-direction setup is close in time and entry.

    The comparison is against the existing setup nearest in time (either
    side), so replayed and live setups dedupe the same way.
    """
    candidates = [
        s for s in existing if s.coin == setup.coin and s.direction is setup.direction
    ]
    if not candidates or setup.entry_price <= 0:
        return False
    nearest = min(candidates, key=lambda s: abs(s.generated_at - setup.generated_at))
    within_window = abs(setup.generated_at - nearest.generated_at) < settings.dedupe_window_ms
    drift = abs(nearest.entry_price - setup.entry_price) / setup.entry_price
    return within_window and drift <= settings.entry_similarity_threshold


def track_setup(
    tracked: Sequence[TrackedSetup],
    setup: SuggestedSetup,
    settings: TrackerSettings,
    tracked_id: str | None = None,
    outcomes: Mapping[ResolutionWindow, SetupOutcome] | None = None,
) -> tuple[TrackedSetup, ...]:
    """Add ``setup`` to the ledger unless it duplicates an existing one.

    Args:
        tracked: Current ledger.
        setup: Newly generated (or pulled) setup.
        settings: Dedupe window and entry similarity threshold.
        tracked_id: Id to use instead of the derived one (server setups).
        outcomes: Already-known outcomes (server setups); missing windows
            start pending.

    Returns:
        The updated ledger. A known id is merged, keeping the more complete
        record; a near-duplicate under a new id is dropped.
    """
    new_id = tracked_id or setup_id(setup)
    merged_outcomes = pending_outcomes()
    if outcomes:
        merged_outcomes.update({w: o for w, o in outcomes.items() if w in merged_outcomes})
    candidate = TrackedSetup(
        id=new_id,
        setup=setup,
        outcomes=merged_outcomes,
        coverage_status=summarize_coverage(merged_outcomes),
    )

    for index, existing in enumerate(tracked):
        if existing.id == new_id:
            winner = prefer_setup(existing, candidate)
            if winner is existing:
                return tuple(tracked)
            updated = list(tracked)
            updated[index] = winner
            return tuple(updated)

    if is_duplicate_setup(setup, (t.setup for t in tracked), settings):
        logger.debug("setup_deduplicated", coin=setup.coin, direction=setup.direction.value)
        return tuple(tracked)

    logger.info(
        "setup_tracked",
        id=new_id,
        coin=setup.coin,
        direction=setup.direction.value,
        source=setup.source.value if setup.source else None,
    )
    return tuple(sorted((*tracked, candidate), key=_sort_key))


def prefer_setup(a: TrackedSetup, b: TrackedSetup) -> TrackedSetup:
    """Pick the more complete of two versions of the same setup.

    Completeness score first, then the latest ``resolved_at``, then the
    canonical serialization so the choice is order-independent.
    """
    key_a = (completeness_score(a), latest_resolved_at(a))
    key_b = (completeness_score(b), latest_resolved_at(b))
    if key_a != key_b:
        return a if key_a > key_b else b
    return a if canonical_json(a.to_dict()) >= canonical_json(b.to_dict()) else b


def _resolve_one(
    tracked: TrackedSetup,
    candles: Sequence[Candle],
    snapshot: MarketSnapshot | None,
    now: int,
    settings: ResolutionSettings,
) -> TrackedSetup:
    outcomes = dict(tracked.outcomes)
    changed = False
    for window in tracked.pending_windows:
        resolved = resolve_setup_window(
            tracked.setup,
            window,
            candles,
            now,
            settings,
            regular_candles=snapshot.candles if snapshot else (),
            extended_candles=snapshot.extended_candles if snapshot else (),
        )
        if resolved is None:
            continue
        outcomes[window] = resolved
        changed = True
        logger.info(
            "outcome_resolved",
            id=tracked.id,
            window=window.value,
            result=resolved.result.value,
            coverage=resolved.coverage_status.value,
        )

    coverage = summarize_coverage(outcomes, tracked.coverage_status)
    if not changed and coverage is tracked.coverage_status:
        return tracked
    return replace(tracked, outcomes=outcomes, coverage_status=coverage)


def resolve_setup_outcomes(
    tracked: Sequence[TrackedSetup],
    markets: Mapping[str, MarketSnapshot],
    now: int,
    settings: ResolutionSettings,
) -> tuple[TrackedSetup, ...]:
    """Resolve every pending window that has become resolvable.

    Resolved windows are never revisited, so repeated calls are idempotent.
    """
    candles_by_coin: dict[str, tuple[Candle, ...]] = {}
    result: list[TrackedSetup] = []
    changed = False
    for item in tracked:
        coin = item.setup.coin
        snapshot = markets.get(coin)
        if not item.pending_windows or snapshot is None:
            result.append(item)
            continue
        if coin not in candles_by_coin:
            candles_by_coin[coin] = resolution_candles(snapshot)
        updated = _resolve_one(item, candles_by_coin[coin], snapshot, now, settings)
        changed = changed or updated is not item
        result.append(updated)
    return tuple(result) if changed else tuple(tracked)


def prune_setups(
    tracked: Sequence[TrackedSetup],
    now: int,
    settings: TrackerSettings,
) -> tuple[TrackedSetup, ...]:
    """Drop setups generated before the retention cutoff."""
    cutoff = now - settings.retention_ms
    kept = tuple(t for t in tracked if t.setup.generated_at >= cutoff)
    if len(kept) != len(tracked):
        logger.info("setups_pruned", removed=len(tracked) - len(kept))
    return kept


def oldest_pending_by_coin(tracked: Iterable[TrackedSetup]) -> dict[str, int]:
    """Oldest ``generated_at`` among setups with a pending window, per coin."""
    oldest: dict[str, int] = {}
    for item in tracked:
        if not item.pending_windows:
            continue
        coin = item.setup.coin
        if coin not in oldest or item.setup.generated_at < oldest[coin]:
            oldest[coin] = item.setup.generated_at
    return oldest

