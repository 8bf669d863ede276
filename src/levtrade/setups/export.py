"""CSV / JSON export and tolerant JSON import of the setup ledger."""

import csv
import io
import json
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from levtrade.logging import get_logger
from levtrade.models import WINDOWS, CoverageStatus, ResolutionWindow
from levtrade.setups.models import (
    OutcomeResult,
    ResolutionReason,
    SetupOutcome,
    SuggestedSetup,
    TrackedSetup,
)
from levtrade.setups.resolution import summarize_coverage

logger = get_logger(__name__)

_SETUP_COLUMNS = [
    "id",
    "coin",
    "direction",
    "entryPrice",
    "stopPrice",
    "targetPrice",
    "confidenceTier",
    "confidence",
    "regime",
    "entryQuality",
    "generatedAt",
    "coverageStatus",
]
_OUTCOME_COLUMNS = ["result", "reason", "coverage", "candles", "rAchieved", "returnPct"]

CSV_HEADER: list[str] = _SETUP_COLUMNS + [
    f"{column}_{window.value}" for window in WINDOWS for column in _OUTCOME_COLUMNS
]

#: Reason implied by a result, for legacy exports that predate reasons.
_INFERRED_REASONS: dict[OutcomeResult, ResolutionReason] = {
    OutcomeResult.WIN: ResolutionReason.TARGET,
    OutcomeResult.LOSS: ResolutionReason.STOP,
    OutcomeResult.EXPIRED: ResolutionReason.EXPIRED,
    OutcomeResult.UNRESOLVABLE: ResolutionReason.UNRESOLVABLE,
    OutcomeResult.PENDING: ResolutionReason.PENDING,
}


def _iso(timestamp_ms: int) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _cell(value: Decimal | None) -> str:
    return "" if value is None else str(value)


def _outcome_cells(outcome: SetupOutcome) -> list[str]:
    return [
        outcome.result.value,
        outcome.resolution_reason.value,
        outcome.coverage_status.value,
        str(outcome.candle_count_used),
        _cell(outcome.r_achieved),
        _cell(outcome.return_pct),
    ]


def setups_to_csv(tracked: Sequence[TrackedSetup]) -> str:
    """Render the ledger as CSV: one row per setup, six columns per window."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for item in tracked:
        setup = item.setup
        row = [
            item.id,
            setup.coin,
            setup.direction.value,
            str(setup.entry_price),
            str(setup.stop_price),
            str(setup.target_price),
            setup.confidence_tier.value,
            f"{setup.confidence:.3f}",
            setup.regime.value,
            setup.entry_quality.value,
            _iso(setup.generated_at),
            item.coverage_status.value,
        ]
        for window in WINDOWS:
            row.extend(_outcome_cells(item.outcomes[window]))
        writer.writerow(row)
    return buffer.getvalue()


def setups_to_json(tracked: Sequence[TrackedSetup]) -> str:
    return json.dumps([item.to_dict() for item in tracked], indent=2)


def _is_tracked_setup(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    setup = value.get("setup")
    outcomes = value.get("outcomes")
    return (
        isinstance(value.get("id"), str)
        and isinstance(setup, dict)
        and isinstance(setup.get("generatedAt"), (int, float))
        and not isinstance(setup.get("generatedAt"), bool)
        and isinstance(outcomes, dict)
        and all(w.value in outcomes for w in WINDOWS)
    )


def _normalize_outcome(raw: dict[str, Any], window: ResolutionWindow) -> SetupOutcome:
    data = {**raw, "window": window.value}
    result = OutcomeResult(data.get("result") or OutcomeResult.PENDING.value)
    if data.get("resolutionReason") is None:
        data["resolutionReason"] = _INFERRED_REASONS[result].value
    if data.get("coverageStatus") is None:
        data["coverageStatus"] = CoverageStatus.FULL.value
    if data.get("candleCountUsed") is None:
        data["candleCountUsed"] = 0
    return SetupOutcome.from_dict(data)


def normalize_imported_setups(payload: Any) -> list[TrackedSetup]:
    """Decode an exported ledger, filling gaps left by older exports.

    Accepts a bare list or an object with a ``trackedSetups`` list. Items
    that fail validation are skipped.
    """
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict) and isinstance(payload.get("trackedSetups"), list):
        items = payload["trackedSetups"]
    else:
        return []

    imported: list[TrackedSetup] = []
    for item in items:
        if not _is_tracked_setup(item):
            continue
        try:
            outcomes = {w: _normalize_outcome(item["outcomes"][w.value], w) for w in WINDOWS}
            setup = SuggestedSetup.from_dict(item["setup"])
            raw_coverage = item.get("coverageStatus")
            coverage = (
                CoverageStatus(raw_coverage)
                if raw_coverage is not None
                else summarize_coverage(outcomes)
            )
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            logger.warning("import_item_skipped", id=item.get("id"), error=str(e))
            continue
        imported.append(
            TrackedSetup(id=item["id"], setup=setup, outcomes=outcomes, coverage_status=coverage)
        )
    return imported


def import_setups(
    tracked: Sequence[TrackedSetup],
    payload: Any,
) -> tuple[TrackedSetup, ...]:
    """Merge imported setups whose ids are not already tracked.

    Returns:
        The merged ledger sorted by ``generated_at``. Unchanged when nothing
        valid was found.
    """
    imported = normalize_imported_setups(payload)
    known = {item.id for item in tracked}
    merged = list(tracked)
    for item in imported:
        if item.id not in known:
            merged.append(item)
            known.add(item.id)
    added = len(merged) - len(tracked)
    logger.info("setups_imported", found=len(imported), added=added)
    return tuple(sorted(merged, key=lambda t: (t.setup.generated_at, t.id)))
