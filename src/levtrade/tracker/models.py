"""Tracked raw-signal records, their outcomes and accuracy statistics.

CRITICAL: All prices and strengths use Decimal. Never use float.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from levtrade.models import (
    ResolutionWindow,
    SignalDirection,
    optional_decimal,
    optional_str,
    to_decimal,
)

#: Source tag stamped on records produced by the signal engine.
SIGNAL_ENGINE_SOURCE = "signal-engine"

MetadataValue = str | int | bool | Decimal | None


class TrackedSignalKind(str, Enum):
    DECISION = "decision"
    COMPOSITE = "composite"
    ZSCORE = "zScore"
    FUNDING = "funding"
    OI_DELTA = "oiDelta"
    HURST = "hurst"
    ENTRY_GEOMETRY = "entryGeometry"


#: Display labels, in reporting order.
KIND_LABELS: dict[TrackedSignalKind, str] = {
    TrackedSignalKind.DECISION: "Decision",
    TrackedSignalKind.COMPOSITE: "Composite",
    TrackedSignalKind.ZSCORE: "Z-Score",
    TrackedSignalKind.FUNDING: "Funding",
    TrackedSignalKind.OI_DELTA: "OI Delta",
    TrackedSignalKind.HURST: "Regime",
    TrackedSignalKind.ENTRY_GEOMETRY: "Entry Geometry",
}


def _encode_metadata(value: MetadataValue) -> str | int | bool | None:
    if isinstance(value, Decimal):
        return str(value)
    return value


@dataclass(frozen=True)
class TrackedSignalRecord:
    """One snapshot of one raw signal, kept for later accuracy grading."""

    id: str
    source: str
    coin: str
    timestamp: int
    kind: TrackedSignalKind
    direction: SignalDirection
    strength: Decimal
    label: str
    reference_price: Decimal
    metadata: dict[str, MetadataValue]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "coin": self.coin,
            "timestamp": self.timestamp,
            "kind": self.kind.value,
            "direction": self.direction.value,
            "strength": str(self.strength),
            "label": self.label,
            "referencePrice": str(self.reference_price),
            "metadata": {k: _encode_metadata(v) for k, v in sorted(self.metadata.items())},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackedSignalRecord":
        return cls(
            id=str(data["id"]),
            source=str(data.get("source", SIGNAL_ENGINE_SOURCE)),
            coin=str(data["coin"]),
            timestamp=int(data["timestamp"]),
            kind=TrackedSignalKind(data["kind"]),
            direction=SignalDirection(data["direction"]),
            strength=to_decimal(data["strength"]),
            label=str(data["label"]),
            reference_price=to_decimal(data["referencePrice"]),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass(frozen=True)
class TrackedSignalOutcome:
    """Grade of one tracked record over one window.

    ``correct`` is None for neutral records and for outcomes that could not
    be priced before the grace period ran out.
    """

    record_id: str
    window: ResolutionWindow
    resolved_at: int | None = None
    future_price: Decimal | None = None
    return_pct: Decimal | None = None
    correct: bool | None = None

    @property
    def key(self) -> tuple[str, ResolutionWindow]:
        return self.record_id, self.window

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "recordId": self.record_id,
            "window": self.window.value,
            "resolvedAt": self.resolved_at,
            "futurePrice": optional_str(self.future_price),
            "returnPct": optional_str(self.return_pct),
            "correct": self.correct,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackedSignalOutcome":
        resolved_at = data.get("resolvedAt")
        correct = data.get("correct")
        return cls(
            record_id=str(data["recordId"]),
            window=ResolutionWindow(data["window"]),
            resolved_at=int(resolved_at) if resolved_at is not None else None,
            future_price=optional_decimal(data.get("futurePrice")),
            return_pct=optional_decimal(data.get("returnPct")),
            correct=bool(correct) if correct is not None else None,
        )


@dataclass(frozen=True)
class TrackerWindowMetric:
    sample_size: int = 0  # outcomes scored correct / incorrect
    resolved_size: int = 0
    correct_size: int = 0
    hit_rate: Decimal | None = None
    avg_return_pct: Decimal | None = None


@dataclass(frozen=True)
class TrackerKindStats:
    kind: TrackedSignalKind
    label: str
    windows: dict[ResolutionWindow, TrackerWindowMetric]
    total_signals: int


@dataclass(frozen=True)
class LatestResolved:
    kind: TrackedSignalKind
    label: str
    coin: str
    window: ResolutionWindow
    correct: bool
    return_pct: Decimal | None
    resolved_at: int


@dataclass(frozen=True)
class TrackerStats:
    total_signals: int
    total_resolved: int
    overall_by_window: dict[ResolutionWindow, TrackerWindowMetric]
    by_kind: tuple[TrackerKindStats, ...]
    best_kind_24h: TrackerKindStats | None
    latest_resolved: LatestResolved | None
