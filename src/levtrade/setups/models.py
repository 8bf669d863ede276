"""Suggested setup, tracked setup and outcome data models.

Serialization uses camelCase keys; Decimals travel as strings.

CRITICAL: All prices and ratios use Decimal. Never use float.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from levtrade.models import (
    WINDOWS,
    CoverageStatus,
    ResolutionWindow,
    SignalColor,
    TradeDirection,
    optional_decimal,
    optional_str,
    to_decimal,
    to_price,
)
from levtrade.signals.models import EntryQuality, MarketRegime


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SetupTimeframe(str, Enum):
    """Expected holding horizon shown alongside a setup."""

    SHORT = "4-12h"
    STANDARD = "4-24h"
    LONG = "24-72h"
    WAIT = "wait"


class SetupSource(str, Enum):
    """Where a setup was generated."""

    LIVE = "live"
    SERVER = "server"
    BACKFILL = "backfill"


class OutcomeResult(str, Enum):
    WIN = "win"
    LOSS = "loss"
    EXPIRED = "expired"
    UNRESOLVABLE = "unresolvable"
    PENDING = "pending"


class ResolutionReason(str, Enum):
    TARGET = "target"
    STOP = "stop"
    EXPIRED = "expired"
    UNRESOLVABLE = "unresolvable"
    PENDING = "pending"


@dataclass(frozen=True)
class SuggestedSetup:
    """A concrete, immutable trade proposal emitted from a decision snapshot."""

    coin: str
    direction: TradeDirection
    entry_price: Decimal
    stop_price: Decimal
    target_price: Decimal
    mean_reversion_target: Decimal
    rr_ratio: Decimal
    suggested_position_size: Decimal
    suggested_leverage: Decimal
    trade_grade: SignalColor
    confidence: Decimal
    confidence_tier: ConfidenceTier
    entry_quality: EntryQuality
    agreement_count: int
    agreement_total: int
    regime: MarketRegime
    reversion_potential: Decimal
    stretch_sigma: Decimal
    atr: Decimal
    composite_value: Decimal
    timeframe: SetupTimeframe
    summary: str
    generated_at: int
    source: SetupSource | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "coin": self.coin,
            "direction": self.direction.value,
            "entryPrice": str(self.entry_price),
            "stopPrice": str(self.stop_price),
            "targetPrice": str(self.target_price),
            "meanReversionTarget": str(self.mean_reversion_target),
            "rrRatio": str(self.rr_ratio),
            "suggestedPositionSize": str(self.suggested_position_size),
            "suggestedLeverage": str(self.suggested_leverage),
            "tradeGrade": self.trade_grade.value,
            "confidence": str(self.confidence),
            "confidenceTier": self.confidence_tier.value,
            "entryQuality": self.entry_quality.value,
            "agreementCount": self.agreement_count,
            "agreementTotal": self.agreement_total,
            "regime": self.regime.value,
            "reversionPotential": str(self.reversion_potential),
            "stretchSigma": str(self.stretch_sigma),
            "atr": str(self.atr),
            "compositeValue": str(self.composite_value),
            "timeframe": self.timeframe.value,
            "summary": self.summary,
            "generatedAt": self.generated_at,
        }
        if self.source is not None:
            data["source"] = self.source.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SuggestedSetup":
        """Decode a setup.

        Raises:
            ValueError: Entry, stop or target is not a finite positive price.
        """
        source = data.get("source")
        return cls(
            coin=str(data["coin"]),
            direction=TradeDirection(data["direction"]),
            entry_price=to_price(data["entryPrice"]),
            stop_price=to_price(data["stopPrice"]),
            target_price=to_price(data["targetPrice"]),
            mean_reversion_target=to_decimal(data["meanReversionTarget"]),
            rr_ratio=to_decimal(data["rrRatio"]),
            suggested_position_size=to_decimal(data["suggestedPositionSize"]),
            suggested_leverage=to_decimal(data["suggestedLeverage"]),
            trade_grade=SignalColor(data["tradeGrade"]),
            confidence=to_decimal(data["confidence"]),
            confidence_tier=ConfidenceTier(data["confidenceTier"]),
            entry_quality=EntryQuality(data["entryQuality"]),
            agreement_count=int(data["agreementCount"]),
            agreement_total=int(data["agreementTotal"]),
            regime=MarketRegime(data["regime"]),
            reversion_potential=to_decimal(data["reversionPotential"]),
            stretch_sigma=to_decimal(data["stretchSigma"]),
            atr=to_decimal(data["atr"]),
            composite_value=to_decimal(data["compositeValue"]),
            timeframe=SetupTimeframe(data["timeframe"]),
            summary=str(data["summary"]),
            generated_at=int(data["generatedAt"]),
            source=SetupSource(source) if source is not None else None,
        )


@dataclass(frozen=True)
class SetupOutcome:
    """Grade of one setup over one window.

    Once ``result`` leaves PENDING the outcome is immutable.
    """

    window: ResolutionWindow
    resolved_at: int | None = None
    result: OutcomeResult = OutcomeResult.PENDING
    resolution_reason: ResolutionReason = ResolutionReason.PENDING
    coverage_status: CoverageStatus = CoverageStatus.FULL
    candle_count_used: int = 0
    return_pct: Decimal | None = None
    r_achieved: Decimal | None = None
    mfe: Decimal | None = None
    mfe_pct: Decimal | None = None
    mae: Decimal | None = None
    mae_pct: Decimal | None = None
    target_hit: bool = False
    stop_hit: bool = False
    price_at_resolution: Decimal | None = None

    @property
    def is_pending(self) -> bool:
        return self.result is OutcomeResult.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "window": self.window.value,
            "resolvedAt": self.resolved_at,
            "result": self.result.value,
            "resolutionReason": self.resolution_reason.value,
            "coverageStatus": self.coverage_status.value,
            "candleCountUsed": self.candle_count_used,
            "returnPct": optional_str(self.return_pct),
            "rAchieved": optional_str(self.r_achieved),
            "mfe": optional_str(self.mfe),
            "mfePct": optional_str(self.mfe_pct),
            "mae": optional_str(self.mae),
            "maePct": optional_str(self.mae_pct),
            "targetHit": self.target_hit,
            "stopHit": self.stop_hit,
            "priceAtResolution": optional_str(self.price_at_resolution),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SetupOutcome":
        resolved_at = data.get("resolvedAt")
        return cls(
            window=ResolutionWindow(data["window"]),
            resolved_at=int(resolved_at) if resolved_at is not None else None,
            result=OutcomeResult(data.get("result", OutcomeResult.PENDING.value)),
            resolution_reason=ResolutionReason(
                data.get("resolutionReason", ResolutionReason.PENDING.value)
            ),
            coverage_status=CoverageStatus(data.get("coverageStatus", CoverageStatus.FULL.value)),
            candle_count_used=int(data.get("candleCountUsed") or 0),
            return_pct=optional_decimal(data.get("returnPct")),
            r_achieved=optional_decimal(data.get("rAchieved")),
            mfe=optional_decimal(data.get("mfe")),
            mfe_pct=optional_decimal(data.get("mfePct")),
            mae=optional_decimal(data.get("mae")),
            mae_pct=optional_decimal(data.get("maePct")),
            target_hit=bool(data.get("targetHit", False)),
            stop_hit=bool(data.get("stopHit", False)),
            price_at_resolution=optional_decimal(data.get("priceAtResolution")),
        )


@dataclass(frozen=True)
class TrackedSetup:
    """A suggested setup plus its outcome per resolution window."""

    id: str
    setup: SuggestedSetup
    outcomes: dict[ResolutionWindow, SetupOutcome]
    coverage_status: CoverageStatus = CoverageStatus.FULL

    @property
    def pending_windows(self) -> list[ResolutionWindow]:
        return [w for w in WINDOWS if self.outcomes[w].is_pending]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "setup": self.setup.to_dict(),
            "coverageStatus": self.coverage_status.value,
            "outcomes": {w.value: self.outcomes[w].to_dict() for w in WINDOWS},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackedSetup":
        raw_outcomes = data["outcomes"]
        return cls(
            id=str(data["id"]),
            setup=SuggestedSetup.from_dict(data["setup"]),
            outcomes={w: SetupOutcome.from_dict(raw_outcomes[w.value]) for w in WINDOWS},
            coverage_status=CoverageStatus(data.get("coverageStatus", CoverageStatus.FULL.value)),
        )


@dataclass(frozen=True)
class TierStats:
    """Aggregate performance of a group of setups over one window.

    Ratio fields are None when their denominator is zero.
    """

    count: int = 0
    wins: int = 0
    losses: int = 0
    expired: int = 0
    unresolvable: int = 0
    pending: int = 0
    win_rate: Decimal | None = None
    avg_r: Decimal | None = None
    avg_mfe_pct: Decimal | None = None
    avg_mae_pct: Decimal | None = None
    best_r: Decimal | None = None
    worst_r: Decimal | None = None


@dataclass(frozen=True)
class SetupPerformanceStats:
    total_setups: int
    by_tier: dict[ConfidenceTier, TierStats]
    by_coin: dict[str, TierStats]
    by_regime: dict[str, TierStats]
    by_entry_quality: dict[str, TierStats]
    overall: TierStats = field(default_factory=TierStats)
