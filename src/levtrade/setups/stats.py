"""Setup performance aggregation by tier, coin, regime and entry quality."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from levtrade.models import ResolutionWindow
from levtrade.setups.models import (
    ConfidenceTier,
    OutcomeResult,
    SetupOutcome,
    SetupPerformanceStats,
    TierStats,
    TrackedSetup,
)


@dataclass
class _Accumulator:
    counts: dict[OutcomeResult, int] = field(default_factory=lambda: dict.fromkeys(OutcomeResult, 0))
    r_values: list[Decimal] = field(default_factory=list)
    mfe_sum: Decimal | None = None
    mae_sum: Decimal | None = None

    def add(self, outcome: SetupOutcome) -> None:
        self.counts[outcome.result] += 1
        if outcome.result in (OutcomeResult.PENDING, OutcomeResult.UNRESOLVABLE):
            return
        if outcome.r_achieved is not None:
            self.r_values.append(outcome.r_achieved)
        if outcome.mfe_pct is not None:
            self.mfe_sum = (self.mfe_sum or Decimal(0)) + outcome.mfe_pct
        if outcome.mae_pct is not None:
            self.mae_sum = (self.mae_sum or Decimal(0)) + outcome.mae_pct

    def finalize(self) -> TierStats:
        wins = self.counts[OutcomeResult.WIN]
        losses = self.counts[OutcomeResult.LOSS]
        expired = self.counts[OutcomeResult.EXPIRED]
        directional = wins + losses
        resolved = directional + expired

        def average(total: Decimal | None) -> Decimal | None:
            if resolved == 0 or total is None:
                return None
            return total / resolved

        return TierStats(
            count=sum(self.counts.values()),
            wins=wins,
            losses=losses,
            expired=expired,
            unresolvable=self.counts[OutcomeResult.UNRESOLVABLE],
            pending=self.counts[OutcomeResult.PENDING],
            win_rate=Decimal(wins) / directional if directional else None,
            avg_r=average(sum(self.r_values, Decimal(0)) if self.r_values else None),
            avg_mfe_pct=average(self.mfe_sum),
            avg_mae_pct=average(self.mae_sum),
            best_r=max(self.r_values) if self.r_values else None,
            worst_r=min(self.r_values) if self.r_values else None,
        )


def compute_setup_stats(
    tracked: Sequence[TrackedSetup],
    window: ResolutionWindow = ResolutionWindow.H24,
) -> SetupPerformanceStats:
    """Aggregate outcomes for ``window`` across the ledger.

    Averages divide by wins + losses + expired; win rate by wins + losses.
    Pending and unresolvable outcomes count but do not move the averages.
    """
    by_tier = {tier: _Accumulator() for tier in ConfidenceTier}
    by_coin: dict[str, _Accumulator] = {}
    by_regime: dict[str, _Accumulator] = {}
    by_quality: dict[str, _Accumulator] = {}
    overall = _Accumulator()

    for item in tracked:
        outcome = item.outcomes[window]
        setup = item.setup
        by_tier[setup.confidence_tier].add(outcome)
        overall.add(outcome)
        by_coin.setdefault(setup.coin, _Accumulator()).add(outcome)
        by_regime.setdefault(setup.regime.value, _Accumulator()).add(outcome)
        by_quality.setdefault(setup.entry_quality.value, _Accumulator()).add(outcome)

    return SetupPerformanceStats(
        total_setups=len(tracked),
        by_tier={tier: acc.finalize() for tier, acc in by_tier.items()},
        by_coin={key: acc.finalize() for key, acc in by_coin.items()},
        by_regime={key: acc.finalize() for key, acc in by_regime.items()},
        by_entry_quality={key: acc.finalize() for key, acc in by_quality.items()},
        overall=overall.finalize(),
    )
