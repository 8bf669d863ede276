"""The explicit application state threaded through every tick.

AppState is a plain immutable value: ``advance`` takes one and returns the
next, the orchestrator persists it, and the sync codec / merge operate on it.
"""

from dataclasses import dataclass

from levtrade.risk.models import DEFAULT_RISK_INPUTS, RiskInputs
from levtrade.setups.models import TrackedSetup
from levtrade.tracker.models import TrackedSignalOutcome, TrackedSignalRecord


@dataclass(frozen=True)
class AppState:
    """Ledgers plus the bookkeeping timestamps that drive backfill and sync.

    ``last_signal_computed_at`` is device-local: it decides whether a gap
    needs replaying and is never shared through sync.
    """

    tracked_setups: tuple[TrackedSetup, ...] = ()
    tracked_signals: tuple[TrackedSignalRecord, ...] = ()
    tracked_outcomes: tuple[TrackedSignalOutcome, ...] = ()
    tracker_last_run_at: int | None = None
    risk_inputs: RiskInputs = DEFAULT_RISK_INPUTS
    risk_inputs_updated_at: int | None = None
    updated_at: int | None = None
    last_signal_computed_at: int | None = None

    def same_content(self, other: "AppState") -> bool:
        """Equality of the shared ledgers, ignoring bookkeeping timestamps."""
        return (
            self.tracked_setups == other.tracked_setups
            and self.tracked_signals == other.tracked_signals
            and self.tracked_outcomes == other.tracked_outcomes
            and self.risk_inputs == other.risk_inputs
        )
