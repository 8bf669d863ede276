"""Suggested setups: generation, the tracked ledger, outcome resolution and stats."""

from levtrade.setups.export import import_setups, normalize_imported_setups, setups_to_csv, setups_to_json
from levtrade.setups.generator import compute_suggested_setup, confidence_tier
from levtrade.setups.ledger import (
    is_duplicate_setup,
    oldest_pending_by_coin,
    prefer_setup,
    prune_setups,
    resolve_setup_outcomes,
    setup_id,
    track_setup,
)
from levtrade.setups.models import (
    ConfidenceTier,
    OutcomeResult,
    ResolutionReason,
    SetupOutcome,
    SetupPerformanceStats,
    SetupSource,
    SetupTimeframe,
    SuggestedSetup,
    TierStats,
    TrackedSetup,
)
from levtrade.setups.resolution import TieBreak, locate_resolution, resolve_setup_window
from levtrade.setups.stats import compute_setup_stats

__all__ = [
    "ConfidenceTier",
    "OutcomeResult",
    "ResolutionReason",
    "SetupOutcome",
    "SetupPerformanceStats",
    "SetupSource",
    "SetupTimeframe",
    "SuggestedSetup",
    "TieBreak",
    "TierStats",
    "TrackedSetup",
    "compute_setup_stats",
    "compute_suggested_setup",
    "confidence_tier",
    "import_setups",
    "is_duplicate_setup",
    "locate_resolution",
    "normalize_imported_setups",
    "oldest_pending_by_coin",
    "prefer_setup",
    "prune_setups",
    "resolve_setup_outcomes",
    "resolve_setup_window",
    "setup_id",
    "setups_to_csv",
    "setups_to_json",
    "track_setup",
]
