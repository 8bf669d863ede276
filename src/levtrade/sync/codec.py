"""JSON codec for AppState.

Encoding is strict and camelCase. Decoding is tolerant: a payload is
rejected only when it is not an object at all; individual malformed
entries (from older clients or partial writes) are dropped and logged, and
malformed scalars fall back to their defaults.
"""

from collections.abc import Callable
from decimal import InvalidOperation
from typing import Any, TypeVar

from levtrade.exceptions import StateDecodeError
from levtrade.logging import get_logger
from levtrade.risk.models import DEFAULT_RISK_INPUTS, RiskInputs
from levtrade.setups.models import TrackedSetup
from levtrade.state import AppState
from levtrade.tracker.models import TrackedSignalOutcome, TrackedSignalRecord

logger = get_logger(__name__)

#: Version stamped next to every persisted or pushed state.
SCHEMA_VERSION = 1

_T = TypeVar("_T")

_DECODE_ERRORS = (KeyError, TypeError, ValueError, AttributeError, InvalidOperation)


def state_to_dict(state: AppState, include_local: bool = False) -> dict[str, Any]:
    """Encode ``state`` for storage or transport.

    Args:
        state: State to encode.
        include_local: Also emit device-local bookkeeping
            (``lastSignalComputedAt``); used for the local row only.
    """
    data: dict[str, Any] = {
        "trackedSetups": [t.to_dict() for t in state.tracked_setups],
        "trackedSignals": [r.to_dict() for r in state.tracked_signals],
        "trackedOutcomes": [o.to_dict() for o in state.tracked_outcomes],
        "trackerLastRunAt": state.tracker_last_run_at,
        "riskInputs": state.risk_inputs.to_dict(),
        "riskInputsUpdatedAt": state.risk_inputs_updated_at,
        "updatedAt": state.updated_at,
    }
    if include_local:
        data["lastSignalComputedAt"] = state.last_signal_computed_at
    return data


def _optional_timestamp(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _decode_list(raw: Any, decode: Callable[[dict[str, Any]], _T], field: str) -> tuple[_T, ...]:
    if not isinstance(raw, list):
        return ()
    decoded: list[_T] = []
    dropped = 0
    for item in raw:
        if not isinstance(item, dict):
            dropped += 1
            continue
        try:
            decoded.append(decode(item))
        except _DECODE_ERRORS:
            dropped += 1
    if dropped:
        logger.warning("state_entries_dropped", field=field, dropped=dropped)
    return tuple(decoded)


def _decode_risk_inputs(raw: Any) -> RiskInputs:
    if not isinstance(raw, dict):
        return DEFAULT_RISK_INPUTS
    try:
        return RiskInputs.from_dict(raw)
    except _DECODE_ERRORS:
        logger.warning("risk_inputs_invalid", payload_keys=sorted(raw))
        return DEFAULT_RISK_INPUTS


def state_from_dict(data: Any) -> AppState:
    """Decode a stored or pushed state payload.

    Raises:
        StateDecodeError: ``data`` is not a JSON object.
    """
    if not isinstance(data, dict):
        raise StateDecodeError(f"state payload must be an object, got {type(data).__name__}")
    return AppState(
        tracked_setups=_decode_list(data.get("trackedSetups"), TrackedSetup.from_dict, "trackedSetups"),
        tracked_signals=_decode_list(
            data.get("trackedSignals"), TrackedSignalRecord.from_dict, "trackedSignals"
        ),
        tracked_outcomes=_decode_list(
            data.get("trackedOutcomes"), TrackedSignalOutcome.from_dict, "trackedOutcomes"
        ),
        tracker_last_run_at=_optional_timestamp(data.get("trackerLastRunAt")),
        risk_inputs=_decode_risk_inputs(data.get("riskInputs")),
        risk_inputs_updated_at=_optional_timestamp(data.get("riskInputsUpdatedAt")),
        updated_at=_optional_timestamp(data.get("updatedAt")),
        last_signal_computed_at=_optional_timestamp(data.get("lastSignalComputedAt")),
    )
