"""State synchronization: JSON codec, merge contract and change detection."""

from levtrade.sync.codec import SCHEMA_VERSION, state_from_dict, state_to_dict
from levtrade.sync.merge import merge_states, needs_push, stable_serialize

__all__ = [
    "SCHEMA_VERSION",
    "merge_states",
    "needs_push",
    "stable_serialize",
    "state_from_dict",
    "state_to_dict",
]
