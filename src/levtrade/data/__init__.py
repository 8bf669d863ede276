"""Persistence layer.

Provides the SQLite database manager and the typed read/write store for
server setups, open-interest history and persisted application state.
"""

from levtrade.data.database import LevtradeDatabase
from levtrade.data.store import LOCAL_SCOPE, SHARED_SCOPE, LevtradeStore, StoredState

__all__ = [
    "LOCAL_SCOPE",
    "SHARED_SCOPE",
    "LevtradeDatabase",
    "LevtradeStore",
    "StoredState",
]
