"""Typed SQLite read/write abstraction for levtrade persistence.

All SQL is isolated behind LevtradeStore. Entities are stored as the same
camelCase JSON the sync surface uses.

CRITICAL: All monetary values stored as TEXT in SQLite, restored as Decimal on read.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from levtrade.data.database import LevtradeDatabase
from levtrade.logging import get_logger
from levtrade.market.models import OISnapshot
from levtrade.models import WINDOWS, ResolutionWindow, hour_floor
from levtrade.setups.ledger import pending_outcomes
from levtrade.setups.models import SetupOutcome, SuggestedSetup, TrackedSetup
from levtrade.setups.resolution import summarize_coverage
from levtrade.state import AppState
from levtrade.sync.codec import SCHEMA_VERSION, state_from_dict, state_to_dict

logger = get_logger(__name__)

#: Scope of the state row shared through the sync endpoints.
SHARED_SCOPE = "global"
#: Scope of the orchestrator's own state row.
LOCAL_SCOPE = "local"


@dataclass(frozen=True)
class StoredState:
    """A persisted state row."""

    state: AppState
    updated_at: int
    schema_version: int


def _encode_outcomes(outcomes: Mapping[ResolutionWindow, SetupOutcome]) -> str:
    return json.dumps({w.value: outcomes[w].to_dict() for w in WINDOWS})


def _decode_setup_row(
    row_id: str,
    setup_json: str,
    outcomes_json: str | None,
) -> TrackedSetup:
    outcomes = pending_outcomes()
    if outcomes_json:
        raw = json.loads(outcomes_json)
        outcomes.update(
            {w: SetupOutcome.from_dict(raw[w.value]) for w in WINDOWS if w.value in raw}
        )
    return TrackedSetup(
        id=row_id,
        setup=SuggestedSetup.from_dict(json.loads(setup_json)),
        outcomes=outcomes,
        coverage_status=summarize_coverage(outcomes),
    )


class LevtradeStore:
    """Async SQLite store for server setups, OI history and state rows.

    Usage:
        async with LevtradeDatabase("data/levtrade.db") as database:
            store = LevtradeStore(database)
            await store.save_state(LOCAL_SCOPE, state, now)
    """

    def __init__(self, database: LevtradeDatabase) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Open interest
    # ──────────────────────────────────────────────

    async def upsert_oi_snapshot(self, coin: str, snapshot: OISnapshot) -> None:
        """Record OI in its hour bucket; a later write in the same hour overwrites."""
        await self._database.db.execute(
            "INSERT OR REPLACE INTO oi_snapshots (coin, time_ms, open_interest) "
            "VALUES (?, ?, ?)",
            (coin, hour_floor(snapshot.time), str(snapshot.open_interest)),
        )
        await self._database.db.commit()

    async def get_oi_history(self, coin: str, limit: int = 24) -> list[OISnapshot]:
        """Latest ``limit`` hourly OI snapshots for ``coin``, oldest first."""
        cursor = await self._database.db.execute(
            "SELECT time_ms, open_interest FROM oi_snapshots "
            "WHERE coin = ? ORDER BY time_ms DESC LIMIT ?",
            (coin, limit),
        )
        rows = await cursor.fetchall()
        return [OISnapshot(time=row[0], open_interest=Decimal(row[1])) for row in reversed(rows)]

    # ──────────────────────────────────────────────
    # Server setups
    # ──────────────────────────────────────────────

    async def insert_server_setup(self, tracked: TrackedSetup) -> bool:
        """Persist a new server setup. Returns False if the id already exists."""
        setup = tracked.setup
        cursor = await self._database.db.execute(
            "INSERT OR IGNORE INTO server_setups "
            "(id, coin, direction, generated_at, setup_json, outcomes_json) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                tracked.id,
                setup.coin,
                setup.direction.value,
                setup.generated_at,
                json.dumps(setup.to_dict()),
                _encode_outcomes(tracked.outcomes),
            ),
        )
        await self._database.db.commit()
        inserted = cursor.rowcount > 0
        logger.debug("server_setup_inserted", id=tracked.id, inserted=inserted)
        return inserted

    async def update_setup_outcomes(
        self,
        setup_id: str,
        outcomes: Mapping[ResolutionWindow, SetupOutcome],
    ) -> None:
        await self._database.db.execute(
            "UPDATE server_setups SET outcomes_json = ? WHERE id = ?",
            (_encode_outcomes(outcomes), setup_id),
        )
        await self._database.db.commit()

    async def get_server_setups(
        self,
        since_ms: int,
        limit: int,
        coin: str | None = None,
    ) -> list[TrackedSetup]:
        """Setups generated at or after ``since_ms``, newest first.

        Windows without a stored outcome come back as pending placeholders.
        """
        query = (
            "SELECT id, setup_json, outcomes_json FROM server_setups "
            "WHERE generated_at >= ?"
        )
        params: list[object] = [since_ms]
        if coin is not None:
            query += " AND coin = ?"
            params.append(coin)
        query += " ORDER BY generated_at DESC, id DESC LIMIT ?"
        params.append(limit)

        cursor = await self._database.db.execute(query, params)
        rows = await cursor.fetchall()
        return [_decode_setup_row(row[0], row[1], row[2]) for row in rows]

    # ──────────────────────────────────────────────
    # Application state
    # ──────────────────────────────────────────────

    async def load_state(self, scope: str) -> StoredState | None:
        """Read the state row for ``scope``; None when never written."""
        cursor = await self._database.db.execute(
            "SELECT state_json, schema_version, updated_at FROM app_state WHERE scope = ?",
            (scope,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return StoredState(
            state=state_from_dict(json.loads(row[0])),
            schema_version=row[1],
            updated_at=row[2],
        )

    async def save_state(self, scope: str, state: AppState, updated_at: int) -> StoredState:
        """Write the state row for ``scope``, replacing any previous one.

        Device-local bookkeeping is only kept in the local scope.
        """
        payload = state_to_dict(state, include_local=scope == LOCAL_SCOPE)
        await self._database.db.execute(
            "INSERT OR REPLACE INTO app_state (scope, state_json, schema_version, updated_at) "
            "VALUES (?, ?, ?, ?)",
            (scope, json.dumps(payload), SCHEMA_VERSION, updated_at),
        )
        await self._database.db.commit()
        logger.debug("state_saved", scope=scope, setups=len(state.tracked_setups))
        return StoredState(state=state, updated_at=updated_at, schema_version=SCHEMA_VERSION)
