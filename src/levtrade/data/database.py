"""aiosqlite connection owner for levtrade.

Three tables back the service and the orchestrator:

- ``server_setups``: setups generated by the scheduled job, outcomes as JSON.
- ``oi_snapshots``: one open-interest reading per coin per hour bucket.
- ``app_state``: one encoded AppState per scope ("local", "shared").

Decimals are stored as TEXT so they round-trip exactly.
"""

from pathlib import Path
from typing import Self

import aiosqlite

from levtrade.logging import get_logger

logger = get_logger(__name__)

DB_SCHEMA_VERSION = 1
MEMORY_PATH = ":memory:"

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS db_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS server_setups (
    id TEXT PRIMARY KEY,
    coin TEXT NOT NULL,
    direction TEXT NOT NULL,
    generated_at INTEGER NOT NULL,
    setup_json TEXT NOT NULL,
    outcomes_json TEXT
);
CREATE INDEX IF NOT EXISTS idx_server_setups_generated ON server_setups(generated_at);
CREATE INDEX IF NOT EXISTS idx_server_setups_coin_dir
    ON server_setups(coin, direction, generated_at);

CREATE TABLE IF NOT EXISTS oi_snapshots (
    coin TEXT NOT NULL,
    time_ms INTEGER NOT NULL,
    open_interest TEXT NOT NULL,
    PRIMARY KEY (coin, time_ms)
);

CREATE TABLE IF NOT EXISTS app_state (
    scope TEXT PRIMARY KEY,
    state_json TEXT NOT NULL,
    schema_version INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
"""


class LevtradeDatabase:
    """Owns a single aiosqlite connection and the schema.

    Usage:
        async with LevtradeDatabase(":memory:") as database:
            store = LevtradeStore(database)
    """

    def __init__(self, db_path: str = "data/levtrade.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError(f"Database {self._db_path} is not connected")
        return self._connection

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Open the file (creating its directory), apply pragmas and the schema."""
        if self._db_path != MEMORY_PATH:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")
        await self._connection.executescript(_SCHEMA_SQL)
        await self._check_schema_version()
        await self._connection.commit()
        logger.info("database_connected", db_path=self._db_path)

    async def close(self) -> None:
        if self._connection is None:
            return
        await self._connection.close()
        self._connection = None
        logger.info("database_closed", db_path=self._db_path)

    async def _check_schema_version(self) -> None:
        cursor = await self.db.execute("SELECT value FROM db_meta WHERE key = 'schema_version'")
        row = await cursor.fetchone()
        if row is None:
            await self.db.execute(
                "INSERT INTO db_meta (key, value) VALUES ('schema_version', ?)",
                (str(DB_SCHEMA_VERSION),),
            )
            return
        if int(row[0]) != DB_SCHEMA_VERSION:
            logger.warning(
                "database_schema_mismatch",
                found=int(row[0]),
                expected=DB_SCHEMA_VERSION,
            )

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
