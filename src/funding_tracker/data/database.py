"""SQLite connection lifecycle and schema migrations for the rate store.

A single aiosqlite connection is shared by the tracker (writes) and the
HTTP API (reads). FundingRateStore serializes transactions on it; WAL
keeps other processes reading the file during a write.
"""

from pathlib import Path
from typing import Self

import aiosqlite

from funding_tracker.logging import get_logger

logger = get_logger(__name__)

# Ordered migrations keyed by the schema version they produce. The applied
# version is tracked in PRAGMA user_version.
_MIGRATIONS: dict[int, str] = {
    1: """
    CREATE TABLE IF NOT EXISTS funding_rates (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        exchange TEXT NOT NULL CHECK (exchange <> ''),
        symbol TEXT NOT NULL CHECK (symbol <> ''),
        price TEXT,
        rate TEXT NOT NULL,
        timestamp_ms INTEGER NOT NULL,
        next_funding_ms INTEGER,
        created_at_ms INTEGER NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_funding_rates_pair_ts
        ON funding_rates(exchange, symbol, timestamp_ms);
    """,
}

SCHEMA_VERSION = max(_MIGRATIONS)


class FundingDatabase:
    """Owns the aiosqlite connection backing FundingRateStore.

    Usage:
        async with FundingDatabase("data/funding.db") as database:
            store = FundingRateStore(database)
    """

    def __init__(self, db_path: str = "data/funding.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """The open connection. Raises RuntimeError before connect()."""
        if self._connection is None:
            raise RuntimeError("FundingDatabase is not connected")
        return self._connection

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Open the database file (creating its directory) and migrate it."""
        if self._connection is not None:
            return

        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        connection = await aiosqlite.connect(self._db_path)
        try:
            await connection.execute("PRAGMA journal_mode=WAL")
            await connection.execute("PRAGMA synchronous=NORMAL")
            await self._migrate(connection)
        except aiosqlite.Error:
            await connection.close()
            raise

        self._connection = connection
        logger.info("funding_db_connected", db_path=self._db_path, schema_version=SCHEMA_VERSION)

    async def close(self) -> None:
        if self._connection is None:
            return
        await self._connection.close()
        self._connection = None
        logger.info("funding_db_closed", db_path=self._db_path)

    async def _migrate(self, connection: aiosqlite.Connection) -> None:
        cursor = await connection.execute("PRAGMA user_version")
        row = await cursor.fetchone()
        current = row[0] if row else 0

        for version in sorted(v for v in _MIGRATIONS if v > current):
            await connection.executescript(_MIGRATIONS[version])
            # PRAGMA does not accept bound parameters
            await connection.execute(f"PRAGMA user_version = {int(version)}")
            await connection.commit()
            logger.info("funding_db_migrated", version=version)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
