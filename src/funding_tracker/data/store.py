"""Typed SQLite read/write abstraction for funding rate observations.

All SQL is isolated behind FundingRateStore. Rates and prices are stored
as TEXT and restored as Decimal on read; timestamps are stored as Unix
milliseconds.

Latest-rate queries pick one row per (exchange, symbol) with a window
function: greatest timestamp wins, and the highest id breaks ties between
rows observed at the same instant.

The store serializes its own access to the shared connection, so a reader
never observes a batch that has not been committed.
"""

import asyncio
from decimal import Decimal

import aiosqlite

from funding_tracker.data.database import FundingDatabase
from funding_tracker.data.repository import FundingRateRepository
from funding_tracker.exceptions import StoreError
from funding_tracker.logging import get_logger
from funding_tracker.models import (
    FundingRate,
    FundingRateFilter,
    datetime_to_ms,
    ms_to_datetime,
    utc_now,
)

logger = get_logger(__name__)

DEFAULT_SORT_FIELD = "timestamp"

# Caller-facing sort field -> fixed SQL expression. Only these strings are
# ever placed in ORDER BY; TEXT columns holding numbers are cast for
# numeric ordering.
SORT_EXPRESSIONS: dict[str, str] = {
    "rate": "CAST(rate AS REAL)",
    "timestamp": "timestamp_ms",
    "symbol": "symbol",
    "exchange": "exchange",
    "price": "CAST(price AS REAL)",
}

_INSERT_SQL = (
    "INSERT INTO funding_rates "
    "(exchange, symbol, price, rate, timestamp_ms, next_funding_ms, created_at_ms) "
    "VALUES (?, ?, ?, ?, ?, ?, ?)"
)

_COLUMNS = "id, exchange, symbol, price, rate, timestamp_ms, next_funding_ms, created_at_ms"


def resolve_sort(sort_by: str | None, sort_order: str | None) -> tuple[str, str]:
    """Map caller sort options to a safe (expression, direction) pair.

    Unknown fields fall back to timestamp; any order other than a
    case-insensitive "asc" yields DESC.
    """
    expression = SORT_EXPRESSIONS.get(sort_by or "", SORT_EXPRESSIONS[DEFAULT_SORT_FIELD])
    direction = "ASC" if (sort_order or "").strip().lower() == "asc" else "DESC"
    return expression, direction


def _row_params(rate: FundingRate, created_at_ms: int) -> tuple:
    return (
        rate.exchange,
        rate.symbol,
        str(rate.price) if rate.price is not None else None,
        str(rate.rate),
        datetime_to_ms(rate.timestamp),
        datetime_to_ms(rate.next_funding),
        created_at_ms,
    )


def _row_to_rate(row: tuple) -> FundingRate:
    return FundingRate(
        id=row[0],
        exchange=row[1],
        symbol=row[2],
        price=Decimal(row[3]) if row[3] is not None else None,
        rate=Decimal(row[4]),
        timestamp=ms_to_datetime(row[5]),  # type: ignore[arg-type]
        next_funding=ms_to_datetime(row[6]),
        created_at=ms_to_datetime(row[7]),
    )


class FundingRateStore(FundingRateRepository):
    """Async SQLite store for funding rate observations.

    Wraps FundingDatabase with typed read/write methods. All SQL access
    goes through self._database.db (the aiosqlite Connection).

    Usage:
        async with FundingDatabase("data/funding.db") as database:
            store = FundingRateStore(database)
            await store.create_batch(rates)
    """

    def __init__(self, database: FundingDatabase) -> None:
        self._database = database
        # One connection is shared by writers and readers; each transaction
        # or query holds this lock until it finishes.
        self._lock = asyncio.Lock()

    # ──────────────────────────────────────────────
    # Write methods
    # ──────────────────────────────────────────────

    async def create(self, rate: FundingRate) -> int:
        """Insert one record and return its generated id."""
        db = self._database.db
        async with self._lock:
            try:
                cursor = await db.execute(_INSERT_SQL, _row_params(rate, datetime_to_ms(utc_now())))  # type: ignore[arg-type]
                await db.commit()
            except aiosqlite.Error as e:
                await db.rollback()
                raise StoreError(f"insert funding rate: {e}") from e
        return cursor.lastrowid  # type: ignore[return-value]

    async def create_batch(self, rates: list[FundingRate]) -> None:
        """Insert all records in a single transaction.

        Rows are inserted one at a time so a failure can name the offending
        index. Any failure rolls back the whole batch.

        Raises:
            StoreError: If any row is rejected or the commit fails.
        """
        if not rates:
            return

        db = self._database.db
        created_at_ms = datetime_to_ms(utc_now())
        async with self._lock:
            try:
                for index, rate in enumerate(rates):
                    try:
                        await db.execute(_INSERT_SQL, _row_params(rate, created_at_ms))  # type: ignore[arg-type]
                    except aiosqlite.Error as e:
                        await db.rollback()
                        raise StoreError(f"batch insert at index {index}: {e}") from e

                try:
                    await db.commit()
                except aiosqlite.Error as e:
                    await db.rollback()
                    raise StoreError(f"commit funding rate batch: {e}") from e
            except asyncio.CancelledError:
                # cancellation mid-batch must not leave an open transaction behind
                await asyncio.shield(db.rollback())
                raise

        logger.debug("inserted_funding_rates", total=len(rates))

    # ──────────────────────────────────────────────
    # Read methods
    # ──────────────────────────────────────────────

    async def get_latest(self, filter: FundingRateFilter) -> list[FundingRate]:
        """Return the latest record per (exchange, symbol).

        Exchange/symbol filters narrow the rows before deduplication, which
        is equivalent to filtering afterwards since both are exact key
        matches. Sorting uses the whitelisted expression, then offset and
        limit apply (0 meaning none).
        """
        conditions: list[str] = []
        params: list = []

        if filter.exchange is not None:
            conditions.append("exchange = ?")
            params.append(filter.exchange)
        if filter.symbol is not None:
            conditions.append("symbol = ?")
            params.append(filter.symbol)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        order_expression, direction = resolve_sort(filter.sort_by, filter.sort_order)

        limit = filter.limit if filter.limit > 0 else -1  # -1 = no limit in SQLite
        offset = max(filter.offset, 0)
        params.extend([limit, offset])

        query = (
            f"WITH ranked AS ("
            f"  SELECT {_COLUMNS}, ROW_NUMBER() OVER ("
            f"    PARTITION BY exchange, symbol ORDER BY timestamp_ms DESC, id DESC"
            f"  ) AS row_num"
            f"  FROM funding_rates {where}"
            f") "
            f"SELECT {_COLUMNS} FROM ranked WHERE row_num = 1 "
            f"ORDER BY {order_expression} {direction}, exchange ASC, symbol ASC "
            f"LIMIT ? OFFSET ?"
        )

        async with self._lock:
            try:
                cursor = await self._database.db.execute(query, params)
                rows = await cursor.fetchall()
            except aiosqlite.Error as e:
                raise StoreError(f"query funding rates: {e}") from e

        return [_row_to_rate(row) for row in rows]
