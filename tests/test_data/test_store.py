"""Tests for FundingRateStore and latest-rate query construction.

All tests run against a real aiosqlite database in a temporary directory.
"""

import asyncio
from decimal import Decimal

import pytest

from factories import BASE_TIME, make_rate
from funding_tracker.data.database import FundingDatabase
from funding_tracker.data.store import FundingRateStore, resolve_sort
from funding_tracker.exceptions import StoreError
from funding_tracker.models import FundingRateFilter


def _keys(rates) -> list[tuple[str, str]]:
    return [(r.exchange, r.symbol) for r in rates]


# ---------------------------------------------------------------------------
# Sort whitelist
# ---------------------------------------------------------------------------


class TestResolveSort:
    """Caller sort options map onto fixed SQL expressions only."""

    def test_defaults_to_timestamp_desc(self) -> None:
        assert resolve_sort("timestamp", "desc") == ("timestamp_ms", "DESC")

    def test_numeric_fields_are_cast(self) -> None:
        assert resolve_sort("rate", "asc") == ("CAST(rate AS REAL)", "ASC")
        assert resolve_sort("price", "asc") == ("CAST(price AS REAL)", "ASC")

    def test_unknown_field_falls_back_to_timestamp(self) -> None:
        assert resolve_sort("nonsense", "desc") == ("timestamp_ms", "DESC")

    def test_injection_attempt_is_never_passed_through(self) -> None:
        expression, _ = resolve_sort("rate; DROP TABLE funding_rates", "asc")
        assert expression == "timestamp_ms"

    def test_order_is_case_insensitive(self) -> None:
        assert resolve_sort("symbol", "ASC")[1] == "ASC"
        assert resolve_sort("symbol", "Asc")[1] == "ASC"

    def test_anything_but_asc_is_desc(self) -> None:
        assert resolve_sort("symbol", "ascending")[1] == "DESC"
        assert resolve_sort("symbol", "")[1] == "DESC"
        assert resolve_sort(None, None) == ("timestamp_ms", "DESC")


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


class TestCreate:
    """Single and batch inserts."""

    @pytest.mark.asyncio
    async def test_create_returns_generated_id(self, store: FundingRateStore) -> None:
        first = await store.create(make_rate(symbol="BTC"))
        second = await store.create(make_rate(symbol="ETH"))
        assert second > first

    @pytest.mark.asyncio
    async def test_round_trip_preserves_values(self, store: FundingRateStore) -> None:
        await store.create(make_rate(rate="-0.000012345", price="97123.45"))

        [stored] = await store.get_latest(FundingRateFilter())
        assert stored.rate == Decimal("-0.000012345")
        assert stored.price == Decimal("97123.45")
        assert stored.timestamp == BASE_TIME
        assert stored.next_funding is None
        assert stored.id is not None
        assert stored.created_at is not None

    @pytest.mark.asyncio
    async def test_missing_price_stays_none(self, store: FundingRateStore) -> None:
        await store.create_batch([make_rate(price=None)])
        [stored] = await store.get_latest(FundingRateFilter())
        assert stored.price is None

    @pytest.mark.asyncio
    async def test_empty_batch_is_noop(self, store: FundingRateStore) -> None:
        await store.create_batch([])
        assert await store.get_latest(FundingRateFilter()) == []

    @pytest.mark.asyncio
    async def test_batch_persists_all_records(self, store: FundingRateStore) -> None:
        await store.create_batch(
            [
                make_rate(exchange="pacifica", symbol="BTC"),
                make_rate(exchange="pacifica", symbol="ETH"),
                make_rate(exchange="lighter", symbol="BTC"),
            ]
        )
        rates = await store.get_latest(FundingRateFilter())
        assert len(rates) == 3

    @pytest.mark.asyncio
    async def test_failed_row_names_index_and_rolls_back(
        self, store: FundingRateStore
    ) -> None:
        batch = [
            make_rate(symbol="BTC"),
            make_rate(symbol=""),  # violates the non-empty symbol constraint
            make_rate(symbol="ETH"),
        ]
        with pytest.raises(StoreError, match="index 1"):
            await store.create_batch(batch)

        assert await store.get_latest(FundingRateFilter()) == []

    @pytest.mark.asyncio
    async def test_store_usable_after_failed_batch(
        self, store: FundingRateStore
    ) -> None:
        with pytest.raises(StoreError):
            await store.create_batch([make_rate(exchange="")])

        await store.create_batch([make_rate()])
        assert len(await store.get_latest(FundingRateFilter())) == 1


# ---------------------------------------------------------------------------
# Latest-per-pair reads
# ---------------------------------------------------------------------------


class TestGetLatest:
    """One row per (exchange, symbol), chosen by max timestamp."""

    @pytest.mark.asyncio
    async def test_one_row_per_pair_with_max_timestamp(
        self, store: FundingRateStore
    ) -> None:
        await store.create_batch(
            [
                make_rate("pacifica", "BTC", "0.0001", minutes=0),
                make_rate("pacifica", "BTC", "0.0003", minutes=10),
                make_rate("lighter", "BTC", "0.0002", minutes=5),
            ]
        )
        # Older observation inserted later must not win
        await store.create_batch([make_rate("pacifica", "BTC", "0.0009", minutes=2)])

        rates = await store.get_latest(FundingRateFilter())
        by_pair = {(r.exchange, r.symbol): r for r in rates}

        assert len(rates) == 2
        assert by_pair[("pacifica", "BTC")].rate == Decimal("0.0003")
        assert by_pair[("lighter", "BTC")].rate == Decimal("0.0002")

    @pytest.mark.asyncio
    async def test_equal_timestamps_resolved_by_highest_id(
        self, store: FundingRateStore
    ) -> None:
        await store.create(make_rate(rate="0.0001", minutes=5))
        last_id = await store.create(make_rate(rate="0.0004", minutes=5))

        [latest] = await store.get_latest(FundingRateFilter())
        assert latest.id == last_id
        assert latest.rate == Decimal("0.0004")

    @pytest.mark.asyncio
    async def test_no_exchange_restriction_without_filter(
        self, store: FundingRateStore
    ) -> None:
        exchanges = ["pacifica", "lighter", "extended", "hibachi", "backpack"]
        await store.create_batch([make_rate(exchange=e) for e in exchanges])

        rates = await store.get_latest(FundingRateFilter())
        assert sorted(r.exchange for r in rates) == sorted(exchanges)


class TestGetLatestFilters:
    """Exact-match exchange/symbol filters combined with AND."""

    @pytest.fixture
    async def seeded(self, store: FundingRateStore) -> FundingRateStore:
        await store.create_batch(
            [
                make_rate("pacifica", "BTC", minutes=1),
                make_rate("pacifica", "ETH", minutes=2),
                make_rate("lighter", "BTC", minutes=3),
                make_rate("lighter", "SOL", minutes=4),
            ]
        )
        return store

    @pytest.mark.asyncio
    async def test_filter_by_exchange(self, seeded: FundingRateStore) -> None:
        rates = await seeded.get_latest(FundingRateFilter(exchange="lighter"))
        assert sorted(_keys(rates)) == [("lighter", "BTC"), ("lighter", "SOL")]

    @pytest.mark.asyncio
    async def test_filter_by_symbol(self, seeded: FundingRateStore) -> None:
        rates = await seeded.get_latest(FundingRateFilter(symbol="BTC"))
        assert sorted(_keys(rates)) == [("lighter", "BTC"), ("pacifica", "BTC")]

    @pytest.mark.asyncio
    async def test_filters_combine_with_and(self, seeded: FundingRateStore) -> None:
        rates = await seeded.get_latest(
            FundingRateFilter(exchange="pacifica", symbol="ETH")
        )
        assert _keys(rates) == [("pacifica", "ETH")]

    @pytest.mark.asyncio
    async def test_unknown_exchange_returns_empty(
        self, seeded: FundingRateStore
    ) -> None:
        assert await seeded.get_latest(FundingRateFilter(exchange="nowhere")) == []


class TestGetLatestSorting:
    """Whitelisted sorting over the deduplicated set."""

    @pytest.fixture
    async def seeded(self, store: FundingRateStore) -> FundingRateStore:
        await store.create_batch(
            [
                make_rate("pacifica", "BTC", "0.0002", minutes=1, price="100"),
                make_rate("pacifica", "ETH", "-0.0001", minutes=2, price="20"),
                make_rate("lighter", "SOL", "0.00015", minutes=3, price="3"),
                make_rate("hibachi", "DOGE", "0.001", minutes=4, price="1000"),
            ]
        )
        return store

    @pytest.mark.asyncio
    async def test_default_is_timestamp_desc(self, seeded: FundingRateStore) -> None:
        rates = await seeded.get_latest(FundingRateFilter())
        assert [r.symbol for r in rates] == ["DOGE", "SOL", "ETH", "BTC"]

    @pytest.mark.asyncio
    async def test_rate_sorts_numerically(self, seeded: FundingRateStore) -> None:
        rates = await seeded.get_latest(FundingRateFilter(sort_by="rate", sort_order="asc"))
        assert [r.rate for r in rates] == [
            Decimal("-0.0001"),
            Decimal("0.00015"),
            Decimal("0.0002"),
            Decimal("0.001"),
        ]

    @pytest.mark.asyncio
    async def test_price_sorts_numerically(self, seeded: FundingRateStore) -> None:
        rates = await seeded.get_latest(FundingRateFilter(sort_by="price", sort_order="desc"))
        assert [r.symbol for r in rates] == ["DOGE", "BTC", "ETH", "SOL"]

    @pytest.mark.asyncio
    async def test_symbol_ascending(self, seeded: FundingRateStore) -> None:
        rates = await seeded.get_latest(FundingRateFilter(sort_by="symbol", sort_order="ASC"))
        assert [r.symbol for r in rates] == ["BTC", "DOGE", "ETH", "SOL"]

    @pytest.mark.asyncio
    async def test_exchange_ascending(self, seeded: FundingRateStore) -> None:
        rates = await seeded.get_latest(
            FundingRateFilter(sort_by="exchange", sort_order="asc")
        )
        assert [r.exchange for r in rates] == ["hibachi", "lighter", "pacifica", "pacifica"]

    @pytest.mark.asyncio
    async def test_unknown_sort_field_matches_timestamp(
        self, seeded: FundingRateStore
    ) -> None:
        nonsense = await seeded.get_latest(FundingRateFilter(sort_by="nonsense"))
        by_timestamp = await seeded.get_latest(FundingRateFilter(sort_by="timestamp"))
        assert _keys(nonsense) == _keys(by_timestamp)


class TestGetLatestPagination:
    """Offset/limit applied after sorting."""

    @pytest.fixture
    async def seeded(self, store: FundingRateStore) -> FundingRateStore:
        await store.create_batch(
            [make_rate("pacifica", f"SYM{i}", minutes=i) for i in range(5)]
        )
        return store

    @pytest.mark.asyncio
    async def test_limit_and_offset_return_second_and_third(
        self, seeded: FundingRateStore
    ) -> None:
        rates = await seeded.get_latest(FundingRateFilter(limit=2, offset=1))
        assert [r.symbol for r in rates] == ["SYM3", "SYM2"]

    @pytest.mark.asyncio
    async def test_zero_limit_is_unlimited(self, seeded: FundingRateStore) -> None:
        assert len(await seeded.get_latest(FundingRateFilter(limit=0))) == 5

    @pytest.mark.asyncio
    async def test_offset_without_limit(self, seeded: FundingRateStore) -> None:
        rates = await seeded.get_latest(FundingRateFilter(offset=3))
        assert [r.symbol for r in rates] == ["SYM1", "SYM0"]

    @pytest.mark.asyncio
    async def test_negative_values_are_ignored(self, seeded: FundingRateStore) -> None:
        rates = await seeded.get_latest(FundingRateFilter(limit=-1, offset=-3))
        assert len(rates) == 5

    @pytest.mark.asyncio
    async def test_pagination_counts_pairs_not_rows(
        self, seeded: FundingRateStore
    ) -> None:
        # Extra history for SYM4 must not consume a page slot
        await seeded.create_batch([make_rate("pacifica", "SYM4", minutes=-10)])
        rates = await seeded.get_latest(FundingRateFilter(limit=2))
        assert [r.symbol for r in rates] == ["SYM4", "SYM3"]


class TestQueryErrors:
    """Query failures surface as StoreError."""

    @pytest.mark.asyncio
    async def test_missing_table_raises_store_error(
        self, database: FundingDatabase, store: FundingRateStore
    ) -> None:
        await database.db.execute("DROP TABLE funding_rates")
        await database.db.commit()

        with pytest.raises(StoreError, match="query funding rates"):
            await store.get_latest(FundingRateFilter())


# ---------------------------------------------------------------------------
# Concurrent access on the shared connection
# ---------------------------------------------------------------------------


def _failing_batch(size: int = 200) -> list:
    """``size`` valid rows followed by one the schema rejects."""
    return [make_rate("pacifica", f"SYM{i}") for i in range(size)] + [make_rate(symbol="")]


class TestConcurrentAccess:
    """A batch in flight is invisible to readers and other writers."""

    @pytest.mark.asyncio
    async def test_reader_never_sees_rolled_back_batch(self, store: FundingRateStore) -> None:
        async def read_repeatedly() -> list[int]:
            seen = []
            for _ in range(20):
                seen.append(len(await store.get_latest(FundingRateFilter())))
                await asyncio.sleep(0)
            return seen

        batch_result, seen = await asyncio.gather(
            store.create_batch(_failing_batch()),
            read_repeatedly(),
            return_exceptions=True,
        )

        assert isinstance(batch_result, StoreError)
        assert "index 200" in str(batch_result)
        assert seen == [0] * 20

    @pytest.mark.asyncio
    async def test_single_insert_does_not_commit_failing_batch(
        self, store: FundingRateStore
    ) -> None:
        batch_result, _ = await asyncio.gather(
            store.create_batch(_failing_batch()),
            store.create(make_rate("lighter", "ETH")),
            return_exceptions=True,
        )

        assert isinstance(batch_result, StoreError)
        rates = await store.get_latest(FundingRateFilter())
        assert _keys(rates) == [("lighter", "ETH")]
