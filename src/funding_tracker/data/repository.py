"""Abstract funding rate repository interface.

The orchestrator and HTTP layer depend only on this contract; the SQLite
implementation lives in funding_tracker.data.store.
"""

from abc import ABC, abstractmethod

from funding_tracker.models import FundingRate, FundingRateFilter


class FundingRateRepository(ABC):
    """Append-only storage of funding rate observations."""

    @abstractmethod
    async def create(self, rate: FundingRate) -> int:
        """Persist a single record and return its generated id."""
        ...

    @abstractmethod
    async def create_batch(self, rates: list[FundingRate]) -> None:
        """Persist all records, raising StoreError naming the failing index."""
        ...

    @abstractmethod
    async def get_latest(self, filter: FundingRateFilter) -> list[FundingRate]:
        """Return the latest record per (exchange, symbol) after filtering,
        sorting and pagination."""
        ...
