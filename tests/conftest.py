"""Shared test fixtures for the funding rate tracker."""

from collections.abc import AsyncIterator

import pytest

from funding_tracker.config import AppSettings, TrackerSettings
from funding_tracker.data.database import FundingDatabase
from funding_tracker.data.store import FundingRateStore


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (debug logging, fast ticks)."""
    return AppSettings(
        log_level="DEBUG",
        tracker=TrackerSettings(update_interval=0.01, housekeeping_interval=3600),
    )


@pytest.fixture
async def database(tmp_path) -> AsyncIterator[FundingDatabase]:
    """Connected FundingDatabase in a per-test temporary directory."""
    db = FundingDatabase(str(tmp_path / "funding.db"))
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def store(database: FundingDatabase) -> FundingRateStore:
    """FundingRateStore over the temporary database."""
    return FundingRateStore(database)
