"""Funding rate persistence layer.

Provides the repository contract, SQLite database management and the
typed store answering latest-rate queries.
"""

from funding_tracker.data.database import FundingDatabase
from funding_tracker.data.repository import FundingRateRepository
from funding_tracker.data.store import FundingRateStore, resolve_sort

__all__ = [
    "FundingDatabase",
    "FundingRateRepository",
    "FundingRateStore",
    "resolve_sort",
]
