"""Shared data models for the funding rate tracker.

CRITICAL: Rates and prices use Decimal. Never use float for monetary values;
conversion to float happens only when rendering JSON for the HTTP API.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class FundingRate:
    """One funding rate observation for a perpetual on a single venue.

    Created by an exchange adapter at fetch time, persisted once by the
    store and never mutated afterwards. ``id`` and ``created_at`` are
    only set on records read back from the store.
    """

    exchange: str
    symbol: str
    rate: Decimal  # decimal fraction per funding period, not a percentage
    timestamp: datetime  # observation time, UTC
    price: Decimal | None = None
    next_funding: datetime | None = None
    id: int | None = None
    created_at: datetime | None = None


@dataclass
class FundingRateFilter:
    """Filter, sort and pagination options for latest-rate queries.

    ``sort_by`` and ``sort_order`` are validated by the store; unknown
    values fall back to timestamp / descending. ``limit`` 0 means
    unlimited and ``offset`` 0 means no skip.
    """

    exchange: str | None = None
    symbol: str | None = None
    sort_by: str = "timestamp"
    sort_order: str = "desc"
    limit: int = 0
    offset: int = 0


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_decimal(value: Any) -> Decimal | None:
    """Parse a vendor numeric field into Decimal.

    Returns None for missing, empty or unparseable values so callers can
    decide whether to skip the entry.
    """
    if value is None or value == "":
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def ms_to_datetime(value: int | None) -> datetime | None:
    """Convert a Unix millisecond timestamp to a UTC datetime."""
    if value is None:
        return None
    return _EPOCH + timedelta(milliseconds=value)


def datetime_to_ms(value: datetime | None) -> int | None:
    """Convert a datetime to Unix milliseconds (naive values are taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(milliseconds=1)
