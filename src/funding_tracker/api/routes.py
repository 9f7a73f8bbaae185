"""JSON API endpoints for latest funding rates."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from funding_tracker.models import FundingRate, FundingRateFilter

log = structlog.get_logger(__name__)

router = APIRouter()

# Rates are stored as fractions and shown as percentages
_DISPLAY_SCALE = Decimal("100")


def _parse_int(value: str | None) -> int:
    """Parse an integer query parameter, ignoring malformed input."""
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


def group_by_symbol(rates: list[FundingRate]) -> dict[str, dict[str, Any]]:
    """Reshape latest rates into the per-symbol display structure.

    Returns:
        {symbol: {"exchanges": {exchange: rate_pct}, "updated_at": {exchange: iso}}}
    """
    symbols: dict[str, dict[str, Any]] = {}
    for rate in rates:
        entry = symbols.setdefault(rate.symbol, {"exchanges": {}, "updated_at": {}})
        entry["exchanges"][rate.exchange] = float(rate.rate * _DISPLAY_SCALE)
        entry["updated_at"][rate.exchange] = rate.timestamp.isoformat()
    return symbols


@router.get("/funding-rates")
async def get_funding_rates(
    request: Request,
    exchange: str | None = None,
    symbol: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
    sort_by: str = "timestamp",
    sort_order: str = "desc",
) -> JSONResponse:
    """Latest funding rate per exchange, grouped by symbol.

    Query params:
        exchange, symbol: Exact-match filters (empty means no filter).
        limit, offset: Pagination over latest rows; non-integers are ignored.
        sort_by: rate, timestamp, symbol, exchange or price.
        sort_order: asc or desc.
    """
    orchestrator = request.app.state.orchestrator

    filter = FundingRateFilter(
        exchange=exchange or None,
        symbol=symbol or None,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=_parse_int(limit),
        offset=_parse_int(offset),
    )

    try:
        rates = await orchestrator.get_latest_rates(filter)
    except Exception as e:
        log.error("get_funding_rates_failed", error=str(e), exc_info=True)
        return JSONResponse(
            content={"error": "internal server error"}, status_code=500
        )

    data = group_by_symbol(rates)
    return JSONResponse(content={"data": data, "count": len(data)})
