"""Hibachi adapter.

Hibachi has no bulk funding endpoint. A fetch first discovers the listed
futures contracts via ``/market/exchange-info``, then requests
``/market/data/prices`` for every contract concurrently.

Discovery failure fails the whole call. A failing per-contract request
only drops that contract from the result.
"""

import asyncio

from funding_tracker.exceptions import ExchangeFetchError
from funding_tracker.exchange.http_adapter import HttpExchangeAdapter
from funding_tracker.logging import get_logger
from funding_tracker.models import FundingRate, to_decimal, utc_now

logger = get_logger(__name__)


class HibachiAdapter(HttpExchangeAdapter):
    """Funding rates from Hibachi's per-contract price endpoint."""

    exchange_name = "hibachi"

    async def fetch_funding_rates(self) -> list[FundingRate]:
        contracts = await self._get_contracts()

        results = await asyncio.gather(
            *(self._fetch_contract(symbol, pair) for symbol, pair in contracts.items()),
            return_exceptions=True,
        )

        rates: list[FundingRate] = []
        for (symbol, pair), result in zip(contracts.items(), results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.warning(
                    "hibachi_contract_fetch_failed",
                    symbol=symbol,
                    pair=pair,
                    error=str(result),
                )
                continue
            if result is not None:
                rates.append(result)

        self._log_fetched(len(rates))
        return rates

    async def _get_contracts(self) -> dict[str, str]:
        """Return a mapping of underlying ticker to contract pair symbol."""
        payload = await self._get_json("/market/exchange-info")
        if not isinstance(payload, dict):
            raise ExchangeFetchError(self.name, "exchange-info is not an object")

        status = payload.get("status")
        if status != "NORMAL":
            raise ExchangeFetchError(self.name, f"unexpected info status: {status}")

        contracts: dict[str, str] = {}
        raw_contracts = payload.get("futureContracts") or []
        if not isinstance(raw_contracts, list):
            raise ExchangeFetchError(self.name, "futureContracts is not a list")
        for contract in self._objects(raw_contracts):
            symbol = contract.get("underlyingSymbol")
            pair = contract.get("symbol")
            if symbol and pair:
                contracts[symbol] = pair
        return contracts

    async def _fetch_contract(self, symbol: str, pair: str) -> FundingRate | None:
        payload = await self._get_json("/market/data/prices", params={"symbol": pair})
        if not isinstance(payload, dict):
            raise ExchangeFetchError(self.name, f"prices for {pair} is not an object")

        estimation = payload.get("fundingRateEstimation")
        raw_rate = (
            estimation.get("estimatedFundingRate") if isinstance(estimation, dict) else None
        )
        rate = to_decimal(raw_rate)
        if rate is None:
            self._log_skipped(symbol, "fundingRateEstimation.estimatedFundingRate", raw_rate)
            return None

        return FundingRate(
            exchange=self.name,
            symbol=symbol,
            rate=rate,
            price=to_decimal(payload.get("markPrice")),
            timestamp=utc_now(),
        )
