"""Lighter adapter.

``GET /v1/funding-rates`` aggregates rates from several venues; only the
entries Lighter reports for itself are kept. Rates are JSON numbers and
no price is reported.
"""

from funding_tracker.exceptions import ExchangeFetchError
from funding_tracker.exchange.http_adapter import HttpExchangeAdapter
from funding_tracker.models import FundingRate, to_decimal, utc_now


class LighterAdapter(HttpExchangeAdapter):
    """Funding rates from the Lighter funding-rates endpoint."""

    exchange_name = "lighter"

    async def fetch_funding_rates(self) -> list[FundingRate]:
        payload = await self._get_json("/v1/funding-rates")

        items = payload.get("funding_rates") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise ExchangeFetchError(self.name, "response has no funding_rates list")

        now = utc_now()
        rates: list[FundingRate] = []
        for item in self._objects(items):
            if item.get("exchange") != self.name:
                continue
            symbol = item.get("symbol")
            rate = to_decimal(item.get("rate"))
            if not symbol or rate is None:
                self._log_skipped(symbol, "rate", item.get("rate"))
                continue
            rates.append(
                FundingRate(exchange=self.name, symbol=symbol, rate=rate, timestamp=now)
            )

        self._log_fetched(len(rates))
        return rates
