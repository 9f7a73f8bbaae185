"""Pacifica adapter.

``GET /v1/info/prices`` returns one entry per market with the current
funding rate (``funding``) and oracle price (``oracle``) as strings.
"""

from funding_tracker.exceptions import ExchangeFetchError
from funding_tracker.exchange.http_adapter import HttpExchangeAdapter
from funding_tracker.models import FundingRate, to_decimal, utc_now


class PacificaAdapter(HttpExchangeAdapter):
    """Funding rates from the Pacifica public prices endpoint."""

    exchange_name = "pacifica"

    async def fetch_funding_rates(self) -> list[FundingRate]:
        payload = await self._get_json("/v1/info/prices")

        items = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise ExchangeFetchError(self.name, "response has no data list")

        now = utc_now()
        rates: list[FundingRate] = []
        for item in self._objects(items):
            symbol = item.get("symbol")
            rate = to_decimal(item.get("funding"))
            if not symbol or rate is None:
                self._log_skipped(symbol, "funding", item.get("funding"))
                continue
            rates.append(
                FundingRate(
                    exchange=self.name,
                    symbol=symbol,
                    rate=rate,
                    price=to_decimal(item.get("oracle")),
                    timestamp=now,
                )
            )

        self._log_fetched(len(rates))
        return rates
