"""Backpack adapter.

``GET /v1/markPrices`` returns a bare list of markets. Symbols look like
``BTC_USDC_PERP``; the ticker is the part before the first underscore.
"""

from funding_tracker.exceptions import ExchangeFetchError
from funding_tracker.exchange.http_adapter import HttpExchangeAdapter
from funding_tracker.models import FundingRate, to_decimal, utc_now


class BackpackAdapter(HttpExchangeAdapter):
    """Funding rates from the Backpack mark prices endpoint."""

    exchange_name = "backpack"

    async def fetch_funding_rates(self) -> list[FundingRate]:
        payload = await self._get_json("/v1/markPrices")
        if not isinstance(payload, list):
            raise ExchangeFetchError(self.name, "response is not a list")

        now = utc_now()
        rates: list[FundingRate] = []
        for item in self._objects(payload):
            raw_symbol = item.get("symbol") or ""
            symbol = raw_symbol.split("_")[0]
            rate = to_decimal(item.get("fundingRate"))
            if not symbol or rate is None:
                self._log_skipped(raw_symbol, "fundingRate", item.get("fundingRate"))
                continue
            rates.append(
                FundingRate(
                    exchange=self.name,
                    symbol=symbol,
                    rate=rate,
                    price=to_decimal(item.get("markPrice")),
                    timestamp=now,
                )
            )

        self._log_fetched(len(rates))
        return rates
