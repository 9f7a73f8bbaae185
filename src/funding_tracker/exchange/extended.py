"""Extended adapter.

``GET /v1/info/markets`` lists every market with its asset name, an
``active`` flag and ``marketStats.fundingRate``. Inactive markets are
skipped.
"""

from funding_tracker.exceptions import ExchangeFetchError
from funding_tracker.exchange.http_adapter import HttpExchangeAdapter
from funding_tracker.models import FundingRate, to_decimal, utc_now


class ExtendedAdapter(HttpExchangeAdapter):
    """Funding rates from the Extended markets endpoint."""

    exchange_name = "extended"

    async def fetch_funding_rates(self) -> list[FundingRate]:
        payload = await self._get_json("/v1/info/markets")

        items = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise ExchangeFetchError(self.name, "response has no data list")

        now = utc_now()
        rates: list[FundingRate] = []
        for item in self._objects(items):
            if not item.get("active"):
                continue
            symbol = item.get("assetName")
            stats = item.get("marketStats")
            raw_rate = stats.get("fundingRate") if isinstance(stats, dict) else None
            rate = to_decimal(raw_rate)
            if not symbol or rate is None:
                self._log_skipped(symbol, "marketStats.fundingRate", raw_rate)
                continue
            rates.append(
                FundingRate(exchange=self.name, symbol=symbol, rate=rate, timestamp=now)
            )

        self._log_fetched(len(rates))
        return rates
