"""Centralized venue adapter via ccxt async.

Wraps any ccxt exchange that supports the unified ``fetch_funding_rates``
call (Bybit by default). Only linear perpetual swaps settled in the
configured currency are kept, so each base asset yields one record.
"""

import time

import ccxt.async_support as ccxt_async

from funding_tracker.exceptions import ExchangeFetchError
from funding_tracker.exchange.adapter import AdapterConfig, ExchangeAdapter
from funding_tracker.logging import get_logger
from funding_tracker.models import FundingRate, ms_to_datetime, to_decimal, utc_now

logger = get_logger(__name__)

DEFAULT_MARKETS_REFRESH_SECONDS = 60.0 * 60.0


class CcxtFundingAdapter(ExchangeAdapter):
    """Funding rates for one ccxt-supported exchange.

    Args:
        exchange_id: ccxt exchange id, e.g. "bybit". Also used as the
            persisted exchange name.
        config: Connection settings. ``base_url`` is ignored since ccxt
            knows each venue's endpoints.
        settle: Settlement currency of the perpetuals to track.
        markets_refresh_seconds: How long a loaded market list is reused
            before it is reloaded to pick up new listings.
        exchange: Optional prebuilt ccxt instance (used by tests).

    Raises:
        ValueError: If ccxt has no exchange with this id.
    """

    def __init__(
        self,
        exchange_id: str,
        config: AdapterConfig,
        settle: str = "USDT",
        markets_refresh_seconds: float = DEFAULT_MARKETS_REFRESH_SECONDS,
        exchange: ccxt_async.Exchange | None = None,
    ) -> None:
        self._exchange_id = exchange_id.lower()
        self._settle = settle
        self._markets_refresh_seconds = markets_refresh_seconds
        if exchange is None:
            if self._exchange_id not in ccxt_async.exchanges:
                raise ValueError(f"unknown ccxt exchange id: {exchange_id!r}")
            options: dict = {
                "enableRateLimit": True,
                "timeout": int(config.timeout_seconds * 1000),
                "options": {"defaultType": "swap"},
            }
            if config.proxy:
                options["httpsProxy"] = config.proxy
            exchange_class = getattr(ccxt_async, self._exchange_id)
            exchange = exchange_class(options)
        self._exchange = exchange
        self._markets: dict = {}
        self._markets_loaded_at: float | None = None

    @property
    def name(self) -> str:
        return self._exchange_id

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        await self._exchange.close()

    async def fetch_funding_rates(self) -> list[FundingRate]:
        try:
            await self._refresh_markets()
            raw_rates = await self._exchange.fetch_funding_rates(
                self._perpetual_symbols()
            )
        except ccxt_async.BaseError as e:
            raise ExchangeFetchError(self.name, f"{type(e).__name__}: {e}") from e

        now = utc_now()
        rates: list[FundingRate] = []
        for symbol, entry in raw_rates.items():
            market = self._markets.get(symbol)
            if market is None or market.get("settle") != self._settle:
                continue
            rate = to_decimal(entry.get("fundingRate"))
            if rate is None:
                logger.warning(
                    "invalid_funding_entry",
                    exchange=self.name,
                    symbol=symbol,
                    field="fundingRate",
                    raw=entry.get("fundingRate"),
                )
                continue
            rates.append(
                FundingRate(
                    exchange=self.name,
                    symbol=market.get("base") or symbol.split("/")[0],
                    rate=rate,
                    price=to_decimal(entry.get("markPrice")),
                    next_funding=ms_to_datetime(entry.get("fundingTimestamp")),
                    timestamp=now,
                )
            )

        logger.info("fetched_funding_rates", exchange=self.name, count=len(rates))
        return rates

    async def _refresh_markets(self) -> None:
        """Load markets on first use and reload them once they go stale."""
        now = time.monotonic()
        if (
            self._markets_loaded_at is not None
            and now - self._markets_loaded_at < self._markets_refresh_seconds
        ):
            return
        reload = self._markets_loaded_at is not None
        self._markets = await self._exchange.load_markets(reload=reload)
        self._markets_loaded_at = now
        if reload:
            logger.debug("ccxt_markets_reloaded", exchange=self.name, markets=len(self._markets))

    def _perpetual_symbols(self) -> list[str]:
        """Linear swap symbols settled in the configured currency."""
        return [
            symbol
            for symbol, market in self._markets.items()
            if market.get("linear") and market.get("swap") and market.get("settle") == self._settle
        ]
