"""Build the active exchange adapters from application settings."""

from funding_tracker.config import AppSettings, VenueSettings
from funding_tracker.exchange.adapter import AdapterConfig, ExchangeAdapter
from funding_tracker.exchange.backpack import BackpackAdapter
from funding_tracker.exchange.ccxt_adapter import CcxtFundingAdapter
from funding_tracker.exchange.extended import ExtendedAdapter
from funding_tracker.exchange.hibachi import HibachiAdapter
from funding_tracker.exchange.http_adapter import HttpExchangeAdapter
from funding_tracker.exchange.lighter import LighterAdapter
from funding_tracker.exchange.pacifica import PacificaAdapter
from funding_tracker.logging import get_logger

logger = get_logger(__name__)


def _proxy_url(settings: AppSettings) -> str | None:
    if settings.proxy is None:
        return None
    return settings.proxy.get_secret_value() or None


def _adapter_config(venue: VenueSettings, proxy: str | None) -> AdapterConfig:
    return AdapterConfig(
        base_url=venue.base_url,
        proxy=proxy,
        is_active=venue.active,
        timeout_seconds=venue.timeout_seconds,
    )


def build_adapters(settings: AppSettings) -> list[ExchangeAdapter]:
    """Instantiate every adapter whose venue is marked active.

    HTTP venues share the root ``proxy`` setting. ccxt venues are created
    one per configured exchange id.
    """
    http_venues: list[tuple[type[HttpExchangeAdapter], VenueSettings]] = [
        (PacificaAdapter, settings.pacifica),
        (LighterAdapter, settings.lighter),
        (ExtendedAdapter, settings.extended),
        (HibachiAdapter, settings.hibachi),
        (BackpackAdapter, settings.backpack),
    ]

    proxy = _proxy_url(settings)
    adapters: list[ExchangeAdapter] = []
    for adapter_class, venue in http_venues:
        config = _adapter_config(venue, proxy)
        if not config.is_active:
            logger.info("exchange_adapter_disabled", exchange=adapter_class.exchange_name)
            continue
        adapters.append(adapter_class(config))

    if settings.ccxt.active:
        ccxt_config = AdapterConfig(
            base_url="",
            proxy=proxy,
            timeout_seconds=settings.ccxt.timeout_seconds,
        )
        for exchange_id in settings.ccxt.exchange_ids:
            adapters.append(
                CcxtFundingAdapter(
                    exchange_id,
                    ccxt_config,
                    settle=settings.ccxt.settle,
                    markets_refresh_seconds=settings.ccxt.markets_refresh_seconds,
                )
            )

    logger.info("exchange_adapters_built", exchanges=[a.name for a in adapters])
    return adapters
