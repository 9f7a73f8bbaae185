"""Exchange adapter layer -- one funding rate source per venue."""

from funding_tracker.exchange.adapter import AdapterConfig, ExchangeAdapter
from funding_tracker.exchange.backpack import BackpackAdapter
from funding_tracker.exchange.ccxt_adapter import CcxtFundingAdapter
from funding_tracker.exchange.extended import ExtendedAdapter
from funding_tracker.exchange.factory import build_adapters
from funding_tracker.exchange.hibachi import HibachiAdapter
from funding_tracker.exchange.http_adapter import HttpExchangeAdapter
from funding_tracker.exchange.lighter import LighterAdapter
from funding_tracker.exchange.pacifica import PacificaAdapter

__all__ = [
    "AdapterConfig",
    "BackpackAdapter",
    "CcxtFundingAdapter",
    "ExchangeAdapter",
    "ExtendedAdapter",
    "HibachiAdapter",
    "HttpExchangeAdapter",
    "LighterAdapter",
    "PacificaAdapter",
    "build_adapters",
]
