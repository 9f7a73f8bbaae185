"""Shared httpx plumbing for venues exposing a public REST API.

Every HTTP adapter owns one httpx.AsyncClient configured from its
AdapterConfig (base URL, optional proxy, timeout). Transport failures,
non-200 statuses and undecodable bodies are all mapped to
ExchangeFetchError so the orchestrator sees a single failure type.
"""

from typing import Any

import httpx

from funding_tracker.exceptions import ExchangeFetchError
from funding_tracker.exchange.adapter import AdapterConfig, ExchangeAdapter
from funding_tracker.logging import get_logger

logger = get_logger(__name__)


class HttpExchangeAdapter(ExchangeAdapter):
    """Base class for adapters backed by a JSON-over-HTTP API.

    Subclasses set ``exchange_name`` and implement ``fetch_funding_rates``
    on top of ``_get_json``.

    Args:
        config: Venue connection settings.
        transport: Optional httpx transport override (used by tests).
    """

    exchange_name: str = ""

    def __init__(
        self,
        config: AdapterConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            proxy=config.proxy or None,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @property
    def name(self) -> str:
        return self.exchange_name

    @property
    def config(self) -> AdapterConfig:
        return self._config

    async def close(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict | None = None) -> Any:
        """GET ``path`` relative to the base URL and decode the JSON body.

        Raises:
            ExchangeFetchError: On transport error, timeout, non-200 status
                or invalid JSON.
        """
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise ExchangeFetchError(self.name, f"execute request {path}: {e!r}") from e

        if response.status_code != httpx.codes.OK:
            raise ExchangeFetchError(
                self.name, f"unexpected status code {response.status_code} for {path}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise ExchangeFetchError(self.name, f"decode response {path}: {e}") from e

    def _log_fetched(self, count: int) -> None:
        logger.info("fetched_funding_rates", exchange=self.name, count=count)

    def _log_skipped(self, symbol: Any, field: str, raw: Any) -> None:
        logger.warning(
            "invalid_funding_entry",
            exchange=self.name,
            symbol=symbol,
            field=field,
            raw=raw,
        )

    def _objects(self, items: list) -> list[dict]:
        """Keep the JSON objects of a vendor list, logging any other entry."""
        objects = []
        for item in items:
            if isinstance(item, dict):
                objects.append(item)
            else:
                self._log_skipped(None, "entry", item)
        return objects
