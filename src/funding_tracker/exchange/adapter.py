"""Abstract exchange adapter interface.

Defines the contract for all venue implementations. The orchestrator
depends only on this interface, keeping vendor response shapes isolated
in the concrete adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from funding_tracker.models import FundingRate


@dataclass(frozen=True)
class AdapterConfig:
    """Per-venue construction settings."""

    base_url: str
    proxy: str | None = None
    is_active: bool = True
    timeout_seconds: float = 30.0


class ExchangeAdapter(ABC):
    """Abstract base class for funding rate sources.

    Implementations hold no state shared with other adapters and must be
    safe to call repeatedly and concurrently.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable lowercase venue identifier, persisted as ``exchange``."""
        ...

    @abstractmethod
    async def fetch_funding_rates(self) -> list[FundingRate]:
        """Fetch current funding rates for every listed perpetual.

        The call is atomic from the caller's viewpoint: it either returns
        the normalized records or raises ExchangeFetchError. Task
        cancellation aborts in-flight requests and propagates as
        asyncio.CancelledError.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources held by the adapter."""
        ...
