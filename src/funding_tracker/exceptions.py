"""Custom exceptions for the funding rate tracker.

Adapter and storage exceptions live here to avoid circular imports
between the exchange, data and orchestration modules.
"""


class TrackerError(Exception):
    """Base exception for all tracker errors."""


class ExchangeFetchError(TrackerError):
    """Raised when an exchange adapter cannot produce funding rates.

    Covers transport errors, timeouts, non-200 responses and bodies
    that do not decode into the expected vendor shape.
    """

    def __init__(self, exchange: str, message: str) -> None:
        super().__init__(f"{exchange}: {message}")
        self.exchange = exchange


class StoreError(TrackerError):
    """Raised when persisting or querying funding rates fails."""
