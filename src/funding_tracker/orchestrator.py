"""Tracker orchestrator -- polls every exchange adapter and persists the results.

Each cycle:
  1. FAN OUT: call fetch_funding_rates() on every adapter concurrently
  2. ISOLATE: a failing adapter is logged and contributes nothing
  3. MERGE: successful results are concatenated into one batch
  4. PERSIST: one create_batch() call, skipped when the batch is empty

Failures never escape a cycle. The loop recovers on the next tick; there
is no retry, backoff or adapter suppression.

Reads (get_latest_rates) go straight to the repository.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum

from funding_tracker.data.repository import FundingRateRepository
from funding_tracker.exchange.adapter import ExchangeAdapter
from funding_tracker.logging import get_logger
from funding_tracker.models import FundingRate, FundingRateFilter

logger = get_logger(__name__)

DEFAULT_UPDATE_INTERVAL = 60.0
DEFAULT_HOUSEKEEPING_INTERVAL = 60.0 * 60.0


class TrackerState(str, Enum):
    """Lifecycle of a TrackerOrchestrator. STOPPED is terminal."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class TrackerOrchestrator:
    """Periodic fetch-and-store loop over a static set of adapters.

    Args:
        adapters: Funding rate sources polled every cycle.
        repository: Storage for fetched batches and latest-rate reads.
        update_interval: Seconds between fetch cycles.
        housekeeping_interval: Seconds between housekeeping ticks.
    """

    def __init__(
        self,
        adapters: list[ExchangeAdapter],
        repository: FundingRateRepository,
        update_interval: float = DEFAULT_UPDATE_INTERVAL,
        housekeeping_interval: float = DEFAULT_HOUSEKEEPING_INTERVAL,
    ) -> None:
        self._adapters = list(adapters)
        self._repository = repository
        self._update_interval = update_interval
        self._housekeeping_interval = housekeeping_interval
        self._state = TrackerState.IDLE
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether the polling loop is active."""
        return self._state is TrackerState.RUNNING

    @property
    def adapters(self) -> list[ExchangeAdapter]:
        return list(self._adapters)

    async def start(self) -> None:
        """Run one immediate cycle, then poll until stopped or cancelled.

        Returns when stop() is called; raises CancelledError when the
        running task is cancelled. Either way the orchestrator ends in
        STOPPED and cannot be started again.

        Raises:
            RuntimeError: If start() was already called.
        """
        if self._state is not TrackerState.IDLE:
            raise RuntimeError(f"Tracker cannot start from state {self._state.value}")

        self._state = TrackerState.RUNNING
        logger.info(
            "funding_tracker_starting",
            interval=self._update_interval,
            exchanges=[adapter.name for adapter in self._adapters],
        )

        try:
            await self.fetch_and_store()
            await self._run_loop()
        except asyncio.CancelledError:
            logger.info("funding_tracker_cancelled")
            raise
        finally:
            self._state = TrackerState.STOPPED
            logger.info("funding_tracker_stopped")

    def stop(self) -> None:
        """Request the loop to exit. Safe to call any number of times.

        Honored between cycles; a cycle already in progress completes first.
        """
        if not self._stop_event.is_set():
            logger.info("funding_tracker_stopping")
        self._stop_event.set()

    async def _run_loop(self) -> None:
        """Tick every update_interval until the stop event fires.

        The housekeeping deadline is checked on each wake-up, so it fires
        with update_interval granularity.
        """
        next_housekeeping = time.monotonic() + self._housekeeping_interval

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._update_interval)
            except TimeoutError:
                pass
            if self._stop_event.is_set():
                break

            try:
                await self.fetch_and_store()
                if time.monotonic() >= next_housekeeping:
                    next_housekeeping = time.monotonic() + self._housekeeping_interval
                    await self._housekeeping()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("funding_tracker_cycle_error", error=str(e), exc_info=True)

    async def _housekeeping(self) -> None:
        """Periodic maintenance hook, run on the housekeeping interval.

        Intentionally empty: no retention or cleanup policy exists yet.
        """
        logger.debug("funding_tracker_housekeeping")

    async def fetch_and_store(self) -> int:
        """Run one cycle: fetch from every adapter and persist the union.

        Returns:
            Number of records persisted (0 when nothing was fetched or
            the store rejected the batch).
        """
        results = await asyncio.gather(
            *(self._fetch_from(adapter) for adapter in self._adapters)
        )
        batch: list[FundingRate] = [rate for rates in results for rate in rates]

        if not batch:
            logger.warning("no_funding_rates_fetched")
            return 0

        try:
            await self._repository.create_batch(batch)
        except Exception as e:
            logger.error("funding_rates_store_failed", error=str(e), total=len(batch))
            return 0

        logger.info("funding_rates_updated", total=len(batch))
        return len(batch)

    async def _fetch_from(self, adapter: ExchangeAdapter) -> list[FundingRate]:
        """Call one adapter, converting any failure into an empty result."""
        try:
            return await adapter.fetch_funding_rates()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "funding_rates_fetch_failed",
                exchange=adapter.name,
                error=str(e),
            )
            return []

    async def get_latest_rates(self, filter: FundingRateFilter) -> list[FundingRate]:
        """Latest rate per (exchange, symbol), delegated to the repository."""
        return await self._repository.get_latest(filter)
