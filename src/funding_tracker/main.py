"""Entry point for the funding rate tracker.

Wires all components together and serves the query API. The tracker loop
and the HTTP server share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Startup order:
1. AppSettings and logging (run)
2. FundingDatabase, FundingRateStore, adapters, TrackerOrchestrator
   (_build_components)
3. Database connection and tracker task (lifespan)

uvicorn handles SIGINT/SIGTERM; shutdown runs through the lifespan.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from funding_tracker.api.app import create_app
from funding_tracker.config import AppSettings
from funding_tracker.data.database import FundingDatabase
from funding_tracker.data.store import FundingRateStore
from funding_tracker.exchange.factory import build_adapters
from funding_tracker.logging import get_logger, setup_logging
from funding_tracker.orchestrator import TrackerOrchestrator

# How long shutdown waits for an in-flight cycle before cancelling it
_SHUTDOWN_GRACE_SECONDS = 10.0


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all tracker components from settings.

    Note: Does NOT connect the database -- that happens in the lifespan.

    Returns:
        Dict mapping component names to instances.
    """
    database = FundingDatabase(settings.database.path)
    store = FundingRateStore(database)
    adapters = build_adapters(settings)
    orchestrator = TrackerOrchestrator(
        adapters=adapters,
        repository=store,
        update_interval=settings.tracker.update_interval,
        housekeeping_interval=settings.tracker.housekeeping_interval,
    )
    return {
        "database": database,
        "store": store,
        "adapters": adapters,
        "orchestrator": orchestrator,
    }


async def _stop_tracker(orchestrator: TrackerOrchestrator, task: asyncio.Task) -> None:  # type: ignore[type-arg]
    """Signal the tracker to stop, cancelling it if a cycle overruns the grace period."""
    logger = get_logger("funding_tracker.main")
    orchestrator.stop()
    try:
        await asyncio.wait_for(asyncio.shield(task), timeout=_SHUTDOWN_GRACE_SECONDS)
    except TimeoutError:
        logger.warning("tracker_stop_timeout", grace_seconds=_SHUTDOWN_GRACE_SECONDS)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    except Exception as e:
        logger.error("tracker_task_failed", error=str(e), exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage tracker component lifecycle within the FastAPI application.

    On startup: connects the database, stores the orchestrator on
    app.state and starts it as a background task.

    On shutdown: stops the orchestrator, closes adapters and the database.
    """
    logger = get_logger("funding_tracker.main")
    components = app.state.components

    await components["database"].connect()

    orchestrator: TrackerOrchestrator = components["orchestrator"]
    app.state.orchestrator = orchestrator

    tracker_task = asyncio.create_task(orchestrator.start())
    logger.info("lifespan_started", exchanges=[a.name for a in components["adapters"]])

    yield

    logger.info("shutting_down")
    await _stop_tracker(orchestrator, tracker_task)

    for adapter in components["adapters"]:
        try:
            await adapter.close()
        except Exception as e:
            logger.warning("adapter_close_failed", exchange=adapter.name, error=str(e))

    await components["database"].close()
    logger.info("funding_tracker_shutdown_complete")


async def run() -> None:
    """Run the tracker and the HTTP API in one event loop."""
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("funding_tracker.main")
    logger.info("starting_funding_tracker")

    components = _build_components(settings)

    app = create_app(lifespan=lifespan)
    app.state.settings = settings
    app.state.components = components

    logger.info(
        "starting_http_server",
        host=settings.server.host,
        port=settings.server.port,
    )

    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
