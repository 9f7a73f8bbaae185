"""FastAPI application factory for the funding rate query API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from funding_tracker.api import routes


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to start and stop the tracker.

    Returns:
        Configured FastAPI application. Route handlers expect the tracker
        orchestrator on ``app.state.orchestrator``.
    """
    app = FastAPI(
        title="Funding Rate Tracker",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.state.orchestrator = None

    app.include_router(routes.router, prefix="/api/v1")

    return app
