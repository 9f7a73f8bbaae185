"""HTTP query surface over the tracker orchestrator."""

from funding_tracker.api.app import create_app

__all__ = ["create_app"]
