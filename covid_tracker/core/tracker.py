"""
Process-wide FetchOrchestrator holder.

Architecture decision: a single orchestrator instance per process, held on a
module-level singleton. FastAPI's dependency injection (get_orchestrator)
gives routes access without importing the singleton directly, and tests
swap it out with app.dependency_overrides.

The orchestrator is created and mounted in FastAPI's lifespan (startup) and
dropped on shutdown.
"""

import logging

from covid_tracker.core.config import settings
from covid_tracker.services.orchestrator import FetchOrchestrator
from covid_tracker.services.provider_client import DiseaseShClient

logger = logging.getLogger(__name__)


class TrackerRuntime:
    """Holds the live orchestrator; a class so tests can reset .orchestrator."""

    orchestrator: FetchOrchestrator | None = None


# Module-level singleton, shared by the lifespan and every route
runtime = TrackerRuntime()


async def start_tracker() -> None:
    """
    Build the orchestrator and run the initial (mount) fetch.

    Provider failures during the mount never abort startup: the orchestrator
    records them as a notification and the API serves an empty dashboard
    until the next refresh or selection event.
    """
    runtime.orchestrator = FetchOrchestrator(DiseaseShClient())
    if not settings.load_on_startup:
        logger.info("LOAD_ON_STARTUP disabled — waiting for the first refresh")
        return
    logger.info("Loading initial data from %s", settings.provider_base_url)
    await runtime.orchestrator.mount()


async def stop_tracker() -> None:
    if runtime.orchestrator is not None:
        logger.info("Dropping orchestrator state")
    runtime.orchestrator = None


def get_orchestrator() -> FetchOrchestrator:
    """
    FastAPI dependency — inject the orchestrator into route handlers.

    Falls back to a fresh, un-mounted orchestrator when the lifespan has not
    run (e.g. an ASGI transport without lifespan support).

    Usage in a route:
        async def my_route(orchestrator: FetchOrchestrator = Depends(get_orchestrator)):
            return orchestrator.snapshot
    """
    if runtime.orchestrator is None:
        runtime.orchestrator = FetchOrchestrator(DiseaseShClient())
    return runtime.orchestrator
