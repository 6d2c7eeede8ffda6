"""
Health check endpoint.

Used by:
  - Docker HEALTHCHECK instruction
  - Load balancers / orchestrators
  - Front-end to check API connectivity

Returns liveness plus the load state of the dashboard data so callers can
distinguish between "API down" and "API up but provider unreachable".
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from covid_tracker.core.config import settings
from covid_tracker.core.tracker import get_orchestrator
from covid_tracker.models.stats import LoadState
from covid_tracker.services.orchestrator import FetchOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter()

VERSION = "0.1.0"


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    data: LoadState  # snapshot slot state; "failed" means the provider let us down
    environment: str


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check(orchestrator: FetchOrchestrator = Depends(get_orchestrator)) -> HealthResponse:
    """
    Returns the liveness status of the API and the state of its data.

    The API is considered healthy (HTTP 200) even when the last provider
    call failed — the dashboard keeps serving stale data in that case.
    """
    if orchestrator.snapshot_state == LoadState.FAILED:
        logger.warning("Health check: last snapshot fetch failed")

    return HealthResponse(
        status="ok",
        version=VERSION,
        data=orchestrator.snapshot_state,
        environment=settings.environment,
    )
