"""
dashboard.py — Dashboard state + user events.

Routes:
  GET    /api/v1/dashboard               — selection, snapshot + derived metrics, flags
  GET    /api/v1/dashboard/history       — current time series + summary
  GET    /api/v1/dashboard/ranges        — selectable history windows
  GET    /api/v1/dashboard/selections    — "Global" + every known country
  PUT    /api/v1/dashboard/selection     — selection-change event (refetches)
  PUT    /api/v1/dashboard/range         — range-change event (refetches history)
  POST   /api/v1/dashboard/refresh       — re-run the initial load
  DELETE /api/v1/dashboard/notification  — dismiss the error banner

HOW THE DATA FLOWS
──────────────────
The front-end is a pure projection: it reads the GET routes and sends the
PUT/POST events. Every event is awaited, so the response of an event call
already reflects the refetch (or the stale data + notification when the
provider failed). Two overlapping selection events are safe: the
orchestrator drops whichever completion no longer matches the selection.
"""

import logging

from fastapi import APIRouter, Depends, Request

from covid_tracker.core.config import settings
from covid_tracker.core.rate_limit import limiter
from covid_tracker.core.tracker import get_orchestrator
from covid_tracker.models.stats import (
    GLOBAL_SCOPE,
    DashboardResponse,
    HistoryRange,
    HistoryResponse,
    RangeChange,
    RangeOption,
    Selection,
    SelectionChange,
    SelectionOptions,
)
from covid_tracker.services.aggregator import describe_snapshot
from covid_tracker.services.orchestrator import FetchOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


def _dashboard(orchestrator: FetchOrchestrator) -> DashboardResponse:
    snapshot = orchestrator.snapshot
    return DashboardResponse(
        selection=orchestrator.selection,
        history_range=orchestrator.history_range,
        snapshot_state=orchestrator.snapshot_state,
        history_state=orchestrator.history_state,
        loading=orchestrator.loading,
        current=describe_snapshot(snapshot) if snapshot is not None else None,
        notification=orchestrator.notification,
    )


def _history(orchestrator: FetchOrchestrator) -> HistoryResponse:
    return HistoryResponse(
        selection=orchestrator.selection,
        state=orchestrator.history_state,
        series=orchestrator.history,
    )


# ── Reads ─────────────────────────────────────────────────────────────────────

@router.get("", response_model=DashboardResponse)
async def get_dashboard(orchestrator: FetchOrchestrator = Depends(get_orchestrator)):
    """Current selection, its snapshot with derived metrics, and the loading/error flags."""
    return _dashboard(orchestrator)


@router.get("/history", response_model=HistoryResponse)
async def get_history(orchestrator: FetchOrchestrator = Depends(get_orchestrator)):
    """
    The time series for the current (selection, range).

    series.status tells "empty" (provider had nothing) apart from "failed"
    (provider call failed); both render as an empty chart.
    """
    return _history(orchestrator)


@router.get("/ranges", response_model=list[RangeOption])
async def get_ranges():
    return [RangeOption(value=r, label=r.label) for r in HistoryRange]


@router.get("/selections", response_model=SelectionOptions)
async def get_selections(orchestrator: FetchOrchestrator = Depends(get_orchestrator)):
    return SelectionOptions(
        current=orchestrator.selection,
        options=[GLOBAL_SCOPE, *orchestrator.entities.keys()],
    )


# ── Events ────────────────────────────────────────────────────────────────────

@router.put("/selection", response_model=DashboardResponse)
@limiter.limit(settings.selection_rate_limit)
async def change_selection(
    request: Request,
    payload: SelectionChange,
    orchestrator: FetchOrchestrator = Depends(get_orchestrator),
):
    """
    Focus the dashboard on a new scope ("Global" or a country name).

    Refetches the scope's snapshot and history concurrently. When the
    provider fails, the previous snapshot stays in `current` and
    `notification` names the scope that could not be loaded.
    """
    await orchestrator.select(Selection(scope=payload.scope.strip() or GLOBAL_SCOPE), payload.range)
    return _dashboard(orchestrator)


@router.put("/range", response_model=HistoryResponse)
@limiter.limit(settings.selection_rate_limit)
async def change_range(
    request: Request,
    payload: RangeChange,
    orchestrator: FetchOrchestrator = Depends(get_orchestrator),
):
    """Switch the history window for the current selection."""
    await orchestrator.set_range(payload.range)
    return _history(orchestrator)


@router.post("/refresh", response_model=DashboardResponse)
@limiter.limit(settings.selection_rate_limit)
async def refresh(request: Request, orchestrator: FetchOrchestrator = Depends(get_orchestrator)):
    """Re-run the initial load: snapshot + country list together, plus history."""
    await orchestrator.mount()
    return _dashboard(orchestrator)


@router.delete("/notification", response_model=DashboardResponse)
async def dismiss_notification(orchestrator: FetchOrchestrator = Depends(get_orchestrator)):
    orchestrator.dismiss_notification()
    return _dashboard(orchestrator)
