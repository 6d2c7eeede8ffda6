"""
countries.py — "Top countries" list.

Route:
  GET /api/v1/countries?q=ger&sort_by=deaths — at most 10 ranked rows

Reads the orchestrator's current EntityCollection and ranks it on every
request; nothing is cached here.
"""

from fastapi import APIRouter, Depends, Query

from covid_tracker.core.tracker import get_orchestrator
from covid_tracker.models.stats import RankingResponse, RankMetric
from covid_tracker.services.orchestrator import FetchOrchestrator
from covid_tracker.services.ranker import rank_entities

router = APIRouter(prefix="/api/v1/countries", tags=["countries"])


@router.get("", response_model=RankingResponse)
async def get_top_countries(
    q: str = Query(default="", max_length=100, description="Case-insensitive substring of the country name"),
    sort_by: RankMetric = Query(default=RankMetric.CASES, description="cases | deaths | recovered | active"),
    orchestrator: FetchOrchestrator = Depends(get_orchestrator),
):
    """Filter by name, sort descending by the chosen metric, keep the top 10."""
    return rank_entities(
        orchestrator.entities,
        query=q,
        sort_by=sort_by,
        selection=orchestrator.selection,
    )
