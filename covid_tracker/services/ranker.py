"""
ranker.py — "Top countries" view over an EntityCollection.

filter (case-insensitive substring on the name)
  → sort descending by the chosen metric (stable: ties keep filter order)
  → keep the first MAX_RANKED rows.

The result is recomputed from scratch on every call; the ranker holds no
state of its own.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Callable, Optional

from covid_tracker.models.stats import (
    RankedEntity,
    RankingResponse,
    RankMetric,
    Selection,
    Snapshot,
)
from covid_tracker.services.aggregator import active_cases, compute_trend
from covid_tracker.services.formatting import format_compact

MAX_RANKED = 10

_METRIC_VALUE: dict[RankMetric, Callable[[Snapshot], int]] = {
    RankMetric.CASES:     lambda s: s.cases,
    RankMetric.DEATHS:    lambda s: s.deaths,
    RankMetric.RECOVERED: lambda s: s.recovered,
    RankMetric.ACTIVE:    active_cases,
}


def metric_value(snapshot: Snapshot, sort_by: RankMetric) -> int:
    return _METRIC_VALUE[sort_by](snapshot)


def filter_entities(collection: Mapping[str, Snapshot], query: str) -> list[tuple[str, Snapshot]]:
    needle = query.lower()
    return [(name, snap) for name, snap in collection.items() if needle in name.lower()]


def rank_entities(
    collection: Mapping[str, Snapshot],
    query: str = "",
    sort_by: RankMetric = RankMetric.CASES,
    selection: Optional[Selection] = None,
    limit: int = MAX_RANKED,
) -> RankingResponse:
    """
    Filter, sort and truncate the collection.

    Output length is min(limit, match count). sorted() is stable, also with
    reverse=True, so equal values stay in the order the filter produced.
    """
    matches = filter_entities(collection, query)
    ordered = sorted(matches, key=lambda item: metric_value(item[1], sort_by), reverse=True)
    selected_scope = selection.scope if selection is not None else None

    entries = []
    for rank, (name, snap) in enumerate(ordered[:limit], start=1):
        value = metric_value(snap, sort_by)
        entries.append(RankedEntity(
            rank=rank,
            name=name,
            flag_ref=snap.flag_ref,
            value=value,
            value_label=format_compact(value),
            today_cases_label=f"+{format_compact(snap.today_cases)}",
            today_deaths_label=f"{format_compact(snap.today_deaths)} deaths",
            trend=compute_trend(snap.today_cases),
            selected=name == selected_scope,
        ))

    return RankingResponse(
        query=query,
        sort_by=sort_by,
        match_count=len(matches),
        entries=entries,
        message=None if entries else f'No countries found matching "{query}"',
    )
